# backend/utils/log.py

import json
import logging
import time
from typing import Any

_CONFIGURED_ATTR = "_erc20_configured"


def configure_logging(level: str = "INFO") -> None:
    """root 로거에 stdout 핸들러 1개만 붙인다. 여러 번 호출해도 안전."""
    lvl = getattr(logging, (level or "INFO").strip().upper(), logging.INFO)
    root = logging.getLogger()
    if getattr(root, _CONFIGURED_ATTR, False):
        root.setLevel(lvl)
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    root.handlers = [handler]
    root.setLevel(lvl)
    setattr(root, _CONFIGURED_ATTR, True)


def log_event(logger: logging.Logger, event: str, level: int = logging.INFO, **fields: Any) -> None:
    payload = {"ts_ms": int(time.time() * 1000), "event": event}
    payload.update(fields)
    logger.log(level, json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str))
