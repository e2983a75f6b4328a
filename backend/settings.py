# backend/settings.py
from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parent  # backend/
ENV_PATH = ROOT / ".env"
DEFAULT_ABI_PATH = ROOT / "erc20" / "abi" / "EIP20TokenMock.abi.json"


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    chain_id: int
    chain_disabled: bool = False
    default_gas_limit: int = 4_700_000
    receipt_timeout: float = 180.0
    receipt_poll_latency: float = 0.5
    keystore_dir: Path = ROOT / "erc20" / "keystore"
    abi_path: Path = DEFAULT_ABI_PATH
    balance_cache_path: Path = ROOT / "token_balances.db"
    balance_cache_write_capacity: int = 0
    log_level: str = "INFO"


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} 값이 정수가 아닙니다: {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} 값이 숫자가 아닙니다: {raw!r}") from None


def _env_path(name: str, default: Path) -> Path:
    raw = (os.getenv(name) or "").strip()
    return Path(raw).expanduser().resolve() if raw else default


def load_settings(env_path: Optional[Path] = None) -> Settings:
    path = env_path or ENV_PATH
    if path.exists():
        load_dotenv(path)

    # 노드 없이 서버만 띄우는 모드
    disabled = os.getenv("TOKEN_DISABLE_CHAIN", "0").strip() == "1"

    rpc_url = (os.getenv("RPC_URL") or "").strip()
    chain_id = _env_int("CHAIN_ID", 0)
    if not disabled:
        if not rpc_url:
            raise RuntimeError("RPC_URL이 없습니다. backend/.env에 설정하세요.")
        if not chain_id:
            raise RuntimeError("CHAIN_ID가 설정되지 않았습니다.")

    return Settings(
        rpc_url=rpc_url,
        chain_id=chain_id,
        chain_disabled=disabled,
        default_gas_limit=_env_int("DEFAULT_GAS_LIMIT", 4_700_000),
        receipt_timeout=_env_float("RECEIPT_TIMEOUT", 180.0),
        receipt_poll_latency=_env_float("RECEIPT_POLL_LATENCY", 0.5),
        keystore_dir=_env_path("KEYSTORE_DIR", ROOT / "erc20" / "keystore"),
        abi_path=_env_path("TOKEN_ABI_PATH", DEFAULT_ABI_PATH),
        balance_cache_path=_env_path("BALANCE_CACHE_PATH", ROOT / "token_balances.db"),
        balance_cache_write_capacity=_env_int("BALANCE_CACHE_WRITE_CAPACITY", 0),
        log_level=(os.getenv("TOKEN_LOG_LEVEL") or "INFO").strip().upper(),
    )
