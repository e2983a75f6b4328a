# main.py
# FastAPI 진입점: uvicorn main:create_app --factory
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from balance_cache import BalanceCache
from chain_utils import LedgerClient, load_abi, make_web3
from errors import (
    AuthenticationError,
    NetworkError,
    PreconditionError,
    TokenError,
    TransactionRevertedError,
)
from erc20.mock_token import MockToken
from erc20.submitter import TransactionSubmitter
from erc20.wallet_io import KeyStore
from routers import token as token_router
from settings import Settings, load_settings
from utils.log import configure_logging

logger = logging.getLogger(__name__)

_STATUS = (
    (PreconditionError, 400),
    (AuthenticationError, 401),
    (TransactionRevertedError, 409),
    (NetworkError, 502),
)


def status_for(exc: TokenError) -> int:
    for cls, status in _STATUS:
        if isinstance(exc, cls):
            return status
    return 500


def build_token(settings: Settings) -> MockToken:
    w3 = make_web3(settings.rpc_url, disabled=settings.chain_disabled)
    ledger = LedgerClient(w3, load_abi(settings.abi_path))
    submitter = TransactionSubmitter(
        w3,
        KeyStore(settings.keystore_dir),
        settings.chain_id,
        receipt_timeout=settings.receipt_timeout,
        poll_latency=settings.receipt_poll_latency,
    )
    cache = BalanceCache(settings.balance_cache_path, write_capacity=settings.balance_cache_write_capacity)
    return MockToken(ledger, submitter, cache, gas_limit=settings.default_gas_limit)


def create_app(token: Optional[MockToken] = None, settings: Optional[Settings] = None) -> FastAPI:
    if token is None:
        settings = settings or load_settings()
        configure_logging(settings.log_level)
        token = build_token(settings)

    app = FastAPI()
    app.state.token = token

    @app.exception_handler(TokenError)
    async def _token_error(request: Request, exc: TokenError):
        status = status_for(exc)
        logger.info("%s %s -> %d %s", request.method, request.url.path, status, exc.code)
        return JSONResponse(status_code=status, content=exc.to_dict())

    @app.get("/ping")
    def ping():
        return {"msg": "pong"}

    app.include_router(token_router.router)
    return app
