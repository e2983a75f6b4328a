from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, List, Optional

import pytest

# Ensure local "backend/" modules are importable without installation.
ROOT = Path(__file__).resolve().parents[1]
BACKEND = ROOT / "backend"

backend_str = str(BACKEND)
if backend_str not in sys.path:
    sys.path.insert(0, backend_str)

from erc20.submitter import TransactionReceipt  # noqa: E402

CONTRACT = "0x" + "1" * 40
SENDER = "0x" + "2" * 40
OWNER = "0x" + "3" * 40
SPENDER = "0x" + "4" * 40
TX_HASH = "0x" + "ab" * 32


class FakeLedger:
    """In-memory ledger: records encoded calls, answers balanceOf from a dict."""

    def __init__(self, balances: Optional[dict] = None):
        self.balances = dict(balances or {})
        self.built: List[tuple] = []
        self.reads = 0

    def build_mutation(self, contract_address: str, method_name: str, args) -> str:
        self.built.append((contract_address, method_name, list(args)))
        return "0xdeadbeef"

    def read(self, contract_address: str, method_name: str, args=()):
        self.reads += 1
        return (self.balances.get(args[0], 0),)


class FakeSubmitter:
    def __init__(self, error: Optional[Exception] = None, events: Optional[list] = None):
        self.error = error
        self.calls: List[dict] = []
        self.events = events if events is not None else []

    def submit(self, contract_address, encoded_call, sender_address, sender_auth, *, gas_price, gas_limit=None):
        self.calls.append(
            dict(
                contract=contract_address,
                data=encoded_call,
                sender=sender_address,
                auth=sender_auth,
                gas_price=gas_price,
                gas_limit=gas_limit,
            )
        )
        self.events.append("submit")
        if self.error is not None:
            raise self.error
        return TransactionReceipt(
            tx_hash=TX_HASH, status=1, contract_address=contract_address, block_number=7, gas_used=21_000
        )


class FakeCache:
    def __init__(self, error: Optional[Exception] = None, events: Optional[list] = None):
        self.error = error
        self.records: List[Any] = []
        self.attempts = 0
        self.events = events if events is not None else []

    def upsert(self, record) -> None:
        self.attempts += 1
        self.events.append("upsert")
        if self.error is not None:
            raise self.error
        self.records.append(record)


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def submitter() -> FakeSubmitter:
    return FakeSubmitter()


@pytest.fixture
def cache() -> FakeCache:
    return FakeCache()
