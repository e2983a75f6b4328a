# -*- coding: utf-8 -*-
from __future__ import annotations
import logging, sqlite3, threading, time
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from errors import StorageUnavailableError, ThroughputExceededError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedBalanceRecord:
    """Denormalized holder balance. Never authoritative; the chain is."""

    contract_address: str
    holder_address: str
    settled_amount: int
    pessimistic_settled_amount: int
    unsettled_debit_amount: int = 0


class BalanceCache:
    """
    (contract_address, holder_address) 키로 잔액을 저장하는 sqlite 캐시.
    금액은 TEXT(10진수 문자열)로 저장해 64비트를 넘는 wei 값도 손실 없이 보관.
    write_capacity > 0 이면 초당 쓰기 횟수를 그 값으로 제한한다.
    """

    def __init__(self, db_path: Path, write_capacity: int = 0, clock: Callable[[], float] = time.monotonic):
        self.db_path = Path(db_path)
        self.write_capacity = int(write_capacity)
        self._clock = clock
        self._window_start = 0.0
        self._window_writes = 0
        self._lock = threading.Lock()

    def _conn(self) -> sqlite3.Connection:
        cx = sqlite3.connect(self.db_path, timeout=1.0)
        cx.execute("""
        CREATE TABLE IF NOT EXISTS token_balances (
            contract_address TEXT NOT NULL,
            holder_address TEXT NOT NULL,
            settled_amount TEXT NOT NULL,
            pessimistic_settled_amount TEXT NOT NULL,
            unsettled_debit_amount TEXT NOT NULL,
            updated_at INTEGER NOT NULL,
            PRIMARY KEY (contract_address, holder_address)
        )
        """)
        return cx

    def _consume_capacity(self) -> float:
        """Reserve one write in the current window; returns the window it was taken from."""
        if self.write_capacity <= 0:
            return 0.0
        with self._lock:
            now = self._clock()
            if now - self._window_start >= 1.0:
                self._window_start = now
                self._window_writes = 0
            if self._window_writes >= self.write_capacity:
                raise ThroughputExceededError(f"Write capacity of {self.write_capacity}/s exceeded")
            self._window_writes += 1
            return self._window_start

    def _refund_capacity(self, window: float) -> None:
        if self.write_capacity <= 0:
            return
        with self._lock:
            # 창이 이미 넘어갔으면 돌려줄 것이 없다
            if window == self._window_start and self._window_writes > 0:
                self._window_writes -= 1

    @staticmethod
    def _translate(e: sqlite3.Error) -> Exception:
        msg = str(e).lower()
        if isinstance(e, sqlite3.OperationalError) and ("locked" in msg or "busy" in msg):
            return ThroughputExceededError(f"Balance store busy: {e}")
        return StorageUnavailableError(f"Balance store unavailable: {e}")

    def upsert(self, record: CachedBalanceRecord) -> None:
        window = self._consume_capacity()
        try:
            with closing(self._conn()) as cx, cx:
                cx.execute(
                    """
                    INSERT INTO token_balances(contract_address, holder_address, settled_amount,
                        pessimistic_settled_amount, unsettled_debit_amount, updated_at)
                    VALUES(?,?,?,?,?,?)
                    ON CONFLICT(contract_address, holder_address) DO UPDATE SET
                        settled_amount=excluded.settled_amount,
                        pessimistic_settled_amount=excluded.pessimistic_settled_amount,
                        unsettled_debit_amount=excluded.unsettled_debit_amount,
                        updated_at=excluded.updated_at
                    """,
                    (
                        record.contract_address,
                        record.holder_address,
                        str(record.settled_amount),
                        str(record.pessimistic_settled_amount),
                        str(record.unsettled_debit_amount),
                        int(time.time()),
                    ),
                )
        except sqlite3.Error as e:
            self._refund_capacity(window)
            raise self._translate(e) from e

    def get(self, contract_address: str, holder_address: str) -> Optional[CachedBalanceRecord]:
        try:
            with closing(self._conn()) as cx:
                row = cx.execute(
                    "SELECT settled_amount, pessimistic_settled_amount, unsettled_debit_amount "
                    "FROM token_balances WHERE contract_address=? AND holder_address=?",
                    (contract_address, holder_address),
                ).fetchone()
        except sqlite3.Error as e:
            raise self._translate(e) from e
        if row is None:
            return None
        return CachedBalanceRecord(
            contract_address=contract_address,
            holder_address=holder_address,
            settled_amount=int(row[0]),
            pessimistic_settled_amount=int(row[1]),
            unsettled_debit_amount=int(row[2]),
        )
