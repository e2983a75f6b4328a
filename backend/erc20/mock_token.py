# -*- coding: utf-8 -*-
"""Mock ERC20 token operations: balance read, setBalance, setConverionRate, approve.

setBalance is a dual write: the chain first, then a best-effort mirror of the
new balance into the balance cache. The chain receipt is always the result;
a failed mirror is logged and returned as a MirrorOutcome, never raised.
"""
from __future__ import annotations
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from balance_cache import BalanceCache, CachedBalanceRecord
from chain_utils import LedgerClient, assert_address, require_gas_price, to_amount
from errors import MirrorError, PreconditionError, StorageUnavailableError
from erc20.submitter import TransactionReceipt, TransactionSubmitter
from utils.log import log_event

logger = logging.getLogger(__name__)


class WriteStage(str, Enum):
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"
    MIRRORED = "mirrored"
    MIRROR_SKIPPED = "mirror_skipped"
    DONE = "done"


@dataclass(frozen=True)
class MirrorOutcome:
    ok: bool
    record: Optional[CachedBalanceRecord] = None
    error: Optional[MirrorError] = None


class MockToken:
    def __init__(
        self,
        ledger: LedgerClient,
        submitter: TransactionSubmitter,
        cache: BalanceCache,
        gas_limit: Optional[int] = None,
    ):
        self.ledger = ledger
        self.submitter = submitter
        self.cache = cache
        self.gas_limit = gas_limit

    # ---------- read ----------

    def balance_of(self, contract_address: str, owner_address: str) -> int:
        owner = assert_address(owner_address)
        (balance,) = self.ledger.read(assert_address(contract_address), "balanceOf", [owner])
        return int(balance)

    # ---------- mutations ----------

    def set_balance(
        self,
        contract_address: str,
        sender_address: str,
        sender_auth: str,
        owner_address: str,
        value: Any,
        gas_price: Any,
    ) -> TransactionReceipt:
        with self._validating("setBalance"):
            price = require_gas_price(gas_price)
            owner = assert_address(owner_address)
            sender = assert_address(sender_address)
            contract = assert_address(contract_address)
            amount = to_amount(value)

        receipt = self._submit(contract, "setBalance", [owner, amount], sender, sender_auth, price)

        outcome = self.mirror_balance(contract, owner, amount)
        log_event(
            logger,
            "set_balance",
            stage=(WriteStage.MIRRORED if outcome.ok else WriteStage.MIRROR_SKIPPED).value,
            tx_hash=receipt.tx_hash,
            contract=contract,
            owner=owner,
        )
        log_event(logger, "set_balance", stage=WriteStage.DONE.value, tx_hash=receipt.tx_hash)
        return receipt

    def set_conversion_rate(
        self,
        contract_address: str,
        sender_address: str,
        sender_auth: str,
        conversion_rate: Any,
        gas_price: Any,
    ) -> TransactionReceipt:
        with self._validating("setConverionRate"):
            price = require_gas_price(gas_price)
            sender = assert_address(sender_address)
            contract = assert_address(contract_address)
            rate = to_amount(conversion_rate)

        # 컨트랙트 ABI 상의 철자 그대로 (setConverionRate)
        return self._submit(contract, "setConverionRate", [rate], sender, sender_auth, price)

    def approve(
        self,
        contract_address: str,
        sender_address: str,
        sender_auth: str,
        spender_address: str,
        value: Any,
        gas_price: Any,
    ) -> TransactionReceipt:
        with self._validating("approve"):
            price = require_gas_price(gas_price)
            sender = assert_address(sender_address)
            spender = assert_address(spender_address)
            contract = assert_address(contract_address)
            amount = to_amount(value)

        return self._submit(contract, "approve", [spender, amount], sender, sender_auth, price)

    # ---------- internals ----------

    @contextmanager
    def _validating(self, method_name: str):
        log_event(logger, method_name, level=logging.DEBUG, stage=WriteStage.VALIDATING.value)
        try:
            yield
        except PreconditionError as e:
            # 검증 실패: 체인 호출 없이 종료
            log_event(logger, method_name, level=logging.WARNING, stage=WriteStage.VALIDATING.value,
                      rejected=e.code, message=e.message)
            raise

    def _submit(
        self,
        contract: str,
        method_name: str,
        args: Sequence[Any],
        sender: str,
        sender_auth: str,
        gas_price: int,
    ) -> TransactionReceipt:
        encoded = self.ledger.build_mutation(contract, method_name, args)
        log_event(logger, method_name, stage=WriteStage.SUBMITTING.value, contract=contract, sender=sender)
        try:
            receipt = self.submitter.submit(
                contract, encoded, sender, sender_auth, gas_price=gas_price, gas_limit=self.gas_limit
            )
        except Exception as e:
            log_event(logger, method_name, level=logging.WARNING, stage=WriteStage.SUBMITTING.value,
                      contract=contract, error=type(e).__name__, message=str(e))
            raise
        log_event(logger, method_name, stage=WriteStage.CONFIRMED.value, tx_hash=receipt.tx_hash)
        return receipt

    def mirror_balance(self, contract_address: str, owner_address: str, value: int) -> MirrorOutcome:
        """Copy a confirmed on-chain balance into the cache. Never raises, never retries."""
        record = CachedBalanceRecord(
            contract_address=contract_address,
            holder_address=owner_address,
            settled_amount=value,
            pessimistic_settled_amount=value,
            unsettled_debit_amount=0,
        )
        try:
            self.cache.upsert(record)
        except MirrorError as e:
            log_event(logger, "balance_mirror_failed", level=logging.ERROR,
                      contract=contract_address, owner=owner_address, error=e.code, message=e.message)
            return MirrorOutcome(ok=False, record=record, error=e)
        except Exception as e:
            logger.exception("unexpected balance cache failure for %s/%s", contract_address, owner_address)
            return MirrorOutcome(ok=False, record=record, error=StorageUnavailableError(str(e)))
        return MirrorOutcome(ok=True, record=record)
