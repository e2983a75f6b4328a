# -*- coding: utf-8 -*-
"""Sign and broadcast contract calls from a keystore sender, then wait for the receipt."""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from chain_utils import assert_address, require_gas_price, to_amount
from errors import NetworkError, TransactionRevertedError
from erc20.wallet_io import KeyStore
from utils.log import log_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionReceipt:
    tx_hash: str
    status: int
    contract_address: str
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_web3(cls, receipt: Mapping[str, Any], contract_address: str) -> "TransactionReceipt":
        tx_hash = receipt.get("transactionHash")
        return cls(
            tx_hash=Web3.to_hex(tx_hash) if isinstance(tx_hash, (bytes, bytearray)) else str(tx_hash),
            status=int(receipt.get("status", 1)),
            contract_address=contract_address,
            block_number=receipt.get("blockNumber"),
            gas_used=receipt.get("gasUsed"),
            raw=MappingProxyType(dict(receipt)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tx_hash": self.tx_hash,
            "status": self.status,
            "contract_address": self.contract_address,
            "block_number": self.block_number,
            "gas_used": self.gas_used,
        }


class TransactionSubmitter:
    def __init__(self, w3, keystore: KeyStore, chain_id: int, receipt_timeout: float = 180.0, poll_latency: float = 0.5):
        self._w3 = w3
        self._keystore = keystore
        self.chain_id = chain_id
        self.receipt_timeout = receipt_timeout
        self.poll_latency = poll_latency

    def submit(
        self,
        contract_address: str,
        encoded_call: str,
        sender_address: str,
        sender_auth: str,
        *,
        gas_price: Any,
        gas_limit: Optional[int] = None,
    ) -> TransactionReceipt:
        # ---------- 네트워크 호출 전 검증 ----------
        price = require_gas_price(gas_price)
        to = assert_address(contract_address)
        sender = assert_address(sender_address)
        account = self._keystore.unlock(sender, sender_auth)

        # ---------- 서명/전송/영수증 ----------
        try:
            nonce = self._w3.eth.get_transaction_count(sender, "pending")
            tx: Dict[str, Any] = {
                "from": sender,
                "to": to,
                "data": encoded_call,
                "value": 0,
                "nonce": nonce,
                "chainId": self.chain_id,
                "gasPrice": price,
            }
            if gas_limit is None:
                # 여유 버퍼 but 과도 방지
                est = self._w3.eth.estimate_gas(tx)
                tx["gas"] = int(min(est * 1.2, est + 150_000))
            else:
                tx["gas"] = to_amount(gas_limit)

            signed = account.sign_transaction(tx)
            tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
            log_event(logger, "tx_sent", tx_hash=Web3.to_hex(tx_hash), contract=to, sender=sender, nonce=nonce)

            raw_receipt = self._w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout, poll_latency=self.poll_latency
            )
        except ContractLogicError as e:
            raise TransactionRevertedError(f"Transaction reverted: {e}") from e
        except TimeExhausted as e:
            raise NetworkError(f"No receipt within {self.receipt_timeout}s: {e}") from e
        except (Web3Exception, OSError) as e:
            raise NetworkError(f"Transaction submission failed: {e}") from e

        receipt = TransactionReceipt.from_web3(raw_receipt, to)
        if receipt.status == 0:
            raise TransactionRevertedError(f"Transaction {receipt.tx_hash} reverted in block {receipt.block_number}")
        log_event(logger, "tx_confirmed", tx_hash=receipt.tx_hash, block=receipt.block_number, gas_used=receipt.gas_used)
        return receipt
