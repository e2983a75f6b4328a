from __future__ import annotations
import json, logging, re
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

from eth_abi import decode as abi_decode
from web3 import Web3
from web3.exceptions import ContractLogicError, Web3Exception
from web3.middleware import ExtraDataToPOAMiddleware

from errors import (
    InvalidAddressError,
    InvalidAmountError,
    MissingGasPriceError,
    NetworkError,
    PreconditionError,
    TransactionRevertedError,
)

logger = logging.getLogger(__name__)

_HEX_ADDR = re.compile(r"0x[a-fA-F0-9]{40}")
_DIGITS = re.compile(r"[0-9]+")
UINT256_MAX = 2**256 - 1


class _Disabled:
    """TOKEN_DISABLE_CHAIN=1 일 때 체인 접근을 전부 막는 자리표시자."""

    def __getattr__(self, _):
        raise NetworkError("Chain access disabled (TOKEN_DISABLE_CHAIN=1)")


def make_web3(rpc_url: str, disabled: bool = False):
    if disabled:
        return _Disabled()
    w3 = Web3(Web3.HTTPProvider(rpc_url))
    # 일부 테스트넷은 POA 미들웨어 필요
    w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return w3


def load_abi(path: Path) -> List[Dict[str, Any]]:
    if not path.exists():
        raise RuntimeError(f"ABI 파일이 없습니다: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def assert_address(address: Any) -> str:
    """Well-formed 0x40hex check; returns the checksum form."""
    if not isinstance(address, str) or not _HEX_ADDR.fullmatch(address) or not Web3.is_address(address):
        raise InvalidAddressError(f"Invalid address: {address!r}")
    return Web3.to_checksum_address(address)


def to_amount(value: Any) -> int:
    # bool 은 int 의 하위 타입이라 먼저 걸러낸다
    if isinstance(value, bool):
        raise InvalidAmountError(f"Invalid amount: {value!r}")
    if isinstance(value, int):
        amount = value
    elif isinstance(value, str) and _DIGITS.fullmatch(value.strip()):
        amount = int(value.strip())
    else:
        raise InvalidAmountError(f"Amount must be an integer or a base-10 string: {value!r}")
    if amount < 0:
        raise InvalidAmountError(f"Amount must be non-negative: {value!r}")
    if amount > UINT256_MAX:
        raise InvalidAmountError("Amount exceeds uint256 range")
    return amount


def require_gas_price(gas_price: Any) -> int:
    # None / "" / 0 모두 "없음" 으로 취급
    if gas_price is None or gas_price == "" or (not isinstance(gas_price, bool) and gas_price == 0):
        raise MissingGasPriceError()
    return to_amount(gas_price)


class LedgerClient:
    """Read-only calls and call encoding against one contract ABI.

    The contract address is bound per call; nothing about the target
    instance is kept between calls.
    """

    def __init__(self, w3, abi: Sequence[Dict[str, Any]]):
        self._w3 = w3
        self._abi = list(abi)

    def _contract(self, contract_address: str):
        return self._w3.eth.contract(address=assert_address(contract_address), abi=self._abi)

    def output_types(self, method_name: str) -> List[str]:
        for entry in self._abi:
            if entry.get("type") == "function" and entry.get("name") == method_name:
                return [o["type"] for o in entry.get("outputs", [])]
        return []

    def build_mutation(self, contract_address: str, method_name: str, args: Sequence[Any]) -> str:
        contract = self._contract(contract_address)
        try:
            return contract.encode_abi(method_name, args=list(args))
        except (Web3Exception, AttributeError, TypeError, ValueError) as e:
            raise PreconditionError(f"Cannot encode {method_name}: {e}") from e

    def call(self, contract_address: str, encoded_call: str, output_types: Sequence[str]) -> Tuple[Any, ...]:
        to = assert_address(contract_address)
        try:
            raw = self._w3.eth.call({"to": to, "data": encoded_call})
        except ContractLogicError as e:
            raise TransactionRevertedError(f"Call reverted: {e}") from e
        except (Web3Exception, OSError) as e:
            logger.warning("eth_call to %s failed: %s", to, e)
            raise NetworkError(f"eth_call failed: {e}") from e
        return tuple(abi_decode(list(output_types), bytes(raw)))

    def read(self, contract_address: str, method_name: str, args: Sequence[Any] = ()) -> Tuple[Any, ...]:
        encoded = self.build_mutation(contract_address, method_name, args)
        return self.call(contract_address, encoded, self.output_types(method_name))
