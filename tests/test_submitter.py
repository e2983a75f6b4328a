from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3.exceptions import ContractLogicError, TimeExhausted

from conftest import CONTRACT
from erc20.submitter import TransactionReceipt, TransactionSubmitter
from erc20.wallet_io import KeyStore
from errors import AuthenticationError, InvalidAddressError, MissingGasPriceError, NetworkError, TransactionRevertedError

RAW_HASH = bytes.fromhex("cd" * 32)


class FakeEth:
    def __init__(self, status: int = 1, send_error=None, wait_error=None, estimate: int = 100_000):
        self.status = status
        self.send_error = send_error
        self.wait_error = wait_error
        self.estimate = estimate
        self.calls: list = []

    def get_transaction_count(self, address, block_identifier):
        self.calls.append(("nonce", address, block_identifier))
        return 3

    def estimate_gas(self, tx):
        self.calls.append(("estimate", dict(tx)))
        return self.estimate

    def send_raw_transaction(self, raw):
        self.calls.append(("send", raw))
        if self.send_error is not None:
            raise self.send_error
        return RAW_HASH

    def wait_for_transaction_receipt(self, tx_hash, timeout, poll_latency):
        self.calls.append(("wait", tx_hash, timeout, poll_latency))
        if self.wait_error is not None:
            raise self.wait_error
        return {"transactionHash": tx_hash, "status": self.status, "blockNumber": 12, "gasUsed": 30_000}


@pytest.fixture
def keystore(tmp_path: Path) -> KeyStore:
    # cheap KDF settings keep the test fast
    return KeyStore(tmp_path / "keystore", kdf="pbkdf2", iterations=2)


@pytest.fixture
def sender(keystore: KeyStore) -> str:
    return keystore.create("correct horse")


@pytest.fixture
def signed(monkeypatch) -> list:
    """Transaction dicts handed to the signer, in order."""
    seen: list = []
    sign = LocalAccount.sign_transaction

    def recording_sign(self, tx, *args, **kwargs):
        seen.append(dict(tx))
        return sign(self, tx, *args, **kwargs)

    monkeypatch.setattr(LocalAccount, "sign_transaction", recording_sign)
    return seen


def _submitter(keystore: KeyStore, eth: FakeEth) -> TransactionSubmitter:
    return TransactionSubmitter(SimpleNamespace(eth=eth), keystore, chain_id=1337, receipt_timeout=5, poll_latency=0.01)


def test_missing_gas_price_fails_before_any_network_call(keystore: KeyStore, sender: str) -> None:
    eth = FakeEth()
    with pytest.raises(MissingGasPriceError):
        _submitter(keystore, eth).submit(CONTRACT, "0xdeadbeef", sender, "correct horse", gas_price=None)
    assert eth.calls == []


def test_wrong_passphrase_is_authentication_error(keystore: KeyStore, sender: str) -> None:
    eth = FakeEth()
    with pytest.raises(AuthenticationError):
        _submitter(keystore, eth).submit(CONTRACT, "0xdeadbeef", sender, "wrong", gas_price=1)
    assert eth.calls == []


def test_unknown_sender_is_authentication_error(keystore: KeyStore) -> None:
    stranger = Account.create().address
    with pytest.raises(AuthenticationError):
        _submitter(keystore, FakeEth()).submit(CONTRACT, "0xdeadbeef", stranger, "pw", gas_price=1)


def test_malformed_sender_is_invalid_address(keystore: KeyStore) -> None:
    with pytest.raises(InvalidAddressError):
        _submitter(keystore, FakeEth()).submit(CONTRACT, "0xdeadbeef", "0x12", "pw", gas_price=1)


def test_successful_submit_returns_confirmed_receipt(keystore: KeyStore, sender: str) -> None:
    eth = FakeEth()

    receipt = _submitter(keystore, eth).submit(
        CONTRACT, "0xdeadbeef", sender, "correct horse", gas_price=20_000_000_000, gas_limit=4_700_000
    )

    assert isinstance(receipt, TransactionReceipt)
    assert receipt.tx_hash == "0x" + "cd" * 32
    assert receipt.status == 1
    assert receipt.block_number == 12
    assert receipt.gas_used == 30_000
    assert receipt.contract_address == CONTRACT
    kinds = [c[0] for c in eth.calls]
    assert kinds == ["nonce", "send", "wait"]
    assert eth.calls[0] == ("nonce", sender, "pending")
    assert eth.calls[2][2:] == (5, 0.01)


def test_gas_limit_is_estimated_with_buffer_when_omitted(keystore: KeyStore, sender: str, signed: list) -> None:
    eth = FakeEth(estimate=100_000)

    _submitter(keystore, eth).submit(CONTRACT, "0xdeadbeef", sender, "correct horse", gas_price=1)

    estimate = [c for c in eth.calls if c[0] == "estimate"]
    assert len(estimate) == 1
    tx = estimate[0][1]
    assert tx["to"] == CONTRACT
    assert tx["data"] == "0xdeadbeef"
    assert tx["gasPrice"] == 1
    assert tx["nonce"] == 3
    # min(100_000 * 1.2, 100_000 + 150_000)
    assert len(signed) == 1
    assert signed[0]["gas"] == 120_000


def test_large_estimate_is_capped_at_fixed_headroom(keystore: KeyStore, sender: str, signed: list) -> None:
    _submitter(keystore, FakeEth(estimate=1_000_000)).submit(CONTRACT, "0xdeadbeef", sender, "correct horse", gas_price=1)

    assert signed[0]["gas"] == 1_150_000


def test_receipt_is_immutable(keystore: KeyStore, sender: str) -> None:
    receipt = _submitter(keystore, FakeEth()).submit(CONTRACT, "0xdeadbeef", sender, "correct horse", gas_price=1)
    with pytest.raises(Exception):
        receipt.status = 0  # type: ignore[misc]
    with pytest.raises(TypeError):
        receipt.raw["status"] = 0  # type: ignore[index]


def test_failed_status_is_reverted(keystore: KeyStore, sender: str) -> None:
    with pytest.raises(TransactionRevertedError):
        _submitter(keystore, FakeEth(status=0)).submit(CONTRACT, "0xdeadbeef", sender, "correct horse", gas_price=1)


def test_contract_logic_error_is_reverted(keystore: KeyStore, sender: str) -> None:
    eth = FakeEth(send_error=ContractLogicError("execution reverted"))
    with pytest.raises(TransactionRevertedError):
        _submitter(keystore, eth).submit(CONTRACT, "0xdeadbeef", sender, "correct horse", gas_price=1)


@pytest.mark.parametrize(
    "eth",
    [
        FakeEth(wait_error=TimeExhausted("no receipt")),
        FakeEth(send_error=ConnectionError("connection refused")),
    ],
)
def test_timeouts_and_transport_failures_are_network_errors(keystore: KeyStore, sender: str, eth: FakeEth) -> None:
    with pytest.raises(NetworkError):
        _submitter(keystore, eth).submit(CONTRACT, "0xdeadbeef", sender, "correct horse", gas_price=1)
    # no automatic retry
    assert [c[0] for c in eth.calls].count("send") == 1
