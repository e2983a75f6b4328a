from __future__ import annotations

import json
from pathlib import Path

import pytest

from erc20 import gen_wallet
from erc20.wallet_io import KeyStore
from errors import AuthenticationError


def test_create_then_unlock(tmp_path: Path) -> None:
    ks = KeyStore(tmp_path, kdf="pbkdf2", iterations=2)

    address = ks.create("s3cret")

    assert ks.path_for(address).exists()
    assert ks.unlock(address, "s3cret").address == address
    assert ks.unlock(address.lower(), "s3cret").address == address


def test_keystore_file_belonging_to_someone_else_is_rejected(tmp_path: Path) -> None:
    ks = KeyStore(tmp_path, kdf="pbkdf2", iterations=2)
    a = ks.create("pw")
    b = ks.create("pw")
    # copy a's key under b's name
    ks.path_for(b).write_text(ks.path_for(a).read_text(encoding="utf-8"), encoding="utf-8")

    with pytest.raises(AuthenticationError):
        ks.unlock(b, "pw")


def test_gen_wallet_prints_address_only(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    rc = gen_wallet.main(["--dir", str(tmp_path), "--passphrase", "pw"])

    out = capsys.readouterr().out.strip()
    assert rc == 0
    assert out.startswith("0x") and len(out) == 42
    keyfile = json.loads((tmp_path / f"{out.lower()}.json").read_text(encoding="utf-8"))
    assert "crypto" in keyfile


@pytest.mark.parametrize("content", ["not json at all", "{}", "[]", '{"version": 3}', '{"version": 7}'])
def test_unreadable_keystore_file_is_authentication_error(tmp_path: Path, content: str) -> None:
    ks = KeyStore(tmp_path, kdf="pbkdf2", iterations=2)
    address = ks.create("pw")
    ks.path_for(address).write_text(content, encoding="utf-8")

    with pytest.raises(AuthenticationError):
        ks.unlock(address, "pw")
