# erc20/wallet_io.py
from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount

from chain_utils import assert_address
from errors import AuthenticationError

logger = logging.getLogger(__name__)


class KeyStore:
    """
    KEYSTORE_DIR/<address>.json 에 V3 keystore(암호화된 개인키) 보관.
    발신자 주소 + 패스프레이즈로 서명 계정을 연다.
    """

    def __init__(self, directory: Path, kdf: Optional[str] = None, iterations: Optional[int] = None):
        self.directory = Path(directory)
        self._kdf = kdf
        self._iterations = iterations

    def path_for(self, address: str) -> Path:
        return self.directory / f"{assert_address(address).lower()}.json"

    def unlock(self, sender_address: str, passphrase: str) -> LocalAccount:
        sender = assert_address(sender_address)
        p = self.path_for(sender)
        if not p.exists():
            raise AuthenticationError(f"Unknown sender: {sender}")

        try:
            keyfile = json.loads(p.read_text(encoding="utf-8"))
            private_key = Account.decrypt(keyfile, passphrase or "")
        except (ValueError, KeyError, TypeError, NotImplementedError):
            logger.warning("keystore unlock failed for %s", sender)
            raise AuthenticationError(f"Cannot unlock keystore for {sender}") from None

        account = Account.from_key(private_key)
        if account.address != sender:
            raise AuthenticationError(f"Keystore {p.name} does not belong to {sender}")
        return account

    def save(self, account: LocalAccount, passphrase: str) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        keyfile = Account.encrypt(account.key, passphrase, kdf=self._kdf, iterations=self._iterations)
        p = self.path_for(account.address)
        p.write_text(json.dumps(keyfile), encoding="utf-8")
        return p

    def create(self, passphrase: str) -> str:
        account = Account.create()
        self.save(account, passphrase)
        logger.info("created keystore for %s", account.address)
        return account.address
