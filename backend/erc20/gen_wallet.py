# erc20/gen_wallet.py
# 새 발신자 keystore 생성: gen-keystore [--dir DIR]
# 개인키는 출력하지 않고 주소만 출력한다.
import argparse
import getpass
from pathlib import Path
from typing import Optional, Sequence

from erc20.wallet_io import KeyStore
from settings import ROOT


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="gen-keystore", description="Create an encrypted sender keystore.")
    parser.add_argument("--dir", default=str(ROOT / "erc20" / "keystore"), help="keystore directory")
    parser.add_argument("--passphrase", default=None, help="prompted when omitted")
    args = parser.parse_args(argv)

    passphrase = args.passphrase
    if passphrase is None:
        passphrase = getpass.getpass("Passphrase: ")
        if passphrase != getpass.getpass("Repeat passphrase: "):
            parser.error("passphrases do not match")
    if not passphrase:
        parser.error("empty passphrase")

    address = KeyStore(Path(args.dir)).create(passphrase)
    print(address)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
