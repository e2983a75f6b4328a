# backend/errors.py
# 토큰 어댑터 에러 분류: precondition / submission / mirror
from __future__ import annotations


class TokenError(Exception):
    code = "token_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict:
        return {"ok": False, "error": self.code, "message": self.message}


# ---------- precondition: 네트워크 호출 전에 실패 ----------

class PreconditionError(TokenError):
    code = "precondition_failed"


class MissingGasPriceError(PreconditionError):
    code = "missing_gas_price"

    def __init__(self, message: str = "GasPrice is mandatory"):
        super().__init__(message)


class InvalidAddressError(PreconditionError):
    code = "invalid_address"


class InvalidAmountError(PreconditionError):
    code = "invalid_amount"


# ---------- submission: 체인 쓰기 실패 (호출자에게 전달) ----------

class SubmissionError(TokenError):
    code = "submission_failed"


class AuthenticationError(SubmissionError):
    code = "authentication_failed"


class TransactionRevertedError(SubmissionError):
    code = "transaction_reverted"


class NetworkError(SubmissionError):
    code = "network_error"


# ---------- mirror: 캐시 쓰기 실패 (로그만 남기고 흡수) ----------

class MirrorError(TokenError):
    code = "mirror_failed"


class StorageUnavailableError(MirrorError):
    code = "storage_unavailable"


class ThroughputExceededError(MirrorError):
    code = "throughput_exceeded"
