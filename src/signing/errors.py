from __future__ import annotations

from typing import Any, Dict, Optional


# ARC-0001 error codes
USER_REJECTED = 4001
UNAUTHORIZED = 4100
UNSUPPORTED_OPERATION = 4200
TOO_MANY_TRANSACTIONS = 4201
UNINITIALIZED_WALLET = 4202
FAILURE = 4300


class SigningError(RuntimeError):
    """Base error for the co-signing pipeline."""


class SignTxnsError(SigningError):
    """Structured error reported by a provider: `{code, message, ...}`."""

    def __init__(self, code: int, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data: Dict[str, Any] = dict(data or {})

    def __str__(self) -> str:
        return f"{self.message} (code={self.code})"

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.data}

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SignTxnsError":
        data = {k: v for k, v in payload.items() if k not in ("code", "message")}
        try:
            code = int(payload.get("code", FAILURE))
        except (TypeError, ValueError):
            code = FAILURE
        return cls(code, str(payload.get("message") or "Signing failed"), data)


class SigningTimeoutError(SignTxnsError):
    """The provider did not answer within its configured timeout."""

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(FAILURE, message, data)


class InvalidTransactionGroupError(SigningError, TypeError):
    """Input is not one of the accepted transaction group shapes."""


class SignedResultFormatError(SigningError, ValueError):
    """Provider returned a signed entry in an unrecognized representation."""


__all__ = [
    "USER_REJECTED",
    "UNAUTHORIZED",
    "UNSUPPORTED_OPERATION",
    "TOO_MANY_TRANSACTIONS",
    "UNINITIALIZED_WALLET",
    "FAILURE",
    "SigningError",
    "SignTxnsError",
    "SigningTimeoutError",
    "InvalidTransactionGroupError",
    "SignedResultFormatError",
]
