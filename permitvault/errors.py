"""
permitvault.errors
------------------

A small, consistent error system for the permit engine and the vault.

Design goals
------------
- One root `PermitVaultError` with a machine-stable `code` and optional `data`.
- One concrete subclass per failure kind a caller must be able to tell apart
  (expired permit, bad signature, wrong signer, stale nonce, low balance).
- Safe JSON representation (`to_dict`) suitable for logs and CLI output.
- Every authorization failure is terminal: a fresh permit is required.

This module uses only stdlib to avoid import cycles with the state and
crypto layers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------


class ErrorCode(str, Enum):
    # Permit authorization
    PERMIT_DEADLINE_EXPIRED = "PERMIT_DEADLINE_EXPIRED"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    INVALID_SIGNER = "INVALID_SIGNER"
    NONCE_MISMATCH = "NONCE_MISMATCH"
    NONCE_OVERFLOW = "NONCE_OVERFLOW"

    # Ledger
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    INSUFFICIENT_ALLOWANCE = "INSUFFICIENT_ALLOWANCE"

    # Input validation
    INVALID_ADDRESS = "INVALID_ADDRESS"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_KEY = "INVALID_KEY"

    # Environment
    CONFIG = "CONFIG"
    CLOCK = "CLOCK"


class SignatureFailure(str, Enum):
    """Distinct reasons a signature is rejected (all map to INVALID_SIGNATURE)."""

    MALFORMED = "malformed"
    BAD_RECOVERY_ID = "bad_recovery_id"
    SCALAR_RANGE = "scalar_range"
    HIGH_S = "high_s"
    RECOVERY_FAILED = "recovery_failed"
    ZERO_SIGNER = "zero_signer"


@dataclass(eq=False)
class PermitVaultError(Exception):
    """
    Root error for permitvault components.

    Attributes
    ----------
    code: str
        Machine-stable error code (see ErrorCode).
    message: str
        Human hint suitable for logs; never carries key material.
    data: dict
        Optional machine data (addresses, nonces, amounts). JSON-serializable.
    retryable: bool
        Whether the same call may succeed later without changing inputs.
    """

    code: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    retryable: bool = False
    cause: Optional[BaseException] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        super().__init__(f"{self.code}: {self.message}")

    def with_context(self, **ctx: Any) -> "PermitVaultError":
        """Return a *new* error with extra context merged (does not mutate)."""
        err = type(self).__new__(type(self))
        err.__dict__.update(self.__dict__)
        Exception.__init__(err, *self.args)
        err.data = {**self.data, **_jsonmap(ctx)}
        return err

    def to_dict(self, include_cause: bool = False) -> Dict[str, Any]:
        """JSON-safe shape suitable for logs and CLI output."""
        out: Dict[str, Any] = {
            "code": str(self.code),
            "message": self.message,
            "data": _jsonmap(self.data),
            "retryable": self.retryable,
        }
        if include_cause and self.cause is not None:
            out["cause"] = {"type": type(self.cause).__name__, "message": str(self.cause)}
        return out

    def __str__(self) -> str:
        parts = [f"{self.code}: {self.message}"]
        if self.data:
            preview = ", ".join(f"{k}={_preview(v)}" for k, v in self.data.items())
            parts.append(f"[{preview}]")
        return " ".join(parts)


# ---------------------------------------------------------------------------
# Permit authorization failures
# ---------------------------------------------------------------------------


class PermitExpired(PermitVaultError):
    def __init__(self, deadline: int, now: int) -> None:
        super().__init__(
            code=ErrorCode.PERMIT_DEADLINE_EXPIRED.value,
            message="permit deadline expired",
            data={"deadline": deadline, "now": now},
        )


class InvalidSignature(PermitVaultError):
    """
    The signature could not be parsed or did not recover to a usable signer.

    `reason` tells the failure modes apart; the code stays INVALID_SIGNATURE.
    """

    def __init__(self, reason: SignatureFailure, message: str = "invalid signature", **data: Any) -> None:
        super().__init__(
            code=ErrorCode.INVALID_SIGNATURE.value,
            message=message,
            data={"reason": reason.value, **_jsonmap(data)},
        )
        self.reason = reason


class InvalidSigner(PermitVaultError):
    def __init__(self, expected: bytes, recovered: bytes) -> None:
        super().__init__(
            code=ErrorCode.INVALID_SIGNER.value,
            message="recovered signer does not match owner",
            data={"expected": "0x" + expected.hex(), "recovered": "0x" + recovered.hex()},
        )


class NonceMismatch(PermitVaultError):
    def __init__(self, account: bytes, expected: int, current: int) -> None:
        super().__init__(
            code=ErrorCode.NONCE_MISMATCH.value,
            message="nonce does not match the current ledger nonce",
            data={"account": "0x" + account.hex(), "expected": expected, "current": current},
        )


class NonceOverflow(PermitVaultError):
    def __init__(self, account: bytes) -> None:
        super().__init__(
            code=ErrorCode.NONCE_OVERFLOW.value,
            message="nonce exhausted (u256 max)",
            data={"account": "0x" + account.hex()},
        )


# ---------------------------------------------------------------------------
# Ledger failures
# ---------------------------------------------------------------------------


class InsufficientBalance(PermitVaultError):
    def __init__(self, account: bytes, needed: int, balance: int) -> None:
        super().__init__(
            code=ErrorCode.INSUFFICIENT_BALANCE.value,
            message="insufficient balance",
            data={"account": "0x" + account.hex(), "needed": needed, "balance": balance},
        )


class InsufficientAllowance(PermitVaultError):
    def __init__(self, owner: bytes, spender: bytes, needed: int, allowance: int) -> None:
        super().__init__(
            code=ErrorCode.INSUFFICIENT_ALLOWANCE.value,
            message="allowance too low",
            data={
                "owner": "0x" + owner.hex(),
                "spender": "0x" + spender.hex(),
                "needed": needed,
                "allowance": allowance,
            },
        )


# ---------------------------------------------------------------------------
# Input / environment failures
# ---------------------------------------------------------------------------


class InvalidAddress(PermitVaultError):
    def __init__(self, message: str = "invalid address", **data: Any) -> None:
        super().__init__(code=ErrorCode.INVALID_ADDRESS.value, message=message, data=_jsonmap(data))


class InvalidAmount(PermitVaultError):
    def __init__(self, name: str, value: Any) -> None:
        super().__init__(
            code=ErrorCode.INVALID_AMOUNT.value,
            message=f"{name} must be an integer in [0, 2**256)",
            data={"name": name, "value": _coerce_json(value)},
        )


class InvalidKey(PermitVaultError):
    """A private key that is not 32 bytes in [1, n-1]. Never echoes the key."""

    def __init__(self, message: str = "invalid private key") -> None:
        super().__init__(code=ErrorCode.INVALID_KEY.value, message=message)


class ConfigError(PermitVaultError):
    def __init__(self, message: str = "invalid configuration", **data: Any) -> None:
        super().__init__(code=ErrorCode.CONFIG.value, message=message, data=_jsonmap(data))


class ClockError(PermitVaultError):
    def __init__(self, current: int, requested: int) -> None:
        super().__init__(
            code=ErrorCode.CLOCK.value,
            message="clock cannot move backwards",
            data={"current": current, "requested": requested},
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _jsonmap(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: _coerce_json(v) for k, v in data.items()}


def _coerce_json(v: Any) -> Any:
    # Keep JSON primitives; hex-encode bytes; stringify the rest.
    if v is None or isinstance(v, (bool, int, float, str, list, dict)):
        return v
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    if isinstance(v, Enum):
        return v.value
    return str(v)


def _preview(v: Any, limit: int = 96) -> str:
    s = str(_coerce_json(v))
    return s if len(s) <= limit else s[:limit] + "…"


__all__ = [
    "ErrorCode",
    "SignatureFailure",
    "PermitVaultError",
    "PermitExpired",
    "InvalidSignature",
    "InvalidSigner",
    "NonceMismatch",
    "NonceOverflow",
    "InsufficientBalance",
    "InsufficientAllowance",
    "InvalidAddress",
    "InvalidAmount",
    "InvalidKey",
    "ConfigError",
    "ClockError",
]
