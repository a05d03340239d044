"""
permitvault.eip712.signature — secp256k1 signature parsing and signer recovery.

A `Signature` is a validated (v, r, s) triple:

- v is the recovery id, normalized to {0, 1} (27/28 accepted on input)
- r, s are scalars in [1, N-1]
- s is in the lower half of the curve order (N/2); high-s signatures are
  malleable twins and are rejected

Signatures are only built through the fallible parsers (`from_vrs`,
`from_bytes`, `from_hex`). `recover()` never returns the zero address: every
failure raises `InvalidSignature` with a distinct `reason`.

Curve operations are delegated to `eth_keys`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Union

from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError

from ..errors import InvalidKey, InvalidSignature, SignatureFailure
from ..utils.bytes import ZERO_ADDRESS, from_hex

SECP256K1_N: Final[int] = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
SECP256K1_HALF_N: Final[int] = SECP256K1_N // 2

SIGNATURE_LEN: Final[int] = 65
_V_OFFSET: Final[int] = 27

ScalarLike = Union[int, bytes, bytearray]


def _scalar(name: str, x: ScalarLike) -> int:
    if isinstance(x, bool):
        raise InvalidSignature(SignatureFailure.MALFORMED, f"{name} must be int or 32 bytes")
    if isinstance(x, (bytes, bytearray)):
        if len(x) != 32:
            raise InvalidSignature(
                SignatureFailure.MALFORMED, f"{name} must be exactly 32 bytes", length=len(x)
            )
        return int.from_bytes(bytes(x), "big")
    if isinstance(x, int):
        return x
    raise InvalidSignature(SignatureFailure.MALFORMED, f"{name} must be int or 32 bytes")


@dataclass(frozen=True)
class Signature:
    """Validated secp256k1 signature (recovery id, r, s)."""

    v: int
    r: int
    s: int

    def __post_init__(self) -> None:
        if isinstance(self.v, bool) or not isinstance(self.v, int) or self.v not in (0, 1):
            raise InvalidSignature(SignatureFailure.BAD_RECOVERY_ID, "recovery id must be 0 or 1", v=self.v)
        for name, val in (("r", self.r), ("s", self.s)):
            if isinstance(val, bool) or not isinstance(val, int):
                raise InvalidSignature(SignatureFailure.MALFORMED, f"{name} must be int")
            if not (1 <= val < SECP256K1_N):
                raise InvalidSignature(SignatureFailure.SCALAR_RANGE, f"{name} out of range")
        if self.s > SECP256K1_HALF_N:
            raise InvalidSignature(SignatureFailure.HIGH_S, "s is not in the lower half order")

    # ---------------- parsers ----------------

    @classmethod
    def from_vrs(cls, v: int, r: ScalarLike, s: ScalarLike) -> "Signature":
        """Parse wallet-style components; v may be 0/1 or 27/28."""
        if isinstance(v, bool) or not isinstance(v, int):
            raise InvalidSignature(SignatureFailure.MALFORMED, "v must be int")
        if v in (27, 28):
            v -= _V_OFFSET
        return cls(v=v, r=_scalar("r", r), s=_scalar("s", s))

    @classmethod
    def from_bytes(cls, raw: bytes) -> "Signature":
        """Parse the 65-byte `r ‖ s ‖ v` encoding."""
        if not isinstance(raw, (bytes, bytearray)) or len(raw) != SIGNATURE_LEN:
            raise InvalidSignature(
                SignatureFailure.MALFORMED,
                f"signature must be {SIGNATURE_LEN} bytes",
                length=len(raw) if isinstance(raw, (bytes, bytearray)) else None,
            )
        raw = bytes(raw)
        return cls.from_vrs(raw[64], raw[:32], raw[32:64])

    @classmethod
    def from_hex(cls, h: str) -> "Signature":
        try:
            raw = from_hex(h)
        except (TypeError, ValueError) as e:
            raise InvalidSignature(SignatureFailure.MALFORMED, "signature is not valid hex") from e
        return cls.from_bytes(raw)

    # ---------------- encoders ----------------

    @property
    def v_ethereum(self) -> int:
        """Recovery id in the 27/28 convention used by wallets and ecrecover."""
        return self.v + _V_OFFSET

    def to_bytes(self) -> bytes:
        return self.r.to_bytes(32, "big") + self.s.to_bytes(32, "big") + bytes([self.v_ethereum])

    def to_hex(self) -> str:
        return "0x" + self.to_bytes().hex()


def recover(digest: bytes, signature: Signature) -> bytes:
    """
    Recover the 20-byte signer address for `digest`.

    Raises InvalidSignature (reason `recovery_failed` or `zero_signer`)
    instead of ever returning a placeholder identity.
    """
    if not isinstance(digest, (bytes, bytearray)) or len(digest) != 32:
        raise InvalidSignature(SignatureFailure.MALFORMED, "digest must be 32 bytes")
    try:
        sig = keys.Signature(vrs=(signature.v, signature.r, signature.s))
        pub = sig.recover_public_key_from_msg_hash(bytes(digest))
    except (BadSignature, ValidationError) as e:
        raise InvalidSignature(SignatureFailure.RECOVERY_FAILED, "public key recovery failed") from e
    signer = pub.to_canonical_address()
    if signer == ZERO_ADDRESS:
        raise InvalidSignature(SignatureFailure.ZERO_SIGNER, "signature recovers to the zero address")
    return signer


def _private_key(private_key: bytes | str) -> keys.PrivateKey:
    try:
        raw = from_hex(private_key) if isinstance(private_key, str) else bytes(private_key)
    except (TypeError, ValueError) as e:
        raise InvalidKey("private key is not valid hex") from e
    if len(raw) != 32 or not 0 < int.from_bytes(raw, "big") < SECP256K1_N:
        raise InvalidKey("private key must be 32 bytes in [1, n-1]")
    try:
        return keys.PrivateKey(raw)
    except ValidationError as e:
        raise InvalidKey() from e


def sign(digest: bytes, private_key: bytes | str) -> Signature:
    """
    Sign a 32-byte digest (deterministic RFC 6979 nonce, low-s).
    Used by tooling and tests; the authorization path never signs.
    """
    sig = _private_key(private_key).sign_msg_hash(bytes(digest))
    return Signature.from_vrs(sig.v, sig.r, sig.s)


def address_of(private_key: bytes | str) -> bytes:
    """The 20-byte address controlled by `private_key`."""
    return _private_key(private_key).public_key.to_canonical_address()


__all__ = [
    "SECP256K1_N",
    "SECP256K1_HALF_N",
    "Signature",
    "recover",
    "sign",
    "address_of",
]
