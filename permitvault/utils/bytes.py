"""
permitvault.utils.bytes
=======================

Byte handling helpers used by the typed-data encoder and the ledgers:

- Hex helpers: to_hex / from_hex, 0x-prefix management
- Integer words: u256_word (32-byte big-endian ABI word)
- Address normalization: to_address accepts 20 raw bytes or a 0x hex string
  and always returns the canonical 20-byte identifier
- Amount guards: require_u256

Examples
--------
>>> to_hex(b"\\x01\\x02")
'0x0102'
>>> u256_word(1)[-1]
1
>>> to_address("0x" + "11" * 20) == b"\\x11" * 20
True
"""

from __future__ import annotations

from typing import Any, Union

from eth_utils import to_checksum_address

from ..errors import InvalidAddress, InvalidAmount

BytesLike = Union[bytes, bytearray, memoryview]
AddressLike = Union[bytes, bytearray, str]

ADDRESS_LEN = 20
ZERO_ADDRESS = b"\x00" * ADDRESS_LEN
U256_MAX = 2**256 - 1


# -----------------------
# Basic bytes/hex helpers
# -----------------------


def strip0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def to_hex(data: BytesLike, *, prefix: bool = True) -> str:
    """Return lowercase hex string of data."""
    h = bytes(data).hex()
    return f"0x{h}" if prefix else h


def from_hex(h: str) -> bytes:
    """Parse a hex string with or without 0x prefix."""
    if not isinstance(h, str):
        raise TypeError("from_hex expects str")
    h = strip0x(h.strip())
    if len(h) % 2 == 1:
        h = "0" + h
    try:
        return bytes.fromhex(h)
    except ValueError as e:
        raise ValueError(f"invalid hex string: {e}") from e


# ---------------------
# Integers
# ---------------------


def require_u256(name: str, n: Any) -> int:
    """Ensure `n` is an int in [0, 2**256-1] (bool is rejected)."""
    if isinstance(n, bool) or not isinstance(n, int) or n < 0 or n > U256_MAX:
        raise InvalidAmount(name, n)
    return n


def u256_word(n: int, *, name: str = "value") -> bytes:
    """32-byte big-endian ABI word for an unsigned integer."""
    return require_u256(name, n).to_bytes(32, "big")


# ---------------------
# Addresses
# ---------------------


def to_address(value: AddressLike, *, name: str = "address") -> bytes:
    """
    Normalize an account identifier to 20 raw bytes.

    Accepts bytes/bytearray of length 20 or a 0x-prefixed 40-hex-char string
    (any letter case; checksum casing is not enforced).
    """
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str):
        s = value.strip()
        if not s.startswith(("0x", "0X")) or len(s) != 2 + 2 * ADDRESS_LEN:
            raise InvalidAddress(f"{name} must be 0x-prefixed 20-byte hex", value=value)
        try:
            raw = bytes.fromhex(s[2:])
        except ValueError as e:
            raise InvalidAddress(f"{name} is not valid hex", value=value) from e
    else:
        raise InvalidAddress(f"{name} must be bytes or hex str", type=type(value).__name__)
    if len(raw) != ADDRESS_LEN:
        raise InvalidAddress(f"{name} must be {ADDRESS_LEN} bytes", length=len(raw))
    return raw


def address_word(value: AddressLike) -> bytes:
    """Left-pad a 20-byte address to a 32-byte ABI word."""
    return b"\x00" * 12 + to_address(value)


def checksum(value: AddressLike) -> str:
    """EIP-55 mixed-case representation for display and wallet tooling."""
    return to_checksum_address(to_address(value))


__all__ = [
    "BytesLike",
    "AddressLike",
    "ADDRESS_LEN",
    "ZERO_ADDRESS",
    "U256_MAX",
    "strip0x",
    "to_hex",
    "from_hex",
    "require_u256",
    "u256_word",
    "to_address",
    "address_word",
    "checksum",
]
