"""
permitvault.utils.hash
======================

Keccak-256 wrappers (Ethereum-style, *not* NIST SHA3-256) used for every
typed-data hash. Backed by `eth_utils.keccak`.
"""

from __future__ import annotations

from eth_utils import keccak

from .bytes import BytesLike


def keccak256(data: BytesLike) -> bytes:
    """Keccak-256 digest of raw bytes."""
    return keccak(bytes(data))


def keccak256_text(text: str) -> bytes:
    """Keccak-256 digest of the UTF-8 encoding of `text`."""
    return keccak(text.encode("utf-8"))


__all__ = ["keccak256", "keccak256_text"]
