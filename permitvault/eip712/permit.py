"""
permitvault.eip712.permit — the Permit message and its signing digest.

Hashing is two explicit stages, as in EIP-712:

  1. struct hash   = keccak256(PERMIT_TYPEHASH ‖ pad32(owner) ‖ pad32(spender)
                               ‖ u256(value) ‖ u256(nonce) ‖ u256(deadline))
  2. signing digest = keccak256(0x19 ‖ 0x01 ‖ domain_separator ‖ struct_hash)

Stage 2 is what ties a permit to one domain; keep the stages separate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Final

from ..utils.bytes import (address_word, checksum, require_u256, to_address,
                           u256_word)
from ..utils.hash import keccak256, keccak256_text
from .domain import EIP712DOMAIN_FIELDS, EIP712Domain

PERMIT_TYPE: Final[str] = (
    "Permit(address owner,address spender,uint256 value,uint256 nonce,uint256 deadline)"
)
PERMIT_TYPEHASH: Final[bytes] = keccak256_text(PERMIT_TYPE)

PERMIT_FIELDS = (
    {"name": "owner", "type": "address"},
    {"name": "spender", "type": "address"},
    {"name": "value", "type": "uint256"},
    {"name": "nonce", "type": "uint256"},
    {"name": "deadline", "type": "uint256"},
)

# EIP-191 prefix for structured data (version byte 0x01).
EIP712_PREFIX: Final[bytes] = b"\x19\x01"


@dataclass(frozen=True)
class PermitMessage:
    """
    An authorization request. Built by the authorizer, hashed and verified
    once, then discarded; it is never stored.

    `owner` and `spender` accept 20 raw bytes or 0x hex and are stored as bytes.
    """

    owner: bytes
    spender: bytes
    value: int
    nonce: int
    deadline: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "owner", to_address(self.owner, name="owner"))
        object.__setattr__(self, "spender", to_address(self.spender, name="spender"))
        require_u256("value", self.value)
        require_u256("nonce", self.nonce)
        require_u256("deadline", self.deadline)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": checksum(self.owner),
            "spender": checksum(self.spender),
            "value": self.value,
            "nonce": self.nonce,
            "deadline": self.deadline,
        }

    def to_typed_data(self, domain: EIP712Domain) -> Dict[str, Any]:
        """Full EIP-712 document for wallet signing (eth_signTypedData_v4)."""
        return {
            "types": {
                "EIP712Domain": [dict(f) for f in EIP712DOMAIN_FIELDS],
                "Permit": [dict(f) for f in PERMIT_FIELDS],
            },
            "primaryType": "Permit",
            "domain": domain.to_dict(),
            "message": self.to_dict(),
        }


def struct_hash(message: PermitMessage) -> bytes:
    """Stage 1: hashStruct(Permit)."""
    return keccak256(
        PERMIT_TYPEHASH
        + address_word(message.owner)
        + address_word(message.spender)
        + u256_word(message.value, name="value")
        + u256_word(message.nonce, name="nonce")
        + u256_word(message.deadline, name="deadline")
    )


def typed_data_digest(domain_separator: bytes, message_hash: bytes) -> bytes:
    """Stage 2: domain-prefixed final digest."""
    if len(domain_separator) != 32 or len(message_hash) != 32:
        raise ValueError("domain separator and struct hash must be 32 bytes")
    return keccak256(EIP712_PREFIX + bytes(domain_separator) + bytes(message_hash))


def digest(domain_separator: bytes, message: PermitMessage) -> bytes:
    """The 32-byte hash a permit signature commits to."""
    return typed_data_digest(domain_separator, struct_hash(message))


__all__ = [
    "PERMIT_TYPE",
    "PERMIT_TYPEHASH",
    "PERMIT_FIELDS",
    "PermitMessage",
    "struct_hash",
    "typed_data_digest",
    "digest",
]
