"""
permitvault.eip712.domain — the EIP-712 domain separator.

The separator binds every signature to one deployed token instance:

    DOMAIN_SEPARATOR = keccak256(
        EIP712DOMAIN_TYPEHASH
        ‖ keccak256(name)
        ‖ keccak256(version)
        ‖ u256(chain_id)
        ‖ pad32(verifying_contract)
    )

Every field occupies its own 32-byte word (dynamic strings are hashed first),
so no two distinct domains share a preimage. Changing any field invalidates
all outstanding permits signed for the old domain.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Final

from ..utils.bytes import AddressLike, address_word, checksum, to_address, u256_word
from ..utils.hash import keccak256, keccak256_text

EIP712DOMAIN_TYPE: Final[str] = (
    "EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)
EIP712DOMAIN_TYPEHASH: Final[bytes] = keccak256_text(EIP712DOMAIN_TYPE)

# Field layout used by wallets (eth_signTypedData_v4) for this domain shape.
EIP712DOMAIN_FIELDS = (
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
)


def domain_separator(name: str, version: str, chain_id: int, verifying_contract: AddressLike) -> bytes:
    """Compute the 32-byte domain separator. Pure and deterministic."""
    if not isinstance(name, str) or not isinstance(version, str):
        raise TypeError("name and version must be str")
    return keccak256(
        EIP712DOMAIN_TYPEHASH
        + keccak256_text(name)
        + keccak256_text(version)
        + u256_word(chain_id, name="chain_id")
        + address_word(verifying_contract)
    )


@dataclass(frozen=True)
class EIP712Domain:
    """
    Domain context of one deployed instance.

    The separator is computed once on construction and cached for the
    lifetime of the object.
    """

    name: str
    version: str
    chain_id: int
    verifying_contract: bytes
    separator: bytes = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        contract = to_address(self.verifying_contract, name="verifying_contract")
        object.__setattr__(self, "verifying_contract", contract)
        object.__setattr__(
            self,
            "separator",
            domain_separator(self.name, self.version, self.chain_id, contract),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Wallet-style domain object (camelCase keys, checksummed contract)."""
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
            "verifyingContract": checksum(self.verifying_contract),
        }


__all__ = [
    "EIP712DOMAIN_TYPE",
    "EIP712DOMAIN_TYPEHASH",
    "EIP712DOMAIN_FIELDS",
    "EIP712Domain",
    "domain_separator",
]
