"""
permitvault.eip712 — typed-data hashing and signatures for permits.

- domain     : EIP712Domain and the cached domain separator
- permit     : PermitMessage, struct hash and the two-stage signing digest
- signature  : validated (v, r, s) Signature, signer recovery and signing
"""

from .domain import EIP712Domain, domain_separator
from .permit import PERMIT_TYPEHASH, PermitMessage, digest, struct_hash, typed_data_digest
from .signature import Signature, recover, sign

__all__ = [
    "EIP712Domain",
    "domain_separator",
    "PERMIT_TYPEHASH",
    "PermitMessage",
    "digest",
    "struct_hash",
    "typed_data_digest",
    "Signature",
    "recover",
    "sign",
]
