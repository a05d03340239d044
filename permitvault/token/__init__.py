"""
permitvault.token — the permit authority and the token that embeds it.
"""

from .authority import AllowanceGrant, PermitAuthority, coerce_signature
from .fungible import PermitToken

__all__ = ["AllowanceGrant", "PermitAuthority", "PermitToken", "coerce_signature"]
