"""
permitvault — signed-permit deposits into a custodial vault.

A token holder signs an EIP-712 `Permit` naming the vault as spender; anyone
can submit it, and the vault verifies the signature, consumes the owner's
nonce and pulls the funds in one atomic transition.

    from permitvault import LocalChain

    chain = LocalChain()
    token = chain.deploy_token(owner)
    vault = chain.deploy_vault(owner, token)
    vault.deposit_with_permit(value, deadline, signature, nonce, owner)
"""

from .chain import LocalChain
from .errors import ErrorCode, PermitVaultError
from .token import PermitAuthority, PermitToken
from .vault import DepositReceipt, Vault
from .version import __version__

__all__ = [
    "DepositReceipt",
    "ErrorCode",
    "LocalChain",
    "PermitAuthority",
    "PermitToken",
    "PermitVaultError",
    "Vault",
    "__version__",
]
