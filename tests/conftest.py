"""
Shared pytest fixtures:
- Well-known dev keypairs (hardhat/anvil accounts #0 and #1)
- A LocalChain on a manual clock with a deployed token and vault
- `sign_permit`: signs permits with eth-account, an implementation
  independent of permitvault's own encoder
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data

from permitvault.chain import LocalChain
from permitvault.clock import ManualClock
from permitvault.eip712.permit import PermitMessage
from permitvault.eip712.signature import Signature, address_of
from permitvault.token.fungible import PermitToken
from permitvault.vault import Vault

OWNER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
ADDR1_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"
ADDR2_KEY = "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a"

GENESIS_TIME = 1_700_000_000
UNIT = 10**18
SUPPLY = 10_000 * UNIT
AMOUNT = 100 * UNIT

SignPermit = Callable[..., Signature]


@pytest.fixture(autouse=True)
def _reset_logging():
    """CLI tests install root handlers; drop them so later tests start clean."""
    yield
    root = logging.getLogger()
    for h in list(root.handlers):
        if not type(h).__module__.startswith("_pytest"):
            root.removeHandler(h)


@pytest.fixture
def owner() -> bytes:
    return address_of(OWNER_KEY)


@pytest.fixture
def addr1() -> bytes:
    return address_of(ADDR1_KEY)


@pytest.fixture
def addr2() -> bytes:
    return address_of(ADDR2_KEY)


@pytest.fixture
def chain() -> LocalChain:
    return LocalChain(chain_id=31337, clock=ManualClock(GENESIS_TIME))


@pytest.fixture
def token(chain: LocalChain, owner: bytes) -> PermitToken:
    return chain.deploy_token(owner, "MyToken", "MTK", SUPPLY)


@pytest.fixture
def vault(chain: LocalChain, owner: bytes, token: PermitToken) -> Vault:
    return chain.deploy_vault(owner, token)


def _sign_typed(key: str, token: PermitToken, message: PermitMessage) -> Signature:
    signable = encode_typed_data(full_message=message.to_typed_data(token.domain))
    signed = Account.sign_message(signable, private_key=key)
    return Signature.from_vrs(signed.v, signed.r, signed.s)


@pytest.fixture
def sign_permit() -> SignPermit:
    """
    sign_permit(key, token, spender, value, deadline, nonce=None, owner=None)

    `owner` defaults to the key's address and `nonce` to the owner's current
    nonce on `token`, like a wallet would.
    """

    def _sign(
        key: str,
        token: PermitToken,
        spender: bytes,
        value: int,
        deadline: int,
        nonce: Optional[int] = None,
        owner: Optional[bytes] = None,
    ) -> Signature:
        who = owner if owner is not None else address_of(key)
        n = token.nonces(who) if nonce is None else nonce
        msg = PermitMessage(owner=who, spender=spender, value=value, nonce=n, deadline=deadline)
        return _sign_typed(key, token, msg)

    return _sign
