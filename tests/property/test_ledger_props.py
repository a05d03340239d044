# -*- coding: utf-8 -*-
"""
Property tests for the ledger and the permit engine.

1) Balance ledger
   - any sequence of transfers (successful or not) conserves total supply
   - a reverted checkpoint leaves the state root unchanged

2) Nonce ledger
   - after any sequence of consume attempts, the current nonce equals the
     number of attempts that presented the then-current nonce

3) Permits
   - a permit only verifies for the exact (owner, spender, value, nonce,
     deadline) tuple that was signed
"""
from __future__ import annotations

from typing import List, Tuple

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from permitvault.eip712.domain import EIP712Domain
from permitvault.eip712.permit import PermitMessage
from permitvault.eip712.signature import address_of, sign
from permitvault.errors import InsufficientBalance, InvalidSigner, NonceMismatch
from permitvault.state.allowances import AllowanceTable
from permitvault.state.db import StateDB
from permitvault.state.nonces import NonceLedger
from permitvault.token.authority import PermitAuthority

from ..conftest import OWNER_KEY

ACCOUNTS = [bytes([i]) * 20 for i in range(1, 5)]

ACCOUNT = st.sampled_from(ACCOUNTS)
AMOUNT = st.integers(min_value=0, max_value=2_000)
TRANSFERS = st.lists(st.tuples(ACCOUNT, ACCOUNT, AMOUNT), max_size=40)
U256 = st.integers(min_value=0, max_value=2**256 - 1)


@given(transfers=TRANSFERS)
@settings(max_examples=150, deadline=None)
def test_transfers_conserve_supply(transfers: List[Tuple[bytes, bytes, int]]) -> None:
    db = StateDB()
    db.balances.mint(ACCOUNTS[0], 5_000)
    for src, dst, amount in transfers:
        db.journal.begin()
        if db.balances.balance_of(src) >= amount:
            db.balances.transfer(src, dst, amount)
            db.journal.commit()
        else:
            with pytest.raises(InsufficientBalance):
                db.balances.transfer(src, dst, amount)
            db.journal.revert()
        assert sum(v for _, v in db.balances.items()) == db.balances.total_supply() == 5_000
        assert all(v >= 0 for _, v in db.balances.items())


@given(transfers=TRANSFERS)
@settings(max_examples=100, deadline=None)
def test_revert_restores_root(transfers: List[Tuple[bytes, bytes, int]]) -> None:
    db = StateDB()
    for acct in ACCOUNTS:
        db.balances.mint(acct, 1_000)
    root = db.root()
    db.journal.begin()
    for src, dst, amount in transfers:
        if db.balances.balance_of(src) >= amount:
            db.balances.transfer(src, dst, amount)
        db.nonces.invalidate(src)
    db.journal.revert()
    assert db.root() == root


@given(attempts=st.lists(st.integers(min_value=0, max_value=6), max_size=50))
@settings(max_examples=200, deadline=None)
def test_nonce_is_monotonic_and_counts_successes(attempts: List[int]) -> None:
    ledger = NonceLedger()
    owner = ACCOUNTS[0]
    successes = 0
    previous = 0
    for n in attempts:
        if n == ledger.current_nonce(owner):
            assert ledger.consume(owner, n) == n
            successes += 1
        else:
            with pytest.raises(NonceMismatch):
                ledger.consume(owner, n)
        current = ledger.current_nonce(owner)
        assert current >= previous
        previous = current
    assert ledger.current_nonce(owner) == successes


_DOMAIN = EIP712Domain("PropToken", "1", 31337, b"\x77" * 20)
_OWNER = address_of(OWNER_KEY)


@given(
    value=U256,
    deadline=st.integers(min_value=1_000, max_value=2**64),
    tamper=st.sampled_from(["value", "deadline", "spender", "none"]),
    delta=st.integers(min_value=1, max_value=10**6),
)
@settings(max_examples=60, deadline=None, suppress_health_check=[HealthCheck.too_slow])
def test_permit_verifies_only_the_signed_tuple(value: int, deadline: int, tamper: str, delta: int) -> None:
    auth = PermitAuthority(_DOMAIN, NonceLedger(), AllowanceTable())
    spender = ACCOUNTS[1]
    msg = PermitMessage(owner=_OWNER, spender=spender, value=value, nonce=0, deadline=deadline)
    sig = sign(auth.permit_digest(msg), OWNER_KEY)

    presented = {"spender": spender, "value": value, "deadline": deadline}
    if tamper == "value":
        presented["value"] = (value + delta) % 2**256
    elif tamper == "deadline":
        presented["deadline"] = deadline + delta
    elif tamper == "spender":
        presented["spender"] = ACCOUNTS[2]

    if tamper == "none":
        grant = auth.authorize(_OWNER, spender, value, deadline, 0, sig, 0)
        assert grant.value == value
        assert auth.nonces.current_nonce(_OWNER) == 1
    else:
        with pytest.raises(InvalidSigner):
            auth.authorize(_OWNER, presented["spender"], presented["value"], presented["deadline"], 0, sig, 0)
        assert auth.nonces.current_nonce(_OWNER) == 0
        assert auth.allowances.allowance(_OWNER, spender) == 0
