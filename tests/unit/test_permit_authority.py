from __future__ import annotations

import pytest

from permitvault.clock import ManualClock
from permitvault.eip712.domain import EIP712Domain
from permitvault.eip712.permit import PermitMessage
from permitvault.eip712.signature import Signature, sign
from permitvault.errors import (
    ErrorCode,
    InvalidSignature,
    InvalidSigner,
    NonceMismatch,
    PermitExpired,
    SignatureFailure,
)
from permitvault.state.allowances import AllowanceTable
from permitvault.state.events import EVT_APPROVAL, InMemoryEventSink
from permitvault.state.nonces import NonceLedger
from permitvault.token.authority import AllowanceGrant, PermitAuthority

from ..conftest import ADDR1_KEY, AMOUNT, GENESIS_TIME, OWNER_KEY

NOW = GENESIS_TIME
DEADLINE = NOW + 3600


@pytest.fixture
def authority(token) -> PermitAuthority:
    return token.authority


def test_valid_permit_grants_allowance(authority, token, owner, addr1, sign_permit):
    sig = sign_permit(OWNER_KEY, token, addr1, AMOUNT, DEADLINE)
    grant = authority.authorize(owner, addr1, AMOUNT, DEADLINE, 0, sig, NOW)
    assert grant == AllowanceGrant(owner=owner, spender=addr1, value=AMOUNT, nonce=0, deadline=DEADLINE)
    assert token.allowance(owner, addr1) == AMOUNT
    assert token.nonces(owner) == 1
    approval = token.chain.events.get_logs(name=EVT_APPROVAL)[-1]
    assert approval.address == token.address
    assert approval.args == {"owner": owner, "spender": addr1, "value": AMOUNT}


def test_deadline_equal_to_now_is_valid(authority, token, owner, addr1, sign_permit):
    sig = sign_permit(OWNER_KEY, token, addr1, AMOUNT, NOW)
    authority.authorize(owner, addr1, AMOUNT, NOW, 0, sig, NOW)
    assert token.nonces(owner) == 1


def test_deadline_one_second_past_is_expired(authority, token, owner, addr1, sign_permit):
    sig = sign_permit(OWNER_KEY, token, addr1, AMOUNT, NOW - 1)
    with pytest.raises(PermitExpired) as ei:
        authority.authorize(owner, addr1, AMOUNT, NOW - 1, 0, sig, NOW)
    assert ei.value.code == ErrorCode.PERMIT_DEADLINE_EXPIRED.value
    assert ei.value.data == {"deadline": NOW - 1, "now": NOW}
    assert token.nonces(owner) == 0
    assert token.allowance(owner, addr1) == 0


def test_deadline_is_checked_before_the_signature(authority, owner, addr1):
    garbage = b"\x00" * 65
    with pytest.raises(PermitExpired):
        authority.authorize(owner, addr1, AMOUNT, NOW - 1, 0, garbage, NOW)


def test_malformed_signature_never_burns_the_nonce(authority, token, owner, addr1):
    for bad in (b"\x01" * 10, "0x" + "00" * 65):
        with pytest.raises(InvalidSignature):
            authority.authorize(owner, addr1, AMOUNT, DEADLINE, 0, bad, NOW)
    assert token.nonces(owner) == 0


def test_signature_by_another_account_is_invalid_signer(authority, token, owner, addr1, sign_permit):
    sig = sign_permit(ADDR1_KEY, token, addr1, AMOUNT, DEADLINE, owner=owner)
    with pytest.raises(InvalidSigner) as ei:
        authority.authorize(owner, addr1, AMOUNT, DEADLINE, 0, sig, NOW)
    assert ei.value.code == ErrorCode.INVALID_SIGNER.value
    assert ei.value.data["recovered"] == "0x" + addr1.hex()
    assert token.nonces(owner) == 0
    assert token.allowance(owner, addr1) == 0


@pytest.mark.parametrize("field", ["value", "deadline", "spender"])
def test_tampered_field_does_not_verify(authority, token, owner, addr1, addr2, sign_permit, field):
    sig = sign_permit(OWNER_KEY, token, addr1, AMOUNT, DEADLINE)
    args = {"spender": addr1, "value": AMOUNT, "deadline": DEADLINE}
    args[field] = {"value": AMOUNT + 1, "deadline": DEADLINE + 1, "spender": addr2}[field]
    with pytest.raises(InvalidSigner):
        authority.authorize(owner, args["spender"], args["value"], args["deadline"], 0, sig, NOW)
    assert token.nonces(owner) == 0


def test_replay_is_nonce_mismatch(authority, token, owner, addr1, sign_permit):
    sig = sign_permit(OWNER_KEY, token, addr1, AMOUNT, DEADLINE)
    authority.authorize(owner, addr1, AMOUNT, DEADLINE, 0, sig, NOW)
    with pytest.raises(NonceMismatch) as ei:
        authority.authorize(owner, addr1, AMOUNT, DEADLINE, 0, sig, NOW)
    assert ei.value.data["current"] == 1
    assert token.nonces(owner) == 1


def test_future_nonce_signature_is_nonce_mismatch(authority, token, owner, addr1, sign_permit):
    sig = sign_permit(OWNER_KEY, token, addr1, AMOUNT, DEADLINE, nonce=3)
    with pytest.raises(NonceMismatch):
        authority.authorize(owner, addr1, AMOUNT, DEADLINE, 3, sig, NOW)


def test_signature_for_another_domain_is_rejected(chain, token, owner, addr1, sign_permit):
    other = chain.deploy_token(owner, "MyToken", "MTK", 0)
    sig = sign_permit(OWNER_KEY, other, addr1, AMOUNT, DEADLINE)
    with pytest.raises(InvalidSigner):
        token.authority.authorize(owner, addr1, AMOUNT, DEADLINE, 0, sig, NOW)
    assert token.nonces(owner) == 0 and other.nonces(owner) == 0


def test_standalone_authority_reads_clock_once(owner, addr1):
    clock = ManualClock(NOW)
    domain = EIP712Domain("Standalone", "1", 1, b"\x42" * 20)
    nonces, allowances, events = NonceLedger(), AllowanceTable(), InMemoryEventSink()
    auth = PermitAuthority(domain, nonces, allowances, events=events, clock=clock)

    msg = PermitMessage(owner=owner, spender=addr1, value=5, nonce=0, deadline=NOW + 1)
    sig = sign(auth.permit_digest(msg), OWNER_KEY)
    clock.advance(1)
    auth.authorize(owner, addr1, 5, NOW + 1, 0, sig.to_hex())
    assert allowances.allowance(owner, addr1) == 5
    assert len(events) == 1

    clock.advance(1)
    msg2 = PermitMessage(owner=owner, spender=addr1, value=5, nonce=1, deadline=NOW + 1)
    with pytest.raises(PermitExpired):
        auth.authorize(owner, addr1, 5, NOW + 1, 1, sign(auth.permit_digest(msg2), OWNER_KEY))


def test_authority_without_clock_needs_now(owner, addr1):
    auth = PermitAuthority(EIP712Domain("T", "1", 1, b"\x42" * 20), NonceLedger(), AllowanceTable())
    with pytest.raises(ValueError):
        auth.authorize(owner, addr1, 1, NOW, 0, Signature(v=0, r=1, s=1))


def test_signature_reason_survives_to_caller(authority, owner, addr1):
    with pytest.raises(InvalidSignature) as ei:
        authority.authorize(owner, addr1, AMOUNT, DEADLINE, 0, b"\x00" * 65, NOW)
    # r == 0 in an all-zero encoding; v byte 0 is a valid recovery id
    assert ei.value.reason is SignatureFailure.SCALAR_RANGE
