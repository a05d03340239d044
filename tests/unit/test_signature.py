from __future__ import annotations

import pytest
from eth_keys import keys

from permitvault.eip712.signature import (
    SECP256K1_HALF_N,
    SECP256K1_N,
    Signature,
    address_of,
    recover,
    sign,
)
from permitvault.errors import ErrorCode, InvalidKey, InvalidSignature, SignatureFailure
from permitvault.utils.hash import keccak256

from ..conftest import ADDR1_KEY, OWNER_KEY

DIGEST = keccak256(b"permit digest")


def _reason(excinfo) -> SignatureFailure:
    assert excinfo.value.code == ErrorCode.INVALID_SIGNATURE.value
    return excinfo.value.reason


def test_sign_then_recover_yields_signer():
    sig = sign(DIGEST, OWNER_KEY)
    assert recover(DIGEST, sig) == address_of(OWNER_KEY)
    assert sig.s <= SECP256K1_HALF_N


def test_other_digest_recovers_someone_else():
    sig = sign(DIGEST, OWNER_KEY)
    assert recover(keccak256(b"other"), sig) != address_of(OWNER_KEY)


def test_wallet_v_is_normalized():
    sig = sign(DIGEST, ADDR1_KEY)
    again = Signature.from_vrs(sig.v_ethereum, sig.r, sig.s)
    assert again == sig
    assert again.v in (0, 1)


def test_bytes_and_hex_encodings_parse_back():
    sig = sign(DIGEST, OWNER_KEY)
    raw = sig.to_bytes()
    assert len(raw) == 65 and raw[64] in (27, 28)
    assert Signature.from_bytes(raw) == sig
    assert Signature.from_hex(sig.to_hex()) == sig


def test_32_byte_scalars_accepted():
    sig = sign(DIGEST, OWNER_KEY)
    assert Signature.from_vrs(sig.v, sig.r.to_bytes(32, "big"), sig.s.to_bytes(32, "big")) == sig


@pytest.mark.parametrize(
    "build,reason",
    [
        (lambda: Signature.from_bytes(b"\x01" * 64), SignatureFailure.MALFORMED),
        (lambda: Signature.from_hex("0xzz"), SignatureFailure.MALFORMED),
        (lambda: Signature.from_vrs(27, b"\x01" * 31, 1), SignatureFailure.MALFORMED),
        (lambda: Signature.from_vrs(27, "1", 1), SignatureFailure.MALFORMED),
        (lambda: Signature.from_vrs(29, 1, 1), SignatureFailure.BAD_RECOVERY_ID),
        (lambda: Signature.from_vrs(2, 1, 1), SignatureFailure.BAD_RECOVERY_ID),
        (lambda: Signature.from_vrs(0, 0, 1), SignatureFailure.SCALAR_RANGE),
        (lambda: Signature.from_vrs(0, 1, 0), SignatureFailure.SCALAR_RANGE),
        (lambda: Signature.from_vrs(0, SECP256K1_N, 1), SignatureFailure.SCALAR_RANGE),
        (lambda: Signature.from_vrs(0, 1, SECP256K1_HALF_N + 1), SignatureFailure.HIGH_S),
    ],
)
def test_parse_failures_have_distinct_reasons(build, reason):
    with pytest.raises(InvalidSignature) as ei:
        build()
    assert _reason(ei) is reason
    assert ei.value.data["reason"] == reason.value
    assert ei.value.retryable is False


def test_high_s_twin_of_a_valid_signature_is_rejected():
    sig = sign(DIGEST, OWNER_KEY)
    with pytest.raises(InvalidSignature) as ei:
        Signature.from_vrs(sig.v ^ 1, sig.r, SECP256K1_N - sig.s)
    assert _reason(ei) is SignatureFailure.HIGH_S


@pytest.mark.parametrize("bad_key", ["0x1234", "zz" * 32, b"\x00" * 32, SECP256K1_N.to_bytes(32, "big")])
def test_unusable_private_key_is_invalid_key(bad_key):
    with pytest.raises(InvalidKey) as ei:
        address_of(bad_key)
    assert ei.value.code == ErrorCode.INVALID_KEY.value
    with pytest.raises(InvalidKey):
        sign(DIGEST, bad_key)


def test_digest_must_be_32_bytes():
    sig = sign(DIGEST, OWNER_KEY)
    with pytest.raises(InvalidSignature) as ei:
        recover(DIGEST[:31], sig)
    assert _reason(ei) is SignatureFailure.MALFORMED


def test_r_off_the_curve_is_recovery_failed():
    # x = 5 has no point on secp256k1: 5**3 + 7 is a non-residue mod p
    with pytest.raises(InvalidSignature) as ei:
        recover(b"\x11" * 32, Signature(v=0, r=5, s=1))
    assert _reason(ei) is SignatureFailure.RECOVERY_FAILED


def test_zero_address_is_never_returned(monkeypatch):
    class _ZeroKey:
        def to_canonical_address(self):
            return b"\x00" * 20

    monkeypatch.setattr(
        keys.Signature, "recover_public_key_from_msg_hash", lambda self, msg_hash: _ZeroKey()
    )
    with pytest.raises(InvalidSignature) as ei:
        recover(DIGEST, Signature(v=0, r=1, s=1))
    assert _reason(ei) is SignatureFailure.ZERO_SIGNER
