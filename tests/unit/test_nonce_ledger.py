from __future__ import annotations

import threading

import pytest

from permitvault.errors import ErrorCode, InvalidAmount, NonceMismatch, NonceOverflow
from permitvault.state.journal import Journal
from permitvault.state.nonces import NonceLedger
from permitvault.utils.bytes import U256_MAX

ALICE = b"\xaa" * 20
BOB = b"\xbb" * 20


def test_unseen_account_starts_at_zero():
    assert NonceLedger().current_nonce(ALICE) == 0


def test_consume_advances_by_exactly_one():
    ledger = NonceLedger()
    for n in range(5):
        assert ledger.consume(ALICE, n) == n
    assert ledger.current_nonce(ALICE) == 5
    assert ledger.current_nonce(BOB) == 0


@pytest.mark.parametrize("presented", [1, 7])
def test_wrong_nonce_is_rejected_without_change(presented):
    ledger = NonceLedger()
    with pytest.raises(NonceMismatch) as ei:
        ledger.consume(ALICE, presented)
    assert ei.value.code == ErrorCode.NONCE_MISMATCH.value
    assert ei.value.data == {"account": "0x" + ALICE.hex(), "expected": presented, "current": 0}
    assert ledger.current_nonce(ALICE) == 0


def test_replay_of_consumed_nonce_is_rejected():
    ledger = NonceLedger()
    ledger.consume(ALICE, 0)
    with pytest.raises(NonceMismatch):
        ledger.consume(ALICE, 0)
    assert ledger.current_nonce(ALICE) == 1


def test_hex_and_bytes_identify_the_same_account():
    ledger = NonceLedger()
    ledger.consume("0x" + ALICE.hex(), 0)
    assert ledger.current_nonce(ALICE) == 1


def test_negative_nonce_is_invalid_amount():
    with pytest.raises(InvalidAmount):
        NonceLedger().consume(ALICE, -1)


def test_invalidate_skips_current_nonce():
    ledger = NonceLedger()
    assert ledger.invalidate(ALICE) == 1
    with pytest.raises(NonceMismatch):
        ledger.consume(ALICE, 0)
    assert ledger.consume(ALICE, 1) == 1


def test_concurrent_consumers_of_one_nonce_have_exactly_one_winner():
    ledger = NonceLedger()
    threads = 16
    barrier = threading.Barrier(threads)
    wins, losses = [], []
    lock = threading.Lock()

    def worker():
        barrier.wait()
        try:
            ledger.consume(ALICE, 0)
        except NonceMismatch:
            with lock:
                losses.append(1)
        else:
            with lock:
                wins.append(1)

    pool = [threading.Thread(target=worker) for _ in range(threads)]
    for t in pool:
        t.start()
    for t in pool:
        t.join()

    assert len(wins) == 1
    assert len(losses) == threads - 1
    assert ledger.current_nonce(ALICE) == 1


def test_journal_revert_restores_nonce():
    journal = Journal()
    ledger = NonceLedger(journal)
    ledger.consume(ALICE, 0)  # outside a checkpoint: permanent
    journal.begin()
    ledger.consume(ALICE, 1)
    ledger.consume(BOB, 0)
    journal.revert()
    assert ledger.current_nonce(ALICE) == 1
    assert ledger.current_nonce(BOB) == 0
    assert len(ledger) == 1


def test_nonce_at_u256_max_overflows_instead_of_wrapping():
    ledger = NonceLedger()
    ledger.restore({ALICE: U256_MAX})
    with pytest.raises(NonceOverflow) as ei:
        ledger.consume(ALICE, U256_MAX)
    assert ei.value.code == ErrorCode.NONCE_OVERFLOW.value
    with pytest.raises(NonceOverflow):
        ledger.invalidate(ALICE)
    assert ledger.current_nonce(ALICE) == U256_MAX


def test_last_nonce_below_the_bound_is_still_usable():
    ledger = NonceLedger()
    ledger.restore({ALICE: U256_MAX - 1})
    assert ledger.consume(ALICE, U256_MAX - 1) == U256_MAX - 1
    assert ledger.current_nonce(ALICE) == U256_MAX
