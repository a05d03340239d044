"""
permitvault.state.nonces — per-owner permit nonces.

Each owner has a counter that starts at 0, advances by exactly 1 whenever a
permit signed with the current value is accepted, and never goes back down
(except through a journal revert of a transition that never committed).

`consume(owner, expected)` is a single compare-and-increment under a lock, so
two concurrent callers presenting the same nonce cannot both succeed even
when no outer transition lock is held.
"""

from __future__ import annotations

import threading
from typing import Optional

from ..errors import NonceMismatch, NonceOverflow
from ..logging import get_logger
from ..utils.bytes import U256_MAX, AddressLike, require_u256, to_address
from .journal import Journal, JournaledTable

log = get_logger(__name__)


class NonceLedger(JournaledTable):
    """Mapping address -> u256 nonce with atomic compare-and-increment."""

    def __init__(self, journal: Optional[Journal] = None) -> None:
        super().__init__(journal)
        self._lock = threading.Lock()

    def current_nonce(self, account: AddressLike) -> int:
        """The next unused nonce for `account` (0 if never seen)."""
        return self._get(to_address(account, name="account"))

    def consume(self, account: AddressLike, expected_nonce: int) -> int:
        """
        Consume `expected_nonce` for `account`.

        Raises NonceMismatch if it is not the current nonce. On success the
        stored nonce becomes `expected_nonce + 1`; the consumed value is returned.
        """
        addr = to_address(account, name="account")
        require_u256("nonce", expected_nonce)
        with self._lock:
            current = self._get(addr)
            if expected_nonce != current:
                raise NonceMismatch(addr, expected_nonce, current)
            self._advance(addr, current)
        log.debug("nonce consumed", extra={"account": addr, "nonce": current})
        return current

    def invalidate(self, account: AddressLike) -> int:
        """
        Skip the current nonce so an outstanding, unsubmitted permit can
        never be used. Returns the new current nonce.
        """
        addr = to_address(account, name="account")
        with self._lock:
            current = self._get(addr)
            self._advance(addr, current)
        log.info("nonce invalidated", extra={"account": addr, "nonce": current})
        return current + 1

    def _advance(self, addr: bytes, current: int) -> None:
        if current == U256_MAX:
            raise NonceOverflow(addr)
        self._put(addr, current + 1)


__all__ = ["NonceLedger"]
