"""
permitvault.state.db — one contract's durable state in one place.

`StateDB` owns the nonce, balance and allowance tables of a token. All of
them record into a journal shared with the host chain, so one checkpoint
covers every write a state transition makes across contracts.
"""

from __future__ import annotations

from typing import Optional

from ..utils.hash import keccak256
from .allowances import AllowanceTable
from .balances import InMemoryBalanceLedger
from .events import InMemoryEventSink
from .journal import Journal
from .nonces import NonceLedger


class StateDB:
    def __init__(
        self,
        journal: Optional[Journal] = None,
        events: Optional[InMemoryEventSink] = None,
    ) -> None:
        self.journal = journal if journal is not None else Journal()
        self.nonces = NonceLedger(self.journal)
        self.balances = InMemoryBalanceLedger(self.journal)
        self.allowances = AllowanceTable(self.journal)
        self.events = events if events is not None else InMemoryEventSink(self.journal)

    def root(self) -> bytes:
        """
        Deterministic digest of nonces, balances, allowances and supply.
        Equal roots mean equal ledger state; events are not included.
        """
        parts = [b"nonces"]
        for addr, n in self.nonces.items():
            parts.append(addr + n.to_bytes(32, "big"))
        parts.append(b"balances")
        for addr, bal in self.balances.items():
            parts.append(addr + bal.to_bytes(32, "big"))
        parts.append(self.balances.total_supply().to_bytes(32, "big"))
        parts.append(b"allowances")
        for (owner, spender), value in self.allowances.items():
            parts.append(owner + spender + value.to_bytes(32, "big"))
        return keccak256(b"|".join(parts))


__all__ = ["StateDB"]
