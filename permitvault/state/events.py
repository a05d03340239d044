"""
permitvault.state.events — event records emitted by the token and the vault.

Events (names as bytes, payload as a dict of plain values):

- b"Transfer" { "from": bytes, "to": bytes, "value": int }
- b"Approval" { "owner": bytes, "spender": bytes, "value": int }
- b"Deposit"  { "owner": bytes, "submitter": bytes, "value": int, "nonce": int }
- b"Withdraw" { "owner": bytes, "value": int }

`InMemoryEventSink` keeps records in emission order. When built on a
Journal, events emitted inside a reverted transition are dropped with it.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .journal import Journal

EVT_TRANSFER = b"Transfer"
EVT_APPROVAL = b"Approval"
EVT_DEPOSIT = b"Deposit"
EVT_WITHDRAW = b"Withdraw"


@dataclass(frozen=True)
class EventRecord:
    """
    An emitted event.

    Fields
    ------
    seq : int
        0-based position in the sink (strictly increasing).
    address : bytes
        Emitting contract.
    name : bytes
        Event name, e.g. b"Transfer".
    args : dict
        Event payload.
    """

    seq: int
    address: bytes
    name: bytes
    args: Dict[str, Any] = field(default_factory=dict)


class InMemoryEventSink:
    """Thread-safe in-memory event list; suitable for tests and local chains."""

    def __init__(self, journal: Optional[Journal] = None) -> None:
        self._lock = threading.RLock()
        self._records: List[EventRecord] = []
        self._journal = journal

    def emit(self, address: bytes, name: bytes, args: Dict[str, Any]) -> EventRecord:
        with self._lock:
            rec = EventRecord(seq=len(self._records), address=bytes(address), name=name, args=dict(args))
            self._records.append(rec)
        if self._journal is not None:
            self._journal.record(self._drop_last)
        return rec

    def _drop_last(self) -> None:
        with self._lock:
            self._records.pop()

    def get_logs(
        self,
        *,
        address: Optional[bytes] = None,
        name: Optional[bytes] = None,
        limit: Optional[int] = None,
    ) -> Iterable[EventRecord]:
        """Iterate matching records in emission order."""
        with self._lock:
            matches = [
                r
                for r in self._records
                if (address is None or r.address == address) and (name is None or r.name == name)
            ]
        return matches if limit is None else matches[:limit]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


__all__ = [
    "EVT_TRANSFER",
    "EVT_APPROVAL",
    "EVT_DEPOSIT",
    "EVT_WITHDRAW",
    "EventRecord",
    "InMemoryEventSink",
]
