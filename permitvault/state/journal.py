"""
permitvault.state.journal — checkpoints, revert and commit for ledger tables.

Tables (nonces, balances, allowances, events) record an undo entry for every
write into a shared `Journal`. A checkpoint is a position in the undo log:

    j = Journal()
    j.begin()          # checkpoint
    balances.debit(owner, 100)
    nonces.consume(owner, 0)
    j.revert()         # undo both writes, newest first
    # or j.commit()    # drop the checkpoint, keep the writes

Nested checkpoints behave as a stack: an inner revert keeps outer writes; an
inner commit folds its writes into the enclosing checkpoint, so a later outer
revert still undoes them. Writes made with no open checkpoint are permanent.

Properties
----------
- O(changes) per checkpoint; nothing is copied up front.
- Deterministic; no clock or randomness.
- Not thread safe on its own: callers serialize transitions (see
  `permitvault.chain.LocalChain.atomic`).
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Hashable, List, Tuple

UndoFn = Callable[[], None]

# Sentinel for "key was absent before the write".
MISSING: Any = object()


class Journal:
    """Undo log with nested checkpoints."""

    def __init__(self) -> None:
        self._undo: List[UndoFn] = []
        self._marks: List[int] = []

    # ------------------------------------------------------------------ #
    # Checkpointing
    # ------------------------------------------------------------------ #

    def depth(self) -> int:
        """Number of open checkpoints."""
        return len(self._marks)

    def begin(self) -> int:
        """Open a checkpoint. Returns the new depth marker."""
        self._marks.append(len(self._undo))
        return len(self._marks)

    def commit(self) -> None:
        """Close the innermost checkpoint keeping its writes."""
        if not self._marks:
            raise RuntimeError("commit without an open checkpoint")
        self._marks.pop()
        if not self._marks:
            # Outermost commit: the writes are final.
            self._undo.clear()

    def revert(self) -> None:
        """Undo every write since the innermost checkpoint and close it."""
        if not self._marks:
            raise RuntimeError("revert without an open checkpoint")
        mark = self._marks.pop()
        while len(self._undo) > mark:
            self._undo.pop()()

    def revert_to(self, marker: int) -> None:
        """Revert repeatedly until depth equals `marker`."""
        if marker < 0:
            raise ValueError("marker must be >= 0")
        while len(self._marks) > marker:
            self.revert()

    def commit_to(self, marker: int) -> None:
        """Commit repeatedly until depth equals `marker`."""
        if marker < 0:
            raise ValueError("marker must be >= 0")
        while len(self._marks) > marker:
            self.commit()

    # ------------------------------------------------------------------ #
    # Recording
    # ------------------------------------------------------------------ #

    def record(self, undo: UndoFn) -> None:
        """Register an undo action for the current checkpoint (no-op outside one)."""
        if self._marks:
            self._undo.append(undo)

    def pending(self) -> int:
        """Number of undo entries held by open checkpoints."""
        return len(self._undo)


class JournaledTable:
    """
    A dict-backed table whose writes are recorded in a Journal.

    Subclasses read through `_get` and write through `_put`; reverting a
    checkpoint restores the previous value (or absence) of each touched key.
    """

    def __init__(self, journal: Journal | None = None) -> None:
        self._data: Dict[Hashable, Any] = {}
        self._journal = journal

    def _get(self, key: Hashable, default: Any = 0) -> Any:
        return self._data.get(key, default)

    def _put(self, key: Hashable, value: Any) -> None:
        prev = self._data.get(key, MISSING)
        self._data[key] = value
        if self._journal is not None:
            self._journal.record(lambda: self._restore(key, prev))

    def _restore(self, key: Hashable, prev: Any) -> None:
        if prev is MISSING:
            self._data.pop(key, None)
        else:
            self._data[key] = prev

    def snapshot(self) -> Dict[Hashable, Any]:
        """Shallow copy of the table, for `restore`."""
        return dict(self._data)

    def restore(self, snap: Dict[Hashable, Any]) -> None:
        """Replace the table contents with `snap` (journaled like any write)."""
        for key in list(self._data):
            if key not in snap:
                prev = self._data.pop(key)
                if self._journal is not None:
                    self._journal.record(lambda k=key, p=prev: self._restore(k, p))
        for key, value in snap.items():
            if self._data.get(key, MISSING) != value:
                self._put(key, value)

    def items(self) -> List[Tuple[Hashable, Any]]:
        """Sorted (key, value) pairs; stable input for state digests."""
        return sorted(self._data.items())

    def __len__(self) -> int:
        return len(self._data)


__all__ = ["Journal", "JournaledTable", "MISSING"]
