"""
permitvault.state — ledger tables for the permit engine and the vault.

- journal     : undo-log checkpoints (begin / commit / revert)
- nonces      : per-owner permit nonces with atomic compare-and-increment
- balances    : fungible balances (debit / credit / transfer / mint)
- allowances  : (owner, spender) allowances
- events      : emitted Transfer / Approval / Deposit / Withdraw records
- db          : StateDB bundling all of the above behind one journal
"""

from .allowances import AllowanceTable
from .balances import BalanceLedger, InMemoryBalanceLedger
from .db import StateDB
from .events import EventRecord, InMemoryEventSink
from .journal import Journal
from .nonces import NonceLedger

__all__ = [
    "AllowanceTable",
    "BalanceLedger",
    "InMemoryBalanceLedger",
    "StateDB",
    "EventRecord",
    "InMemoryEventSink",
    "Journal",
    "NonceLedger",
]
