"""
permitvault.state.balances — the fungible balance ledger.

The vault only needs three operations from the ledger:

    class BalanceLedger(Protocol):
        def balance_of(self, account) -> int: ...
        def debit(self, account, amount) -> int: ...    # raises InsufficientBalance
        def credit(self, account, amount) -> int: ...

`InMemoryBalanceLedger` implements them over a journaled table, plus
`transfer` (debit then credit), `mint` for genesis allocation and
`total_supply`. Transfers conserve total supply; only `mint` changes it.
All amounts are u256 integers in the smallest unit.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from ..errors import InsufficientBalance, InvalidAmount
from ..utils.bytes import U256_MAX, AddressLike, require_u256, to_address
from .journal import Journal, JournaledTable

_SUPPLY_KEY = b"__total_supply__"


@runtime_checkable
class BalanceLedger(Protocol):
    def balance_of(self, account: AddressLike) -> int: ...
    def debit(self, account: AddressLike, amount: int) -> int: ...
    def credit(self, account: AddressLike, amount: int) -> int: ...


class InMemoryBalanceLedger(JournaledTable):
    """Address -> u256 balance mapping with checked debit/credit."""

    def __init__(self, journal: Optional[Journal] = None) -> None:
        super().__init__(journal)

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    def balance_of(self, account: AddressLike) -> int:
        return self._get(to_address(account, name="account"))

    def total_supply(self) -> int:
        return self._get(_SUPPLY_KEY)

    def items(self):
        return [(k, v) for k, v in super().items() if k != _SUPPLY_KEY]

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #

    def credit(self, account: AddressLike, amount: int) -> int:
        """Increase `account` by `amount`; returns the new balance."""
        addr = to_address(account, name="account")
        require_u256("amount", amount)
        new = self._get(addr) + amount
        if new > U256_MAX:
            raise InvalidAmount("balance", new)
        if amount:
            self._put(addr, new)
        return new

    def debit(self, account: AddressLike, amount: int) -> int:
        """Decrease `account` by `amount`; raises InsufficientBalance."""
        addr = to_address(account, name="account")
        require_u256("amount", amount)
        cur = self._get(addr)
        if cur < amount:
            raise InsufficientBalance(addr, amount, cur)
        if amount:
            self._put(addr, cur - amount)
        return cur - amount

    def transfer(self, sender: AddressLike, recipient: AddressLike, amount: int) -> None:
        """Move `amount` from sender to recipient; supply is unchanged."""
        src = to_address(sender, name="sender")
        dst = to_address(recipient, name="recipient")
        self.debit(src, amount)
        self.credit(dst, amount)

    def mint(self, account: AddressLike, amount: int) -> int:
        """Create `amount` new units for `account` (genesis allocation)."""
        supply = self.total_supply() + require_u256("amount", amount)
        if supply > U256_MAX:
            raise InvalidAmount("total_supply", supply)
        new = self.credit(account, amount)
        self._put(_SUPPLY_KEY, supply)
        return new


__all__ = ["BalanceLedger", "InMemoryBalanceLedger"]
