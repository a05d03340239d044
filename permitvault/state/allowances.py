"""
permitvault.state.allowances — (owner, spender) -> u256 allowance table.

Written by `approve` and by accepted permits; consumed by `transfer_from`.
"""

from __future__ import annotations

from typing import Optional

from ..errors import InsufficientAllowance
from ..utils.bytes import AddressLike, require_u256, to_address
from .journal import Journal, JournaledTable


class AllowanceTable(JournaledTable):
    def __init__(self, journal: Optional[Journal] = None) -> None:
        super().__init__(journal)

    def allowance(self, owner: AddressLike, spender: AddressLike) -> int:
        return self._get((to_address(owner, name="owner"), to_address(spender, name="spender")))

    def set(self, owner: AddressLike, spender: AddressLike, value: int) -> None:
        key = (to_address(owner, name="owner"), to_address(spender, name="spender"))
        self._put(key, require_u256("value", value))

    def spend(self, owner: AddressLike, spender: AddressLike, amount: int) -> int:
        """Decrease the allowance by `amount`; returns what is left."""
        key = (to_address(owner, name="owner"), to_address(spender, name="spender"))
        require_u256("amount", amount)
        cur = self._get(key)
        if cur < amount:
            raise InsufficientAllowance(key[0], key[1], amount, cur)
        if amount:
            self._put(key, cur - amount)
        return cur - amount


__all__ = ["AllowanceTable"]
