"""
permitvault.vault — custodial vault funded through signed permits.

A depositor signs one permit naming the vault as spender. Anyone (the owner
or a relayer) submits it with `deposit_with_permit`; inside a single chain
transition the vault

  1. has the token's PermitAuthority verify the permit and grant the
     allowance owner -> vault,
  2. pulls `value` from the owner with `transfer_from`, spending that
     allowance,
  3. credits the owner's deposit ledger and emits `Deposit`.

If any step fails the transition reverts: nonce, allowance, balances and the
deposit ledger are exactly as before, and the original error propagates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .logging import get_logger
from .state.balances import InMemoryBalanceLedger
from .state.events import EVT_DEPOSIT, EVT_WITHDRAW
from .token.authority import SignatureLike
from .token.fungible import PermitToken
from .utils.bytes import AddressLike, checksum, to_address
from .utils.hash import keccak256

if TYPE_CHECKING:  # pragma: no cover
    from .chain import LocalChain

log = get_logger(__name__)


@dataclass(frozen=True)
class DepositReceipt:
    owner: bytes
    submitter: bytes
    value: int
    nonce: int
    deadline: int
    timestamp: int
    deposited: int  # owner's deposit total after this deposit


class Vault:
    """Single-asset vault for one PermitToken."""

    def __init__(self, chain: "LocalChain", address: AddressLike, token: PermitToken) -> None:
        self.chain = chain
        self.address = to_address(address, name="vault")
        self.token = token
        self._deposits = InMemoryBalanceLedger(chain.journal)

    def __repr__(self) -> str:
        return f"Vault({checksum(self.address)} token={self.token.symbol})"

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    def deposits_of(self, owner: AddressLike) -> int:
        return self._deposits.balance_of(owner)

    def total_deposits(self) -> int:
        return sum(v for _, v in self._deposits.items())

    def custodial_balance(self) -> int:
        """What the vault actually holds on the token ledger."""
        return self.token.balance_of(self.address)

    def root(self) -> bytes:
        """Digest of the deposit ledger."""
        return keccak256(b"".join(k + v.to_bytes(32, "big") for k, v in self._deposits.items()))

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #

    def deposit_with_permit(
        self,
        value: int,
        deadline: int,
        signature: SignatureLike,
        nonce: int,
        owner: AddressLike,
        *,
        submitter: Optional[AddressLike] = None,
    ) -> DepositReceipt:
        """
        Pull `value` tokens from `owner` into the vault using the owner's
        signed permit. `owner` is the account named in the signed message;
        `submitter` (defaults to `owner`) is recorded for relayed deposits.
        """
        owner_b = to_address(owner, name="owner")
        submitter_b = owner_b if submitter is None else to_address(submitter, name="submitter")

        with self.chain.atomic():
            ts = self.chain.now()
            self.token.authority.authorize(owner_b, self.address, value, deadline, nonce, signature, ts)
            self.token.transfer_from(self.address, owner_b, self.address, value)
            deposited = self._deposits.credit(owner_b, value)
            self.chain.events.emit(
                self.address,
                EVT_DEPOSIT,
                {"owner": owner_b, "submitter": submitter_b, "value": value, "nonce": nonce},
            )

        log.info(
            "deposit accepted",
            extra={"vault": self.address, "owner": owner_b, "submitter": submitter_b, "value": value, "nonce": nonce},
        )
        return DepositReceipt(
            owner=owner_b,
            submitter=submitter_b,
            value=value,
            nonce=nonce,
            deadline=deadline,
            timestamp=ts,
            deposited=deposited,
        )

    def withdraw(self, caller: AddressLike, amount: int) -> int:
        """
        Return `amount` of the caller's deposits to the caller.
        Raises InsufficientBalance when it exceeds what the caller deposited.
        Returns the caller's remaining deposits.
        """
        who = to_address(caller, name="caller")
        with self.chain.atomic():
            remaining = self._deposits.debit(who, amount)
            self.token.transfer(self.address, who, amount)
            self.chain.events.emit(self.address, EVT_WITHDRAW, {"owner": who, "value": amount})
        log.info("withdrawal", extra={"vault": self.address, "owner": who, "value": amount})
        return remaining


__all__ = ["DepositReceipt", "Vault"]
