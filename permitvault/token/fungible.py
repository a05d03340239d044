"""
Fungible token with permit (ERC-20 + EIP-2612)
==============================================

An in-process token bound to a `LocalChain`. Balances, allowances and permit
nonces live in the token's own `StateDB`, recording into the chain journal,
so a reverted transition rolls back every table it touched.

Public interface
----------------
# metadata / views
name, symbol, decimals, total_supply()
balance_of(addr) -> int
allowance(owner, spender) -> int
nonces(owner) -> int
domain_separator -> bytes32
eip712_domain() -> dict

# state-changing (explicit caller)
transfer(caller, to, amount) -> bool
approve(caller, spender, amount) -> bool
transfer_from(caller, owner, to, amount) -> bool
permit(owner, spender, value, deadline, signature, *, nonce=None) -> AllowanceGrant
invalidate_nonce(caller) -> int

Events (on the chain's event sink):
    b"Transfer" { "from", "to", "value" }
    b"Approval" { "owner", "spender", "value" }

Notes
-----
- Addresses are raw 20-byte values; hex strings are accepted at the edge.
- Integers are u256. Transfers never change total supply.
- `permit` is submitted by anyone; only the owner's signature matters.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from ..config import DEFAULT_DECIMALS, DEFAULT_TOKEN_VERSION
from ..eip712.domain import EIP712Domain
from ..logging import get_logger
from ..state.db import StateDB
from ..state.events import EVT_APPROVAL, EVT_TRANSFER
from ..utils.bytes import ZERO_ADDRESS, AddressLike, checksum, require_u256, to_address
from .authority import AllowanceGrant, PermitAuthority, SignatureLike

if TYPE_CHECKING:  # pragma: no cover
    from ..chain import LocalChain

log = get_logger(__name__)


class PermitToken:
    def __init__(
        self,
        chain: "LocalChain",
        address: AddressLike,
        *,
        name: str,
        symbol: str,
        version: str = DEFAULT_TOKEN_VERSION,
        decimals: int = DEFAULT_DECIMALS,
    ) -> None:
        if not name or not symbol:
            raise ValueError("token name and symbol must be non-empty")
        if not 0 <= decimals <= 77:
            raise ValueError("decimals out of range")
        self.chain = chain
        self.address = to_address(address, name="token")
        self.name = name
        self.symbol = symbol
        self.version = version
        self.decimals = decimals
        self.state = StateDB(chain.journal, chain.events)
        self.domain = EIP712Domain(name, version, chain.chain_id, self.address)
        self.authority = PermitAuthority(
            self.domain,
            self.state.nonces,
            self.state.allowances,
            events=chain.events,
            clock=chain.clock,
        )

    def __repr__(self) -> str:
        return f"PermitToken({self.symbol}@{checksum(self.address)})"

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    @property
    def domain_separator(self) -> bytes:
        return self.domain.separator

    def eip712_domain(self) -> Dict[str, Any]:
        return self.domain.to_dict()

    def total_supply(self) -> int:
        return self.state.balances.total_supply()

    def balance_of(self, account: AddressLike) -> int:
        return self.state.balances.balance_of(account)

    def allowance(self, owner: AddressLike, spender: AddressLike) -> int:
        return self.state.allowances.allowance(owner, spender)

    def nonces(self, owner: AddressLike) -> int:
        return self.state.nonces.current_nonce(owner)

    # ------------------------------------------------------------------ #
    # Supply
    # ------------------------------------------------------------------ #

    def mint_initial(self, to: AddressLike, amount: int) -> None:
        """Genesis allocation; only called by the deployer."""
        dst = to_address(to, name="to")
        with self.chain.atomic():
            self.state.balances.mint(dst, amount)
            self._emit(EVT_TRANSFER, {"from": ZERO_ADDRESS, "to": dst, "value": amount})

    # ------------------------------------------------------------------ #
    # Mutations (explicit caller)
    # ------------------------------------------------------------------ #

    def transfer(self, caller: AddressLike, to: AddressLike, amount: int) -> bool:
        src = to_address(caller, name="caller")
        dst = to_address(to, name="to")
        require_u256("amount", amount)
        with self.chain.atomic():
            self.state.balances.transfer(src, dst, amount)
            self._emit(EVT_TRANSFER, {"from": src, "to": dst, "value": amount})
        return True

    def approve(self, caller: AddressLike, spender: AddressLike, amount: int) -> bool:
        owner = to_address(caller, name="caller")
        sp = to_address(spender, name="spender")
        with self.chain.atomic():
            self.state.allowances.set(owner, sp, amount)
            self._emit(EVT_APPROVAL, {"owner": owner, "spender": sp, "value": amount})
        return True

    def transfer_from(self, caller: AddressLike, owner: AddressLike, to: AddressLike, amount: int) -> bool:
        """
        Spender (`caller`) moves `amount` from `owner` to `to`, consuming
        allowance first, then balance.
        """
        spender = to_address(caller, name="caller")
        src = to_address(owner, name="owner")
        dst = to_address(to, name="to")
        require_u256("amount", amount)
        with self.chain.atomic():
            self.state.allowances.spend(src, spender, amount)
            self.state.balances.transfer(src, dst, amount)
            self._emit(EVT_TRANSFER, {"from": src, "to": dst, "value": amount})
        return True

    def permit(
        self,
        owner: AddressLike,
        spender: AddressLike,
        value: int,
        deadline: int,
        signature: SignatureLike,
        *,
        nonce: Optional[int] = None,
    ) -> AllowanceGrant:
        """
        Set `allowance(owner, spender) = value` from an owner-signed permit.

        `nonce` defaults to the owner's current nonce, which is what a
        wallet signs; pass it explicitly to pin the message being verified.
        """
        with self.chain.atomic():
            if nonce is None:
                nonce = self.nonces(owner)
            return self.authority.authorize(
                owner,
                spender,
                value,
                deadline,
                nonce,
                signature,
                self.chain.now(),
            )

    def invalidate_nonce(self, caller: AddressLike) -> int:
        """Burn the caller's current nonce, cancelling an unsubmitted permit."""
        with self.chain.atomic():
            return self.state.nonces.invalidate(caller)

    def _emit(self, name: bytes, args: Dict[str, Any]) -> None:
        self.chain.events.emit(self.address, name, args)


__all__ = ["PermitToken"]
