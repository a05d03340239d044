"""
permitvault.token.authority — the permit authorization engine.

`PermitAuthority.authorize` turns a signed permit into an allowance. The
checks run in a fixed order and stop at the first failure:

  1. deadline     : now <= deadline              else PERMIT_DEADLINE_EXPIRED
  2. digest       : EIP-712 two-stage hash under this instance's domain
  3. recovery     : signer from (digest, v, r, s) else INVALID_SIGNATURE
  4. binding      : recovered signer == owner     else INVALID_SIGNER
  5. nonce        : consume(owner, nonce)         else NONCE_MISMATCH
  6. grant        : allowance[owner][spender] = value

Nothing is written before step 5, so a rejected signature can never burn an
owner's nonce, and an expired permit is reported as expired rather than as a
generic signature failure.

The engine holds no balances; it only grants allowances. Pairing the grant
with a balance movement is the vault's job (see permitvault.vault).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from ..clock import Clock
from ..eip712.domain import EIP712Domain
from ..eip712.permit import PermitMessage, digest
from ..eip712.signature import Signature, recover
from ..errors import InvalidSigner, PermitExpired, PermitVaultError
from ..logging import get_logger
from ..state.allowances import AllowanceTable
from ..state.events import EVT_APPROVAL, InMemoryEventSink
from ..state.nonces import NonceLedger
from ..utils.bytes import AddressLike, require_u256, to_address

log = get_logger(__name__)

SignatureLike = Union[Signature, bytes, bytearray, str]


@dataclass(frozen=True)
class AllowanceGrant:
    """Result of an accepted permit."""

    owner: bytes
    spender: bytes
    value: int
    nonce: int
    deadline: int


def coerce_signature(sig: SignatureLike) -> Signature:
    """Accept a parsed Signature, 65 raw bytes or a 0x hex string."""
    if isinstance(sig, Signature):
        return sig
    if isinstance(sig, str):
        return Signature.from_hex(sig)
    return Signature.from_bytes(sig)


class PermitAuthority:
    """
    Verifies permits for one domain and grants allowances.

    Parameters
    ----------
    domain : EIP712Domain
        Domain of the token instance; its separator is computed once.
    nonces : NonceLedger
        Per-owner replay counters.
    allowances : AllowanceTable
        Where accepted permits are recorded.
    events : InMemoryEventSink | None
        Receives an Approval event per accepted permit.
    clock : Clock | None
        Used only when `authorize` is called without `now`.
    """

    def __init__(
        self,
        domain: EIP712Domain,
        nonces: NonceLedger,
        allowances: AllowanceTable,
        *,
        events: Optional[InMemoryEventSink] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.domain = domain
        self.nonces = nonces
        self.allowances = allowances
        self.events = events
        self.clock = clock

    @property
    def domain_separator(self) -> bytes:
        return self.domain.separator

    def permit_digest(self, message: PermitMessage) -> bytes:
        """The digest an owner signs for `message` under this domain."""
        return digest(self.domain.separator, message)

    def authorize(
        self,
        owner: AddressLike,
        spender: AddressLike,
        value: int,
        deadline: int,
        nonce: int,
        signature: SignatureLike,
        now: Optional[int] = None,
    ) -> AllowanceGrant:
        owner_b = to_address(owner, name="owner")
        spender_b = to_address(spender, name="spender")
        require_u256("deadline", deadline)
        if now is None:
            if self.clock is None:
                raise ValueError("authorize() needs `now` or a clock")
            now = self.clock.now()

        try:
            # 1. deadline (equality is still valid)
            if now > deadline:
                raise PermitExpired(deadline, now)

            # 2. digest
            message = PermitMessage(
                owner=owner_b, spender=spender_b, value=value, nonce=nonce, deadline=deadline
            )
            msg_digest = self.permit_digest(message)

            # 3. recovery
            signer = recover(msg_digest, coerce_signature(signature))

            # 4. signer binding
            if signer != owner_b:
                raise InvalidSigner(owner_b, signer)

            # 5. nonce
            self.nonces.consume(owner_b, nonce)
        except PermitVaultError as err:
            log.info(
                "permit rejected",
                extra={"code": err.code, "owner": owner_b, "spender": spender_b, "nonce": nonce},
            )
            raise

        # 6. grant
        self.allowances.set(owner_b, spender_b, value)
        if self.events is not None:
            self.events.emit(
                self.domain.verifying_contract,
                EVT_APPROVAL,
                {"owner": owner_b, "spender": spender_b, "value": value},
            )
        log.debug(
            "permit accepted",
            extra={"owner": owner_b, "spender": spender_b, "value": value, "nonce": nonce},
        )
        return AllowanceGrant(owner=owner_b, spender=spender_b, value=value, nonce=nonce, deadline=deadline)


__all__ = ["AllowanceGrant", "PermitAuthority", "SignatureLike", "coerce_signature"]
