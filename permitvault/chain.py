"""
permitvault.chain — an in-process host ledger.

`LocalChain` plays the part of the blockchain the token and vault run on:

- one Journal shared by every contract's tables, so `atomic()` gives an
  all-or-nothing state transition across token and vault
- an event sink for Transfer / Approval / Deposit / Withdraw
- a ManualClock modelling block time
- contract deployment with deterministic addresses

Block time
----------
`now()` is the timestamp the next transaction executes at.
`set_next_block_timestamp(ts)` sets it; `mine()` seals the current block and
moves time forward by `block_time` seconds (default 1). So

    chain.set_next_block_timestamp(deadline)   # next tx sees `deadline`
    chain.mine()                               # next tx sees `deadline + 1`

Addresses
---------
    address = keccak256(deployer ‖ u64(deploy_nonce))[12:]

where `deploy_nonce` counts deployments made by that deployer.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Union

from .clock import ManualClock
from .config import (
    DEFAULT_DECIMALS,
    DEFAULT_INITIAL_SUPPLY,
    DEFAULT_TOKEN_NAME,
    DEFAULT_TOKEN_SYMBOL,
    DEFAULT_TOKEN_VERSION,
    DEVNET_CHAIN_ID,
    Config,
)
from .logging import get_logger
from .state.events import InMemoryEventSink
from .state.journal import Journal
from .token.fungible import PermitToken
from .utils.bytes import AddressLike, checksum, require_u256, to_address
from .utils.hash import keccak256
from .vault import Vault

log = get_logger(__name__)

Contract = Union[PermitToken, Vault]


def contract_address(deployer: AddressLike, deploy_nonce: int) -> bytes:
    """Deterministic address of the `deploy_nonce`-th contract of `deployer`."""
    if not 0 <= deploy_nonce < 2**64:
        raise ValueError("deploy nonce out of range")
    return keccak256(to_address(deployer, name="deployer") + deploy_nonce.to_bytes(8, "big"))[12:]


class LocalChain:
    def __init__(
        self,
        chain_id: int = DEVNET_CHAIN_ID,
        clock: Optional[ManualClock] = None,
        *,
        block_time: int = 1,
    ) -> None:
        self.chain_id = require_u256("chain_id", chain_id)
        self.clock = clock if clock is not None else ManualClock()
        self.block_time = block_time
        self.block_number = 0
        self.journal = Journal()
        self.events = InMemoryEventSink(self.journal)
        self.contracts: Dict[bytes, Contract] = {}
        self._deploy_nonces: Dict[bytes, int] = {}
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, cfg: Config, clock: Optional[ManualClock] = None) -> "LocalChain":
        return cls(chain_id=cfg.chain.chain_id, clock=clock)

    # ------------------------------------------------------------------ #
    # Transitions
    # ------------------------------------------------------------------ #

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Run a state transition: serialized, checkpointed, committed on
        success and reverted on any exception (which is re-raised).
        Nested uses fold into the enclosing transition.
        """
        with self._lock:
            self.journal.begin()
            try:
                yield
            except BaseException:
                self.journal.revert()
                raise
            self.journal.commit()

    # ------------------------------------------------------------------ #
    # Time
    # ------------------------------------------------------------------ #

    def now(self) -> int:
        return self.clock.now()

    def set_next_block_timestamp(self, timestamp: int) -> None:
        self.clock.set(timestamp)

    def increase_time(self, seconds: int) -> int:
        return self.clock.advance(seconds)

    def mine(self, blocks: int = 1) -> int:
        """Seal `blocks` blocks; returns the new block number."""
        with self._lock:
            for _ in range(blocks):
                self.block_number += 1
                self.clock.advance(self.block_time)
        log.debug("mined", extra={"block": self.block_number, "timestamp": self.clock.now()})
        return self.block_number

    # ------------------------------------------------------------------ #
    # Deployment
    # ------------------------------------------------------------------ #

    def _next_address(self, deployer: bytes) -> bytes:
        n = self._deploy_nonces.get(deployer, 0)
        self._deploy_nonces[deployer] = n + 1
        return contract_address(deployer, n)

    def deploy_token(
        self,
        deployer: AddressLike,
        name: str = DEFAULT_TOKEN_NAME,
        symbol: str = DEFAULT_TOKEN_SYMBOL,
        initial_supply: int = DEFAULT_INITIAL_SUPPLY,
        *,
        version: str = DEFAULT_TOKEN_VERSION,
        decimals: int = DEFAULT_DECIMALS,
    ) -> PermitToken:
        """Deploy a PermitToken and mint `initial_supply` to the deployer."""
        dep = to_address(deployer, name="deployer")
        with self._lock:
            addr = self._next_address(dep)
            token = PermitToken(self, addr, name=name, symbol=symbol, version=version, decimals=decimals)
            if initial_supply:
                token.mint_initial(dep, initial_supply)
            self.contracts[addr] = token
        log.info(
            "token deployed",
            extra={"token": checksum(addr), "symbol": symbol, "supply": initial_supply},
        )
        return token

    def deploy_vault(self, deployer: AddressLike, token: PermitToken) -> Vault:
        dep = to_address(deployer, name="deployer")
        with self._lock:
            addr = self._next_address(dep)
            vault = Vault(self, addr, token)
            self.contracts[addr] = vault
        log.info("vault deployed", extra={"vault": checksum(addr), "token": checksum(token.address)})
        return vault

    def root(self) -> bytes:
        """Digest over every token's ledger state and every vault's deposits."""
        parts = []
        for addr in sorted(self.contracts):
            c = self.contracts[addr]
            if isinstance(c, PermitToken):
                parts.append(addr + c.state.root())
            else:
                parts.append(addr + c.root())
        return keccak256(b"".join(parts))


__all__ = ["Contract", "LocalChain", "contract_address"]
