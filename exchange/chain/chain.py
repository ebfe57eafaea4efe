"""In-process chain: contract registry, native balances, event log and
atomic transactions.

Contracts are plain Python objects registered under an address. They refer to
each other by address and resolve through the chain, so the whole world state
is reachable from one Chain instance.

Every externally callable contract method is wrapped with ``@external``. The
outermost call opens a transaction that journals native balances, nonces and
the event log. Contract state is journaled lazily: a contract is deep-copied
the first time the transaction enters one of its methods or resolves it
through ``get``/``at``, so a call pays only for the contracts it touches. If
any exception escapes, the journal is restored and the exception propagates.
Nested calls join the open transaction, so a failure deep inside a multi-hop
swap undoes every hop.
"""

from __future__ import annotations

import copy
import functools
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar, cast

import structlog

from exchange.chain.addresses import create_address
from exchange.constants import DEFAULT_CHAIN_ID
from exchange.errors import InsufficientBalance, NativeTransferFailed
from exchange.models.events import Event
from exchange.models.types import normalize_address

logger = structlog.get_logger()

C = TypeVar("C", bound="Contract")
E = TypeVar("E", bound=Event)
P = ParamSpec("P")
R = TypeVar("R")


class Contract:
    """Base for objects living at an address on a Chain.

    Subclasses keep all of their state in instance attributes so that
    transaction snapshots capture it.
    """

    def __init__(self, chain: Chain, address: str) -> None:
        self.chain = chain
        self.address = normalize_address(address, validate=True)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address})"

    def receive(self, sender: str, value: int) -> None:
        """Called when native coin is sent to this contract.

        Raises:
            NativeTransferFailed: Contracts refuse native coin by default
        """
        raise NativeTransferFailed(f"{self!r} does not accept native coin from {sender}")

    def emit(self, event: Event) -> None:
        self.chain.emit(event)

    def state_dict(self) -> dict[str, Any]:
        return {k: v for k, v in vars(self).items() if k != "chain"}

    def load_state(self, state: dict[str, Any]) -> None:
        chain = self.chain
        self.__dict__.clear()
        self.__dict__.update(state)
        self.chain = chain


def external(method: Callable[P, R]) -> Callable[P, R]:
    """Run a contract method atomically inside a chain transaction."""

    @functools.wraps(method)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        contract = cast(Contract, args[0])
        with contract.chain.transaction():
            contract.chain.touch(contract)
            return method(*args, **kwargs)

    return wrapper


@dataclass
class _Journal:
    native: dict[str, int]
    nonces: dict[str, int]
    event_count: int
    states: dict[str, dict[str, Any]] = field(default_factory=dict)
    deployed: set[str] = field(default_factory=set)


class Chain:
    """World state shared by all contracts.

    Attributes:
        chain_id: Id mixed into signed permits
        timestamp: Current block timestamp (seconds)
        block_number: Current block height
        events: Ordered event log
    """

    def __init__(self, chain_id: int = DEFAULT_CHAIN_ID, timestamp: int | None = None) -> None:
        self.chain_id = chain_id
        self.timestamp = int(time.time()) if timestamp is None else timestamp
        self.block_number = 1
        self.events: list[Event] = []
        self._contracts: dict[str, Contract] = {}
        self._native: dict[str, int] = {}
        self._nonces: dict[str, int] = {}
        self._depth = 0
        self._journal: _Journal | None = None

    # --- Blocks ---

    def mine(self, seconds: int = 1) -> int:
        """Advance to a new block ``seconds`` later and return its timestamp."""
        if seconds < 0:
            raise ValueError(f"Cannot move time backwards: {seconds}")
        self.timestamp += seconds
        self.block_number += 1
        return self.timestamp

    def set_timestamp(self, timestamp: int) -> None:
        """Mine a block at an absolute timestamp."""
        if timestamp < self.timestamp:
            raise ValueError(f"Timestamp {timestamp} is before current {self.timestamp}")
        self.mine(timestamp - self.timestamp)

    # --- Transactions ---

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Atomic scope: on any exception all state reverts to the entry point."""
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        self._journal = _Journal(
            native=dict(self._native),
            nonces=dict(self._nonces),
            event_count=len(self.events),
        )
        self._depth = 1
        try:
            yield
        except Exception as err:
            self._restore(self._journal)
            logger.debug("transaction_reverted", error=type(err).__name__, reason=str(err))
            raise
        finally:
            self._depth = 0
            self._journal = None

    def touch(self, contract: Contract) -> None:
        """Journal a contract's state before the open transaction changes it."""
        journal = self._journal
        if journal is None:
            return
        address = contract.address
        if address in journal.states or address in journal.deployed:
            return
        journal.states[address] = copy.deepcopy(contract.state_dict())

    def _restore(self, journal: _Journal) -> None:
        for address in journal.deployed:
            del self._contracts[address]
        for address, state in journal.states.items():
            self._contracts[address].load_state(state)
        self._native = journal.native
        self._nonces = journal.nonces
        del self.events[journal.event_count :]

    # --- Contracts ---

    def deploy(self, cls: Callable[..., C], deployer: str, *args: Any, **kwargs: Any) -> C:
        """Deploy a contract at the next create-style address of ``deployer``."""
        deployer = normalize_address(deployer, validate=True)
        with self.transaction():
            nonce = self._nonces.get(deployer, 0)
            self._nonces[deployer] = nonce + 1
            return self.deploy_at(create_address(deployer, nonce), cls, *args, **kwargs)

    def deploy_at(self, address: str, cls: Callable[..., C], *args: Any, **kwargs: Any) -> C:
        """Deploy a contract at a precomputed address.

        Raises:
            ValueError: If the address is already occupied
        """
        address = normalize_address(address, validate=True)
        if address in self._contracts:
            raise ValueError(f"Address {address} already holds {self._contracts[address]!r}")
        with self.transaction():
            contract = cls(self, address, *args, **kwargs)
            self._contracts[address] = contract
            if self._journal is not None:
                self._journal.deployed.add(address)
        logger.debug("contract_deployed", contract=type(contract).__name__, address=address)
        return contract

    def get(self, address: str) -> Contract | None:
        contract = self._contracts.get(normalize_address(address))
        if contract is not None:
            self.touch(contract)
        return contract

    def at(self, address: str, cls: type[C]) -> C:
        """Resolve the contract at ``address`` as an instance of ``cls``.

        Raises:
            LookupError: If nothing of that type lives at the address
        """
        contract = self.get(address)
        if not isinstance(contract, cls):
            raise LookupError(f"No {cls.__name__} at {address}")
        return contract

    def is_contract(self, address: str) -> bool:
        return normalize_address(address) in self._contracts

    # --- Native coin ---

    def native_balance(self, address: str) -> int:
        return self._native.get(normalize_address(address), 0)

    def fund(self, address: str, amount: int) -> None:
        """Credit native coin out of thin air (test faucet)."""
        if amount < 0:
            raise ValueError(f"Cannot fund a negative amount: {amount}")
        address = normalize_address(address, validate=True)
        self._native[address] = self._native.get(address, 0) + amount

    def attach_value(self, sender: str, recipient: str, value: int) -> None:
        """Move native coin sent along with a call, without a receive hook."""
        self._move_native(sender, recipient, value)

    def transfer_native(self, sender: str, recipient: str, value: int) -> None:
        """Send native coin, invoking ``receive`` on contract recipients.

        Raises:
            InsufficientBalance: If sender holds less than value
            NativeTransferFailed: If the recipient contract refuses the coin
        """
        with self.transaction():
            self._move_native(sender, recipient, value)
            contract = self.get(recipient)
            if contract is not None:
                contract.receive(normalize_address(sender), value)

    def _move_native(self, sender: str, recipient: str, value: int) -> None:
        if value < 0:
            raise ValueError(f"Native value cannot be negative: {value}")
        sender = normalize_address(sender, validate=True)
        recipient = normalize_address(recipient, validate=True)
        balance = self._native.get(sender, 0)
        if balance < value:
            raise InsufficientBalance(f"{sender} holds {balance} native, needs {value}")
        self._native[sender] = balance - value
        self._native[recipient] = self._native.get(recipient, 0) + value

    # --- Events ---

    def emit(self, event: Event) -> None:
        self.events.append(event)

    def events_of(self, kind: type[E], emitter: str | None = None) -> list[E]:
        """Logged events of one type, optionally from one emitter, in log order."""
        wanted = normalize_address(emitter) if emitter is not None else None
        return [
            event
            for event in self.events
            if isinstance(event, kind) and (wanted is None or event.emitter == wanted)
        ]

    @contextmanager
    def capture(self) -> Iterator[list[Event]]:
        """Collect the events emitted inside the block.

        Events of a reverted transaction are not collected.
        """
        captured: list[Event] = []
        start = len(self.events)
        try:
            yield captured
        finally:
            captured.extend(self.events[start:])


__all__ = ["Chain", "Contract", "external"]
