"""Events appended to the chain log.

Every event records the emitting contract in ``emitter``. Consumers (price
oracles, indexers, tests) rely on the order of the log, not on timestamps.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Event:
    """Base class for log entries."""

    emitter: str


@dataclass(frozen=True)
class Transfer(Event):
    """Fungible balance moved from ``src`` to ``dst`` (zero address for mint/burn)."""

    src: str
    dst: str
    value: int


@dataclass(frozen=True)
class Approval(Event):
    owner: str
    spender: str
    value: int


@dataclass(frozen=True)
class Deposit(Event):
    """Native coin wrapped into the fungible representation."""

    dst: str
    value: int


@dataclass(frozen=True)
class Withdrawal(Event):
    """Fungible representation unwrapped back to native coin."""

    src: str
    value: int


@dataclass(frozen=True)
class Sync(Event):
    """Reserve snapshot written at the end of every pool state change."""

    reserve0: int
    reserve1: int


@dataclass(frozen=True)
class Mint(Event):
    sender: str
    amount0: int
    amount1: int


@dataclass(frozen=True)
class Burn(Event):
    sender: str
    amount0: int
    amount1: int
    to: str


@dataclass(frozen=True)
class Swap(Event):
    sender: str
    amount0_in: int
    amount1_in: int
    amount0_out: int
    amount1_out: int
    to: str


@dataclass(frozen=True)
class PoolCreated(Event):
    token0: str
    token1: str
    pool: str
    sequence: int


__all__ = [
    "Event",
    "Transfer",
    "Approval",
    "Deposit",
    "Withdrawal",
    "Sync",
    "Mint",
    "Burn",
    "Swap",
    "PoolCreated",
]
