"""Interfaces the exchange expects from asset ledgers."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class AssetLedger(Protocol):
    """Fungible token ledger (ERC-20 shaped).

    ``sender`` is always the account making the call.
    """

    address: str

    def balance_of(self, owner: str) -> int: ...

    def allowance(self, owner: str, spender: str) -> int: ...

    def approve(self, sender: str, spender: str, amount: int) -> bool: ...

    def transfer(self, sender: str, to: str, amount: int) -> bool: ...

    def transfer_from(self, sender: str, owner: str, to: str, amount: int) -> bool: ...


@runtime_checkable
class NativeWrapper(AssetLedger, Protocol):
    """Ledger holding native coin 1:1 as a fungible asset."""

    def deposit(self, sender: str, value: int) -> None: ...

    def withdraw(self, sender: str, amount: int) -> None: ...


@runtime_checkable
class SwapCallee(Protocol):
    """Contract notified by a pool after optimistic swap transfers."""

    def on_pool_swap(
        self, sender: str, amount0_out: int, amount1_out: int, data: bytes
    ) -> None: ...


__all__ = ["AssetLedger", "NativeWrapper", "SwapCallee"]
