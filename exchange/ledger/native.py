"""Wrapped native coin (WETH9 semantics)."""

from __future__ import annotations

from exchange.chain.chain import Chain, external
from exchange.errors import InsufficientBalance
from exchange.ledger.erc20 import FungibleToken
from exchange.models.events import Deposit, Withdrawal
from exchange.models.types import normalize_address


class WrappedNative(FungibleToken):
    """Holds native coin 1:1 as a fungible balance.

    Native coin sent to the contract is credited to the sender, so
    ``deposit`` is just a native transfer with a receive hook.
    """

    def __init__(
        self,
        chain: Chain,
        address: str,
        name: str = "Wrapped Ether",
        symbol: str = "WETH",
        decimals: int = 18,
    ) -> None:
        super().__init__(chain, address, name, symbol, decimals)

    def receive(self, sender: str, value: int) -> None:
        sender = normalize_address(sender)
        self.balances[sender] = self.balances.get(sender, 0) + value
        self.total_supply += value
        self.emit(Deposit(self.address, sender, value))

    @external
    def deposit(self, sender: str, value: int) -> None:
        self.chain.transfer_native(sender, self.address, value)

    @external
    def withdraw(self, sender: str, amount: int) -> None:
        """Burn ``amount`` of sender's balance and send the native coin back.

        Raises:
            InsufficientBalance: If sender holds less than amount
            NativeTransferFailed: If sender is a contract refusing native coin
        """
        sender = normalize_address(sender)
        balance = self.balances.get(sender, 0)
        if balance < amount:
            raise InsufficientBalance(f"{self.symbol}: {sender} holds {balance}, needs {amount}")
        self.balances[sender] = balance - amount
        self.total_supply -= amount
        self.emit(Withdrawal(self.address, sender, amount))
        self.chain.transfer_native(self.address, sender, amount)


__all__ = ["WrappedNative"]
