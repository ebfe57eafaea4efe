"""Asset ledgers: fungible tokens and the wrapped native coin."""

from exchange.ledger.base import AssetLedger, NativeWrapper, SwapCallee
from exchange.ledger.erc20 import FungibleToken, MintableToken, PermitToken
from exchange.ledger.native import WrappedNative

__all__ = [
    "AssetLedger",
    "NativeWrapper",
    "SwapCallee",
    "FungibleToken",
    "MintableToken",
    "PermitToken",
    "WrappedNative",
]
