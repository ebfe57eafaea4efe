"""Exchange error classes.

Three families, by what the caller can do about them:
- PreconditionError: caller-correctable, adjust inputs and resubmit
- InvariantError: the operation would break a pool guarantee; never retry
  with the same arguments
- ConcurrencyError: a disallowed recursive call into a locked pool

Ledger failures (balances, allowances, native transfers) derive from
LedgerError. Every error aborts the whole chain transaction.
"""


class ExchangeError(Exception):
    """Base error for exchange operations."""

    pass


class PreconditionError(ExchangeError):
    """Caller-correctable failure."""

    pass


class InvariantError(ExchangeError):
    """Operation would violate a pool guarantee."""

    pass


class ConcurrencyError(ExchangeError):
    """Disallowed reentrant call."""

    pass


class LedgerError(ExchangeError):
    """Failure inside the asset ledger or native wrapper."""

    pass


# --- Preconditions ---


class IdenticalAssets(PreconditionError):
    """Both sides of the pair are the same asset."""

    pass


class ZeroAddress(PreconditionError):
    """The zero address cannot be a pool asset."""

    pass


class PoolExists(PreconditionError):
    """A pool is already registered for this unordered pair."""

    pass


class PoolNotFound(PreconditionError):
    """No pool is registered for a hop of the path."""

    pass


class Expired(PreconditionError):
    """Block time is past the caller-supplied deadline."""

    pass


class InsufficientAAmount(PreconditionError):
    """Amount of asset A below the caller's minimum."""

    pass


class InsufficientBAmount(PreconditionError):
    """Amount of asset B below the caller's minimum."""

    pass


class InsufficientOutputAmount(PreconditionError):
    """No output requested, or output below the caller's minimum."""

    pass


class InsufficientInputAmount(PreconditionError):
    """Nothing was deposited into the pool before the swap, or a zero quote input."""

    pass


class ExcessiveInputAmount(PreconditionError):
    """Required input exceeds the caller's maximum."""

    pass


class InvalidPath(PreconditionError):
    """Swap path is too short or does not start/end with the wrapped native asset."""

    pass


class InvalidRecipient(PreconditionError):
    """Swap output cannot be sent to one of the pool's own assets."""

    pass


class Forbidden(PreconditionError):
    """Sender is not allowed to change registry settings."""

    pass


class InvalidSignature(PreconditionError):
    """Permit signature does not recover to the owner."""

    pass


# --- Invariants ---


class InvariantViolation(InvariantError):
    """Fee-adjusted reserve product would decrease."""

    pass


class InvalidInputOutput(InvariantError):
    """Fixed-ratio swap amounts do not match the initial ratio exactly."""

    pass


class InsufficientLiquidity(InvariantError):
    """Requested output would drain a reserve, or a quote hit an empty pool."""

    pass


class InsufficientLiquidityMinted(InvariantError):
    """Deposit would mint zero shares."""

    pass


class InsufficientLiquidityBurned(InvariantError):
    """Burn would return zero of either asset."""

    pass


class ReserveOverflow(InvariantError):
    """Balance does not fit in a 112-bit reserve."""

    pass


# --- Concurrency ---


class Reentrant(ConcurrencyError):
    """Pool entry point called while the pool is locked."""

    pass


# --- Ledger ---


class InsufficientBalance(LedgerError):
    """Holder balance is smaller than the amount moved."""

    pass


class InsufficientAllowance(LedgerError):
    """Spender allowance is smaller than the amount moved."""

    pass


class NativeTransferFailed(LedgerError):
    """Recipient contract refused native coin."""

    pass


class TransferFailed(LedgerError):
    """Asset ledger reported an unsuccessful transfer."""

    pass
