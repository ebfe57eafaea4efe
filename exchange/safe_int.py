"""Safe integer wrapper for reserve and share arithmetic.

Pool accounting mirrors fixed-width on-chain integers. SafeInt keeps the
arithmetic explicit:
- Division by zero raises ArithmeticError
- Subtraction underflow raises ArithmeticError
- uint112 / uint256 overflow is caught on conversion

Usage pattern:
    from exchange.safe_int import S

    def shares_for(amount: int, supply: int, reserve: int) -> int:
        # Wrap at entry
        sa, ss, sr = S(amount), S(supply), S(reserve)

        # Natural arithmetic - automatically safe
        return ((sa * ss) // sr).value  # Raises if reserve == 0
"""

from __future__ import annotations

UINT112_MAX = 2**112 - 1
UINT256_MAX = 2**256 - 1


class SafeIntError(ArithmeticError):
    """Base class for SafeInt arithmetic errors."""

    pass


class DivisionByZero(SafeIntError):
    """Division by zero."""

    pass


class Underflow(SafeIntError):
    """Subtraction would produce negative result."""

    pass


class Uint256Overflow(SafeIntError):
    """Value does not fit in uint256."""

    pass


class Uint112Overflow(SafeIntError):
    """Value does not fit in a uint112 reserve slot."""

    pass


class SafeInt:
    """Non-negative integer with checked arithmetic.

    Attributes:
        value: The underlying integer value (read-only)
    """

    __slots__ = ("_value",)
    _value: int

    def __init__(self, value: int | SafeInt) -> None:
        if isinstance(value, SafeInt):
            self._value = value._value
        elif isinstance(value, int) and not isinstance(value, bool):
            self._value = value
        else:
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")

    @property
    def value(self) -> int:
        """The underlying integer value."""
        return self._value

    def __repr__(self) -> str:
        return f"SafeInt({self._value})"

    def __str__(self) -> str:
        return str(self._value)

    def __hash__(self) -> int:
        return hash(self._value)

    # --- Arithmetic operations ---

    def __add__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value + _extract_value(other))

    def __radd__(self, other: int) -> SafeInt:
        return SafeInt(other + self._value)

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        """Subtract other from self.

        Raises:
            Underflow: If result would be negative
        """
        other_val = _extract_value(other)
        result = self._value - other_val
        if result < 0:
            raise Underflow(f"Underflow: {self._value} - {other_val} = {result}")
        return SafeInt(result)

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value * _extract_value(other))

    def __rmul__(self, other: int) -> SafeInt:
        return SafeInt(other * self._value)

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        """Integer division.

        Raises:
            DivisionByZero: If other is zero
        """
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"Division by zero: {self._value} // 0")
        return SafeInt(self._value // other_val)

    def __lshift__(self, bits: int) -> SafeInt:
        return SafeInt(self._value << bits)

    # --- Comparison operations ---

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SafeInt):
            return self._value == other._value
        if isinstance(other, int):
            return self._value == other
        return NotImplemented

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _extract_value(other)

    def __le__(self, other: SafeInt | int) -> bool:
        return self._value <= _extract_value(other)

    def __gt__(self, other: SafeInt | int) -> bool:
        return self._value > _extract_value(other)

    def __ge__(self, other: SafeInt | int) -> bool:
        return self._value >= _extract_value(other)

    # --- Conversion ---

    def __int__(self) -> int:
        return self._value

    def __bool__(self) -> bool:
        return self._value != 0

    def __index__(self) -> int:
        return self._value

    # --- Named operations ---

    def ceiling_div(self, other: SafeInt | int) -> SafeInt:
        """Ceiling division (rounds up).

        Raises:
            DivisionByZero: If other is zero
        """
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"Ceiling division by zero: {self._value}")
        return SafeInt((self._value + other_val - 1) // other_val)

    def min(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(min(self._value, _extract_value(other)))

    def sqrt(self) -> SafeInt:
        """Floor of the square root (Babylonian method).

        Raises:
            Underflow: If the value is negative
        """
        if self._value < 0:
            raise Underflow(f"Square root of negative value: {self._value}")
        y = self._value
        if y > 3:
            z = y
            x = y // 2 + 1
            while x < z:
                z = x
                x = (y // x + x) // 2
            return SafeInt(z)
        return SafeInt(1 if y != 0 else 0)

    def to_uint112(self) -> int:
        """Convert to int, validating the reserve width.

        Raises:
            Uint112Overflow: If value is negative or exceeds 2^112-1
        """
        if self._value < 0 or self._value > UINT112_MAX:
            raise Uint112Overflow(f"Value does not fit in uint112: {self._value}")
        return self._value

    def to_uint256(self) -> int:
        """Convert to int, validating uint256 bounds.

        Raises:
            Uint256Overflow: If value is negative or exceeds 2^256-1
        """
        if self._value < 0:
            raise Uint256Overflow(f"Negative value cannot be uint256: {self._value}")
        if self._value > UINT256_MAX:
            raise Uint256Overflow(f"Value exceeds uint256 max: {self._value}")
        return self._value


def _extract_value(x: SafeInt | int) -> int:
    if isinstance(x, SafeInt):
        return x._value
    return x


# Convenience alias for concise code
S = SafeInt
