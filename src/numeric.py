"""Fixed-width unsigned integer helpers."""

from __future__ import annotations


class FixedWidthOverflow(OverflowError):
    """Raised when a value does not fit in the requested unsigned width."""

    def __init__(self, value: int, width_bits: int):
        super().__init__(
            f"Value {value} exceeds uint{width_bits} maximum {max_unsigned(width_bits)}"
        )
        self.value = value
        self.width_bits = width_bits


def max_unsigned(width_bits: int) -> int:
    """Largest value representable in an unsigned integer of ``width_bits``."""
    if width_bits <= 0:
        raise ValueError(f"Width must be positive, got {width_bits}")
    return (1 << width_bits) - 1


def to_fixed_width(value: int, width_bits: int) -> int:
    """Return ``value`` unchanged if it fits in ``width_bits`` unsigned bits.

    Raises:
        FixedWidthOverflow: value is larger than ``2**width_bits - 1``.
        TypeError: value is not an integer (floats and bools are rejected).
        ValueError: value is negative or the width is not positive.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Expected an integer, got {type(value).__name__}: {value!r}")
    limit = max_unsigned(width_bits)
    if value < 0:
        raise ValueError(f"Unsigned value cannot be negative: {value}")
    if value > limit:
        raise FixedWidthOverflow(value, width_bits)
    return value
