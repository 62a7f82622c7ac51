"""Deterministic sampling seeds derived from user input."""

import struct

_INT32_MASK = 0xFFFFFFFF
_INT32_SIGN = 0x80000000


def _utf16_units(text: str) -> tuple:
    data = text.encode("utf-16-le")
    return struct.unpack(f"<{len(data) // 2}H", data)


def generate_seed(text: str) -> int:
    """Hash ``text`` into a non-negative integer seed.

    Rolling ``h * 31 + unit`` over UTF-16 code units, wrapped to a signed
    32-bit integer at every step. Not collision resistant.
    """
    value = 0
    for unit in _utf16_units(text):
        value = ((value << 5) - value + unit) & _INT32_MASK
    if value & _INT32_SIGN:
        value -= 1 << 32
    return abs(value)


def fortune_seed(name: str, birth_date: str, target_date: str) -> int:
    """Seed for a daily fortune reading."""
    return generate_seed(f"{name}-{birth_date}-{target_date}")


def compatibility_seed(name_a: str, name_b: str) -> int:
    """Seed for a compatibility reading."""
    return generate_seed(f"comp-{name_a}-{name_b}")
