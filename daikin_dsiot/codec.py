"""Hex value codec for dsiot leaf nodes.

Values travel as little-endian two's-complement integers rendered in hex.
The node metadata ``st`` byte describes a fixed-point scale: the low nibble
is a base multiplier and the high nibble selects a power of ten.
"""

from __future__ import annotations

from decimal import Decimal

from .protocol import NodeMetadata

_COEFFICIENTS: tuple[Decimal, ...] = tuple(
    Decimal(10) ** exponent
    for exponent in (0, 1, 2, 3, 4, 5, 6, 7, -8, -7, -6, -5, -4, -3, -2, -1)
)


def convert_endian(hex_value: str) -> str:
    """Reverse the byte order of ``hex_value``."""

    if len(hex_value) % 2:
        raise ValueError(f"Hex value {hex_value!r} has an odd number of digits")
    return "".join(
        hex_value[index : index + 2] for index in range(len(hex_value) - 2, -1, -2)
    )


def step_scale(step: int) -> Decimal:
    """Return the exact scale factor encoded by a metadata step byte."""

    if not 0 <= step <= 0xFF:
        raise ValueError(f"Step {step} is outside 0..0xFF")
    base = step & 0x0F
    index = (step >> 4) & 0x0F
    if index >= len(_COEFFICIENTS):
        raise ValueError(f"Step {step:#04x} selects no coefficient")
    return base * _COEFFICIENTS[index]


def _to_signed(hex_value: str) -> int:
    if not hex_value:
        raise ValueError("Cannot decode an empty hex value")
    raw = int(hex_value, 16)
    bits = len(hex_value) * 4
    if raw >= 1 << (bits - 1):
        raw -= 1 << bits
    return raw


def decode(hex_value: str, metadata: NodeMetadata | None = None) -> Decimal:
    """Decode a wire value, applying the scale from ``metadata``.

    A zero scale means the raw integer is returned unchanged.

    """

    raw = _to_signed(convert_endian(hex_value))
    scale = step_scale(metadata.step if metadata is not None else 0)
    if scale == 0:
        return Decimal(raw)
    return raw * scale


def decode_int(hex_value: str, metadata: NodeMetadata | None = None) -> int:
    """Decode a wire value truncated toward zero."""

    return int(decode(hex_value, metadata))


def decode_float(hex_value: str, metadata: NodeMetadata | None = None) -> float:
    """Decode a wire value as a float."""

    return float(decode(hex_value, metadata))


def encode(value: float | int | Decimal, metadata: NodeMetadata | None) -> str:
    """Encode ``value`` for a field described by ``metadata``.

    The output width follows the declared maximum; a field without one cannot
    be encoded.

    """

    if metadata is None or not metadata.maximum:
        raise ValueError("Field declares no maximum; cannot size encoded value")
    number = value if isinstance(value, Decimal) else Decimal(str(value))
    scale = step_scale(metadata.step)
    if scale != 0:
        number = number / scale
    raw = int(number)
    size = len(metadata.maximum) // 2
    masked = raw & ((1 << (size * 8)) - 1)
    return convert_endian(f"{masked:0{size * 2}X}")


def encode_int(value: float | int, metadata: NodeMetadata | None) -> str:
    """Truncate ``value`` to an integer and encode it."""

    return encode(int(value), metadata)
