"""
Byte <-> Bit Conversion

Bytes are exploded least-significant bit first: bit 0 of a byte is the
first bool produced, bit 7 the last. Concatenation reverses this exactly.
"""

from typing import Iterable, List, Sequence


def explode_byte(byte: int) -> List[bool]:
    """
    Split a byte into 8 bools, LSB first.

    >>> explode_byte(0b00000101)
    [True, False, True, False, False, False, False, False]
    """
    if not 0 <= byte <= 0xFF:
        raise ValueError(f"Byte must be in [0, 255], got {byte}")
    return [(byte >> i) & 1 != 0 for i in range(8)]


def explode_bytes(data: bytes) -> List[bool]:
    """Explode every byte of `data` in order."""
    bits: List[bool] = []
    for byte in data:
        bits.extend(explode_byte(byte))
    return bits


def concat_bits_to_byte(bits: Sequence[bool]) -> int:
    """
    Rebuild a byte from up to 8 bools, LSB first. Missing high bits are 0.
    """
    if len(bits) > 8:
        raise ValueError(f"At most 8 bits fit in a byte, got {len(bits)}")
    value = 0
    for i, bit in enumerate(bits):
        if bit:
            value |= 1 << i
    return value


def concat_bits_to_bytes(bits: Sequence[bool]) -> bytes:
    """Group bits into bytes, 8 at a time."""
    return bytes(concat_bits_to_byte(bits[i:i + 8]) for i in range(0, len(bits), 8))


def split_blocks(data: bytes, block_size: int) -> Iterable[bytes]:
    """
    Yield consecutive `block_size`-byte slices of `data`, the last one
    zero padded up to `block_size`.
    """
    for start in range(0, len(data), block_size):
        block = data[start:start + block_size]
        if len(block) < block_size:
            block = block + bytes(block_size - len(block))
        yield block
