"""Bit-packed 2- and 3-byte sequence keys.

Sequences are counted under fixed-width integer keys instead of ``bytes``
slices so the hot loop never allocates per n-gram: a 2-gram is packed into 16
bits (``first << 8 | second``) and a 3-gram into 24 bits
(``first << 16 | second << 8 | third``). Lengths are therefore bytes, not
code points; multi-byte UTF-8 characters are packed byte-wise.
"""

from __future__ import annotations

from collections import Counter
from typing import Dict, Mapping

_BYTE = 0xFF


def pack2(first: int, second: int) -> int:
    return ((first & _BYTE) << 8) | (second & _BYTE)


def pack3(first: int, second: int, third: int) -> int:
    return ((first & _BYTE) << 16) | ((second & _BYTE) << 8) | (third & _BYTE)


def unpack2(key: int) -> bytes:
    if not 0 <= key <= 0xFFFF:
        raise ValueError(f"2-gram key out of range: {key}")
    return bytes(((key >> 8) & _BYTE, key & _BYTE))


def unpack3(key: int) -> bytes:
    if not 0 <= key <= 0xFFFFFF:
        raise ValueError(f"3-gram key out of range: {key}")
    return bytes(((key >> 16) & _BYTE, (key >> 8) & _BYTE, key & _BYTE))


def count_pairs(stream: bytes) -> Counter[int]:
    """Count every adjacent byte pair of ``stream`` under its packed key."""
    return Counter(pack2(first, second) for first, second in zip(stream, stream[1:]))


def count_triples(stream: bytes) -> Counter[int]:
    """Count every window of three bytes of ``stream`` under its packed key."""
    return Counter(
        pack3(first, second, third)
        for first, second, third in zip(stream, stream[1:], stream[2:])
    )


def merge_unpacked(
    pairs: Mapping[int, int], triples: Mapping[int, int]
) -> Dict[bytes, int]:
    """Expand packed keys back into their byte sequences in one mapping."""
    merged: Dict[bytes, int] = {}
    for key, count in pairs.items():
        sequence = unpack2(key)
        merged[sequence] = merged.get(sequence, 0) + count
    for key, count in triples.items():
        sequence = unpack3(key)
        merged[sequence] = merged.get(sequence, 0) + count
    return merged


__all__ = [
    "count_pairs",
    "count_triples",
    "merge_unpacked",
    "pack2",
    "pack3",
    "unpack2",
    "unpack3",
]
