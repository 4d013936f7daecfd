"""Tests for symbolista.ngrams."""

from __future__ import annotations

import random

import pytest

from symbolista.ngrams import (
    count_pairs,
    count_triples,
    merge_unpacked,
    pack2,
    pack3,
    unpack2,
    unpack3,
)


def test_pair_keys_round_trip_for_every_byte_pair() -> None:
    for first in range(256):
        for second in range(256):
            key = pack2(first, second)
            assert 0 <= key <= 0xFFFF
            assert unpack2(key) == bytes((first, second))


def test_triple_keys_round_trip() -> None:
    rng = random.Random(1234)
    samples = [(0, 0, 0), (255, 255, 255), (0x61, 0x62, 0x63)]
    samples.extend(tuple(rng.randrange(256) for _ in range(3)) for _ in range(5000))

    for first, second, third in samples:
        key = pack3(first, second, third)
        assert 0 <= key <= 0xFFFFFF
        assert unpack3(key) == bytes((first, second, third))


def test_pack_layout_puts_first_byte_high() -> None:
    assert pack2(0x61, 0x62) == 0x6162
    assert pack3(0x61, 0x62, 0x63) == 0x616263


def test_unpack_rejects_out_of_range_keys() -> None:
    with pytest.raises(ValueError):
        unpack2(0x10000)
    with pytest.raises(ValueError):
        unpack3(-1)


def test_window_counters_use_pack_layout() -> None:
    assert list(count_pairs(b"ab")) == [pack2(ord("a"), ord("b"))]
    assert list(count_triples(b"abc")) == [pack3(ord("a"), ord("b"), ord("c"))]
    assert unpack2(next(iter(count_pairs(b"\xff\x01")))) == b"\xff\x01"
    assert unpack3(next(iter(count_triples(b"\x80\x00\xfe")))) == b"\x80\x00\xfe"


def test_sliding_window_counts() -> None:
    stream = b"abab"

    assert count_pairs(stream) == {pack2(0x61, 0x62): 2, pack2(0x62, 0x61): 1}
    assert count_triples(stream) == {pack3(0x61, 0x62, 0x61): 1, pack3(0x62, 0x61, 0x62): 1}


def test_short_streams_have_no_sequences() -> None:
    assert count_pairs(b"") == {}
    assert count_pairs(b"a") == {}
    assert count_triples(b"ab") == {}


def test_multibyte_characters_are_packed_bytewise() -> None:
    stream = "é".encode("utf-8")

    assert count_pairs(stream) == {pack2(0xC3, 0xA9): 1}


def test_merge_unpacked_combines_lengths() -> None:
    merged = merge_unpacked({pack2(0x61, 0x62): 3}, {pack3(0x61, 0x62, 0x63): 2})

    assert merged == {b"ab": 3, b"abc": 2}
