"""Tests for symbolista.worker."""

from __future__ import annotations

import threading

import pytest

from symbolista import worker as worker_module
from symbolista.models import FileJob, SequenceConfig
from symbolista.ngrams import pack2, pack3
from symbolista.worker import WorkerPool, process_file


def _job(content: bytes, *, ascii_only: bool = True, **sequence: object) -> FileJob:
    return FileJob(
        path="mem.txt",
        content=content,
        ascii_only=ascii_only,
        sequence_config=SequenceConfig(**sequence),  # type: ignore[arg-type]
    )


def test_process_file_lowercases_and_counts_characters() -> None:
    result = process_file(_job(b"AbA b\n"))

    assert result.char_map == {ord("a"): 2, ord("b"): 2, ord(" "): 1, ord("\n"): 1}
    assert result.char_count == 6
    assert result.file_count == 1
    assert not result.failed


def test_process_file_skips_control_bytes() -> None:
    result = process_file(_job(b"a\x00b\x07c\x1f"))

    assert result.char_map == {ord("a"): 1, ord("b"): 1, ord("c"): 1}
    assert result.sequence_map2 == {pack2(0x61, 0x62): 1, pack2(0x62, 0x63): 1}


def test_process_file_extracts_packed_sequences() -> None:
    result = process_file(_job(b"abc"))

    assert result.sequence_map2 == {pack2(0x61, 0x62): 1, pack2(0x62, 0x63): 1}
    assert result.sequence_map3 == {pack3(0x61, 0x62, 0x63): 1}


def test_whitespace_is_kept_in_sequences() -> None:
    result = process_file(_job(b"a b"))

    assert pack2(0x61, 0x20) in result.sequence_map2
    assert pack3(0x61, 0x20, 0x62) in result.sequence_map3


def test_disabled_sequences_produce_empty_maps() -> None:
    result = process_file(_job(b"abcdef", enabled=False))

    assert result.sequence_map2 == {}
    assert result.sequence_map3 == {}
    assert result.char_count == 6


def test_sequence_length_range_limits_maps() -> None:
    only_triples = process_file(_job(b"abcd", min_length=3))
    only_pairs = process_file(_job(b"abcd", max_length=2))

    assert only_triples.sequence_map2 == {}
    assert len(only_triples.sequence_map3) == 2
    assert len(only_pairs.sequence_map2) == 3
    assert only_pairs.sequence_map3 == {}


def test_ascii_only_drops_multibyte_content() -> None:
    result = process_file(_job("aé€b".encode("utf-8")))

    assert result.char_map == {ord("a"): 1, ord("b"): 1}
    assert all(key <= 0x7F for key in result.char_map)
    for key in result.sequence_map2:
        assert key >> 8 <= 0x7F and key & 0xFF <= 0x7F
    assert result.sequence_map2 == {pack2(0x61, 0x62): 1}


def test_unicode_mode_counts_code_points_and_packs_bytes() -> None:
    result = process_file(_job("ÉA".encode("utf-8"), ascii_only=False))

    assert result.char_map == {ord("é"): 1, ord("a"): 1}
    assert result.char_count == 2
    assert result.sequence_map2 == {pack2(0xC3, 0xA9): 1, pack2(0xA9, 0x61): 1}


def test_empty_file_yields_zero_result() -> None:
    result = process_file(_job(b""))

    assert result.char_map == {}
    assert result.char_count == 0
    assert result.file_count == 1


def _drain(pool: WorkerPool) -> list:
    collected = []
    for result in pool.results():
        collected.append(result)
    pool.join()
    return collected


def test_pool_processes_every_job_once() -> None:
    pool = WorkerPool(3)
    pool.start()

    contents = [f"file {index}".encode("utf-8") for index in range(25)]

    def _produce() -> None:
        for content in contents:
            pool.submit(_job(content))
        pool.close_jobs()

    producer = threading.Thread(target=_produce)
    producer.start()
    results = _drain(pool)
    producer.join()

    assert len(results) == len(contents)
    assert sum(result.file_count for result in results) == len(contents)
    assert sum(pool.processed_by_worker) == len(contents)
    assert pool.done.is_set()


def test_pool_defaults_to_cpu_count(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(worker_module.os, "cpu_count", lambda: 5)

    pool = WorkerPool(0)

    assert pool.worker_count == 5
    assert pool.buffer_size == 10


def test_pool_converts_unexpected_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    original = worker_module.process_file

    def _flaky(job: FileJob):
        if job.path == "bad.txt":
            raise RuntimeError("boom")
        return original(job)

    monkeypatch.setattr(worker_module, "process_file", _flaky)

    pool = WorkerPool(1)
    pool.start()

    def _produce() -> None:
        pool.submit(FileJob("bad.txt", b"x", True, SequenceConfig()))
        pool.submit(FileJob("good.txt", b"y", True, SequenceConfig()))
        pool.close_jobs()

    producer = threading.Thread(target=_produce)
    producer.start()
    results = _drain(pool)
    producer.join()

    by_path = {result.path: result for result in results}
    assert by_path["bad.txt"].failed is True
    assert by_path["bad.txt"].file_count == 0
    assert by_path["good.txt"].char_map == {ord("y"): 1}


def test_submit_blocks_when_queue_is_full() -> None:
    pool = WorkerPool(1, buffer_size=1)

    assert pool.submit(_job(b"a")) is True

    outcome: list[bool] = []
    blocked = threading.Thread(target=lambda: outcome.append(pool.submit(_job(b"b"))))
    blocked.start()
    blocked.join(timeout=0.2)
    assert blocked.is_alive()

    pool.start()
    blocked.join(timeout=5)
    assert outcome == [False]

    pool.close_jobs()
    results = _drain(pool)
    assert len(results) == 2
