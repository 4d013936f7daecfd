"""Fixed-size worker pool computing per-file character and sequence counts."""

from __future__ import annotations

import logging
import os
import queue
import threading
from collections import Counter
from typing import Iterator, List, Optional

from .logging import TRACE, get_logger
from .models import FileJob, PartialResult
from .ngrams import count_pairs, count_triples

# The ASCII file and group separators (0x1c-0x1f) are whitespace to str.isspace
# but not text whitespace.
_SEPARATOR_CONTROLS = frozenset("\x1c\x1d\x1e\x1f")


def _is_counted(char: str) -> bool:
    return char.isprintable() or (char.isspace() and char not in _SEPARATOR_CONTROLS)


# ASCII control bytes never count as characters and are dropped from the
# sequence stream.
_CONTROL_BYTES = bytes(value for value in range(128) if not _is_counted(chr(value)))
_NON_ASCII_BYTES = bytes(range(128, 256))
_ASCII_EXCLUDED = _CONTROL_BYTES + _NON_ASCII_BYTES

_STOP = object()


def default_worker_count() -> int:
    return os.cpu_count() or 1


def process_file(job: FileJob) -> PartialResult:
    """Compute the partial statistics of a single file.

    Content is lower-cased once. The character table is built from bytes in
    ASCII-only mode and from decoded code points otherwise. Sequences are
    counted over the lower-cased byte stream with control bytes (and, in
    ASCII-only mode, every byte above 127) removed first.
    """
    text = job.content.decode("utf-8").lower()
    lowered = text.encode("utf-8")

    if job.ascii_only:
        stream = lowered.translate(None, _ASCII_EXCLUDED)
        char_map = dict(Counter(stream))
    else:
        stream = lowered.translate(None, _CONTROL_BYTES)
        char_map = dict(Counter(ord(char) for char in text if _is_counted(char)))

    config = job.sequence_config
    sequence_map2 = dict(count_pairs(stream)) if config.wants(2) else {}
    sequence_map3 = dict(count_triples(stream)) if config.wants(3) else {}

    return PartialResult(
        char_map=char_map,
        sequence_map2=sequence_map2,
        sequence_map3=sequence_map3,
        file_count=1,
        char_count=sum(char_map.values()),
        path=job.path,
    )


class WorkerPool:
    """Runs ``worker_count`` threads pulling jobs from a bounded queue.

    Closing the job queue puts one stop marker per worker; once every worker
    has exited a final marker is put on the result queue and :attr:`done` is
    set, so :meth:`results` ends after the last partial result.
    """

    def __init__(
        self,
        worker_count: int = 0,
        buffer_size: Optional[int] = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        if worker_count <= 0:
            worker_count = default_worker_count()
        self.worker_count = worker_count
        self.buffer_size = buffer_size if buffer_size and buffer_size > 0 else worker_count * 2
        self.logger = logger or get_logger("worker")
        self.jobs: "queue.Queue[object]" = queue.Queue(maxsize=self.buffer_size)
        self._results: "queue.Queue[object]" = queue.Queue(maxsize=self.buffer_size)
        self.done = threading.Event()
        self.processed_by_worker: List[int] = [0] * worker_count
        self._threads: List[threading.Thread] = []
        self._remaining = 0
        self._remaining_lock = threading.Lock()
        self._closed = False

    def start(self) -> None:
        if self._threads:
            raise RuntimeError("Worker pool already started")
        self.logger.debug("Starting worker pool with %d workers", self.worker_count)
        self._remaining = self.worker_count
        for worker_id in range(self.worker_count):
            thread = threading.Thread(
                target=self._run,
                args=(worker_id,),
                name=f"symbolista-worker-{worker_id}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

    def submit(self, job: FileJob) -> bool:
        """Queue ``job``; return False when the queue was full and the call blocked."""
        try:
            self.jobs.put_nowait(job)
            return True
        except queue.Full:
            self.logger.debug("Job queue full, waiting for workers (%s)", job.path)
            self.jobs.put(job)
            return False

    def close_jobs(self) -> None:
        if self._closed:
            return
        self._closed = True
        for _ in range(self.worker_count):
            self.jobs.put(_STOP)

    def results(self) -> Iterator[PartialResult]:
        while True:
            item = self._results.get()
            if item is _STOP:
                return
            yield item  # type: ignore[misc]

    def join(self) -> None:
        for thread in self._threads:
            thread.join()
        self.done.wait()

    def _run(self, worker_id: int) -> None:
        self.logger.log(TRACE, "Worker %d started", worker_id)
        try:
            while True:
                job = self.jobs.get()
                if job is _STOP:
                    break
                self._results.put(self._process(job, worker_id))  # type: ignore[arg-type]
        finally:
            self.logger.debug(
                "Worker %d processed %d files", worker_id, self.processed_by_worker[worker_id]
            )
            with self._remaining_lock:
                self._remaining -= 1
                last = self._remaining == 0
            if last:
                self._results.put(_STOP)
                self.done.set()

    def _process(self, job: FileJob, worker_id: int) -> PartialResult:
        self.logger.log(
            TRACE, "Worker %d processing %s (%d bytes)", worker_id, job.path, len(job.content)
        )
        try:
            result = process_file(job)
        except Exception:
            self.logger.exception("Worker %d failed to process %s", worker_id, job.path)
            return PartialResult(file_count=0, path=job.path, failed=True)
        self.processed_by_worker[worker_id] += 1
        return result


__all__ = ["WorkerPool", "default_worker_count", "process_file"]
