"""Tests for symbolista.discovery."""

from __future__ import annotations

import os
from pathlib import Path
from typing import List, Tuple

import pytest

from symbolista.collector import ResultCollector
from symbolista.discovery import FileDiscovery, FirstError
from symbolista.ignore import IgnoreMatcher, RuleLoadError
from symbolista.models import FileJob
from tests._fixtures.tree_builder import TreeBuilder


def _discover(root: Path, **kwargs: object) -> Tuple[List[FileJob], ResultCollector, FirstError, List[Tuple[int, int]]]:
    include_dotfiles = bool(kwargs.pop("include_dotfiles", False))
    matcher = IgnoreMatcher(root, include_dotfiles=include_dotfiles)
    collector = ResultCollector()
    errors = FirstError()
    progress: List[Tuple[int, int]] = []
    jobs: List[FileJob] = []
    closed: List[bool] = []

    discovery = FileDiscovery(
        root,
        matcher,
        collector,
        progress_callback=lambda found, processed: progress.append((found, processed)),
        error_callback=errors,
        **kwargs,  # type: ignore[arg-type]
    )
    discovery.run(jobs.append, lambda: closed.append(True))

    assert closed == [True]
    return jobs, collector, errors, progress


def _rel(root: Path, jobs: List[FileJob]) -> List[str]:
    return [Path(job.path).relative_to(root).as_posix() for job in jobs]


def test_walk_emits_jobs_in_lexical_preorder(tree: TreeBuilder) -> None:
    tree.write(
        {
            "b.txt": "b",
            "a.txt": "a",
            "sub/c.txt": "c",
            "sub/deeper/d.txt": "d",
        }
    )

    jobs, collector, errors, _ = _discover(tree.path())

    assert _rel(tree.path(), jobs) == ["a.txt", "b.txt", "sub/c.txt", "sub/deeper/d.txt"]
    assert collector.counts() == (4, 0)
    assert errors.error is None
    assert jobs[0].content == b"a"


def test_ignored_directories_are_pruned(tree: TreeBuilder) -> None:
    tree.write(
        {
            ".gitignore": "build/\n",
            "build/out.txt": "x",
            "build/nested/more.txt": "x",
            "src/main.py": "print()",
        }
    )

    jobs, collector, _, _ = _discover(tree.path())

    assert _rel(tree.path(), jobs) == ["src/main.py"]
    # Only the rule file itself is found-then-ignored; pruned files are never found.
    assert collector.counts() == (2, 1)


def test_dot_directories_are_pruned_unless_included(tree: TreeBuilder) -> None:
    tree.write({".hidden/secret.txt": "s", "visible.txt": "v"})

    hidden_jobs, _, _, _ = _discover(tree.path())
    all_jobs, _, _, _ = _discover(tree.path(), include_dotfiles=True)

    assert _rel(tree.path(), hidden_jobs) == ["visible.txt"]
    assert _rel(tree.path(), all_jobs) == [".hidden/secret.txt", "visible.txt"]


def test_non_utf8_and_denylisted_files_are_ignored(tree: TreeBuilder) -> None:
    tree.write(
        {
            "binary.dat": b"\xff\xfe\x00\x01",
            "logo.svg": "<svg/>",
            "ok.txt": "fine",
        }
    )

    jobs, collector, _, _ = _discover(tree.path())

    assert _rel(tree.path(), jobs) == ["ok.txt"]
    assert collector.counts() == (3, 2)


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_symlinks_count_as_ignored_special_files(tree: TreeBuilder) -> None:
    tree.write({"real/file.txt": "x", "target.txt": "t"})
    try:
        os.symlink(tree.path("target.txt"), tree.path("link.txt"))
        os.symlink(tree.path("real"), tree.path("linked_dir"), target_is_directory=True)
    except OSError:
        pytest.skip("cannot create symlinks")

    jobs, collector, _, _ = _discover(tree.path())

    assert _rel(tree.path(), jobs) == ["target.txt", "real/file.txt"]
    assert collector.counts() == (4, 2)


@pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="fifos unavailable")
def test_fifo_is_skipped_without_blocking(tree: TreeBuilder) -> None:
    tree.write({"a.txt": "a"})
    os.mkfifo(tree.path("pipe"))

    jobs, collector, _, _ = _discover(tree.path())

    assert _rel(tree.path(), jobs) == ["a.txt"]
    assert collector.counts() == (2, 1)


def test_progress_reports_cumulative_counts(tree: TreeBuilder) -> None:
    tree.write({"a.txt": "a", "b.svg": "b", "c.txt": "c"})

    _, _, _, progress = _discover(tree.path())

    assert progress == [(1, 1), (2, 2), (3, 2)]


def test_jobs_carry_run_options(tree: TreeBuilder) -> None:
    tree.write({"a.txt": "a"})

    jobs, _, _, _ = _discover(tree.path(), ascii_only=False)

    assert jobs[0].ascii_only is False
    assert jobs[0].sequence_config.enabled is True


def test_nested_rule_load_error_is_recorded_and_walk_continues(tree: TreeBuilder) -> None:
    tree.write({"bad/keep.txt": "k", "good/ok.txt": "o"})
    tree.path("bad/.gitignore").write_bytes(b"\xff\xfe")

    jobs, _, errors, _ = _discover(tree.path())

    assert isinstance(errors.error, RuleLoadError)
    assert _rel(tree.path(), jobs) == ["bad/keep.txt", "good/ok.txt"]


@pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="requires POSIX permissions as non-root")
def test_unreadable_directory_is_recorded_and_siblings_continue(tree: TreeBuilder) -> None:
    tree.write({"locked/secret.txt": "s", "open/ok.txt": "o"})
    locked = tree.path("locked")
    locked.chmod(0)
    try:
        jobs, _, errors, _ = _discover(tree.path())
    finally:
        locked.chmod(0o755)

    assert isinstance(errors.error, (PermissionError, RuleLoadError))
    assert _rel(tree.path(), jobs) == ["open/ok.txt"]


def test_first_error_wins() -> None:
    errors = FirstError()
    first = OSError("first")

    errors(first)
    errors(OSError("second"))

    assert errors.error is first


def test_run_feeds_only_the_sink_it_was_given(tree: TreeBuilder) -> None:
    tree.write({"a.txt": "a", "b.txt": "b"})
    matcher = IgnoreMatcher(tree.path())
    discovery = FileDiscovery(tree.path(), matcher, ResultCollector())
    first: List[FileJob] = []
    second: List[FileJob] = []

    discovery.run(first.append, lambda: None)
    discovery.run(second.append, lambda: None)

    assert _rel(tree.path(), first) == ["a.txt", "b.txt"]
    assert _rel(tree.path(), second) == ["a.txt", "b.txt"]
