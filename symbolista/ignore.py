"""Hierarchical ignore rules, dotfile policy and extension denylist."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .logging import TRACE, get_logger

DEFAULT_RULE_FILE = ".gitignore"

DEFAULT_IGNORED_EXTENSIONS = (
    ".svg",
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".bmp",
    ".ico",
    ".webp",
)


class RuleLoadError(RuntimeError):
    """Raised when an existing rule file cannot be read."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Could not load ignore rules from {path}: {reason}")
        self.path = path


def _glob_match(pattern: str, rel_path: str) -> bool:
    # Shell-style wildcards never cross a "/" boundary.
    pattern_parts = pattern.split("/")
    path_parts = rel_path.split("/")
    if len(pattern_parts) != len(path_parts):
        return False
    return all(fnmatchcase(part, glob) for glob, part in zip(pattern_parts, path_parts))


@dataclass(frozen=True)
class IgnoreRule:
    """Represents one pattern parsed from a rule file."""

    pattern: str
    directory_only: bool
    anchored: bool
    source_dir: str = ""

    def matches(self, rel_path: str) -> bool:
        """Return True when ``rel_path`` (relative to ``source_dir``) is excluded."""
        if not self.pattern or not rel_path:
            return False

        parts = rel_path.split("/")
        if self.directory_only:
            if rel_path == self.pattern or rel_path.startswith(f"{self.pattern}/"):
                return True
            if self.anchored:
                return any(
                    _glob_match(self.pattern, "/".join(parts[:index]))
                    for index in range(1, len(parts) + 1)
                )
            if "/" not in self.pattern:
                return any(fnmatchcase(part, self.pattern) for part in parts)
            return _any_window_matches(self.pattern, parts)

        if self.anchored:
            if _glob_match(self.pattern, rel_path):
                return True
            return any(
                _glob_match(self.pattern, "/".join(parts[:index]))
                for index in range(1, len(parts))
            )

        if _glob_match(self.pattern, rel_path):
            return True
        if fnmatchcase(parts[-1], self.pattern):
            return True
        if any(fnmatchcase(part, self.pattern) for part in parts):
            return True
        return any(
            _glob_match(self.pattern, "/".join(parts[index:]))
            for index in range(1, len(parts))
        )


def _any_window_matches(pattern: str, parts: Sequence[str]) -> bool:
    width = pattern.count("/") + 1
    for start in range(0, len(parts) - width + 1):
        if _glob_match(pattern, "/".join(parts[start : start + width])):
            return True
    return False


def build_ignore_rule(line: str, source_dir: str = "") -> IgnoreRule | None:
    """Parse a single rule-file line, returning None for blanks and comments."""
    pattern = line.strip()
    if not pattern or pattern.startswith("#"):
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern.rstrip("/")

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern.lstrip("/")

    if not pattern:
        return None

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        source_dir=source_dir,
    )


def parse_rules(lines: Iterable[str], source_dir: str = "") -> List[IgnoreRule]:
    rules: List[IgnoreRule] = []
    for raw_line in lines:
        rule = build_ignore_rule(raw_line, source_dir)
        if rule is not None:
            rules.append(rule)
    return rules


class IgnoreMatcher:
    """Decides whether a path below the scan root should be skipped.

    Rule files are loaded lazily with :meth:`load_rules_for_directory` as the
    walker descends. Rules from every ancestor directory apply to a path and
    are combined with a logical OR: there is no negation, so a nested rule
    file can only add exclusions, never lift one inherited from a parent.

    The per-directory rule map is only mutated by the single walker thread.
    """

    def __init__(
        self,
        root: str | os.PathLike[str],
        *,
        include_dotfiles: bool = False,
        rule_file_name: str = DEFAULT_RULE_FILE,
        ignored_extensions: Optional[Iterable[str]] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.root = os.path.abspath(os.fspath(root))
        self.include_dotfiles = include_dotfiles
        self.rule_file_name = rule_file_name
        extensions = DEFAULT_IGNORED_EXTENSIONS if ignored_extensions is None else ignored_extensions
        self.ignored_extensions = {_normalise_extension(ext) for ext in extensions if ext}
        self.logger = logger or get_logger("ignore")
        self._rules: Dict[Tuple[str, ...], List[IgnoreRule]] = {}
        self.load_time = 0.0
        self.match_time = 0.0

        self.load_rules_for_directory(self.root)

    @property
    def total_time(self) -> float:
        return self.load_time + self.match_time

    def rules_for(self, directory: str | os.PathLike[str]) -> List[IgnoreRule]:
        """Return the rules loaded for ``directory`` (empty when none)."""
        return list(self._rules.get(self._relative_parts(os.fspath(directory)), []))

    def load_rules_for_directory(self, directory: str | os.PathLike[str]) -> List[IgnoreRule]:
        """Load the rule file in ``directory`` if present.

        A missing file is not an error. An unreadable or non UTF-8 file raises
        :class:`RuleLoadError`.
        """
        start = time.perf_counter()
        try:
            return self._load_rules(os.fspath(directory))
        finally:
            self.load_time += time.perf_counter() - start

    def _load_rules(self, directory: str) -> List[IgnoreRule]:
        rule_path = os.path.join(directory, self.rule_file_name)
        try:
            with open(rule_path, "r", encoding="utf-8") as handle:
                lines = handle.read().splitlines()
        except (FileNotFoundError, NotADirectoryError):
            self.logger.log(TRACE, "No rule file found at %s", rule_path)
            return []
        except UnicodeDecodeError as exc:
            self.logger.error("Rule file %s is not valid UTF-8", rule_path)
            raise RuleLoadError(rule_path, "not valid UTF-8") from exc
        except OSError as exc:
            self.logger.error("Cannot open rule file %s: %s", rule_path, exc)
            raise RuleLoadError(rule_path, exc.strerror or str(exc)) from exc

        key = self._relative_parts(directory)
        rules = parse_rules(lines, source_dir="/".join(key))
        if rules:
            self._rules[key] = rules
            self.logger.info("Loaded %d ignore rules from %s", len(rules), rule_path)
        else:
            self._rules.pop(key, None)
        return rules

    def should_ignore(self, path: str | os.PathLike[str]) -> bool:
        """Return True when ``path`` is excluded by any policy."""
        start = time.perf_counter()
        try:
            return self._should_ignore(os.fspath(path))
        finally:
            self.match_time += time.perf_counter() - start

    def _should_ignore(self, path: str) -> bool:
        name = os.path.basename(path.rstrip(os.sep)) or path

        extension = os.path.splitext(name)[1].lower()
        if extension and extension in self.ignored_extensions:
            self.logger.log(TRACE, "Ignoring %s by extension %s", path, extension)
            return True

        if not self.include_dotfiles and name.startswith(".") and name not in {".", ".."}:
            self.logger.log(TRACE, "Ignoring dotfile %s", path)
            return True

        parts = self._relative_parts(path)
        if not parts:
            return False
        rule = self._match_cascade(parts)
        if rule is not None:
            self.logger.log(
                TRACE,
                "Ignoring %s by pattern %r from %s",
                path,
                rule.pattern,
                rule.source_dir or ".",
            )
            return True
        return False

    def _match_cascade(self, parts: Tuple[str, ...]) -> IgnoreRule | None:
        # Nearest ancestor first, up to and including the scan root.
        for depth in range(len(parts) - 1, -1, -1):
            rules = self._rules.get(parts[:depth])
            if not rules:
                continue
            rel_path = "/".join(parts[depth:])
            for rule in rules:
                if rule.matches(rel_path):
                    return rule
        return None

    def _relative_parts(self, path: str) -> Tuple[str, ...]:
        absolute = os.path.abspath(path)
        if absolute == self.root:
            return ()
        prefix = self.root if self.root.endswith(os.sep) else self.root + os.sep
        if absolute.startswith(prefix):
            relative = absolute[len(prefix) :]
        else:
            relative = os.path.relpath(absolute, self.root)
        return tuple(part for part in relative.split(os.sep) if part)


def _normalise_extension(ext: str) -> str:
    ext = ext.strip().lower()
    return ext if ext.startswith(".") else f".{ext}"


__all__ = [
    "DEFAULT_IGNORED_EXTENSIONS",
    "DEFAULT_RULE_FILE",
    "IgnoreMatcher",
    "IgnoreRule",
    "RuleLoadError",
    "build_ignore_rule",
    "parse_rules",
]
