"""Table, CSV and JSON renderers for analysis results."""

from __future__ import annotations

import csv
import io
import json
from dataclasses import asdict
from typing import Any, Dict, List

from .models import AnalysisResult, CharCount, SequenceCount

_RULE_WIDTH = 35

_CHAR_LABELS = {
    " ": "<space>",
    "\t": "<tab>",
    "\n": "<newline>",
    "\r": "<return>",
    "\f": "<formfeed>",
    "\v": "<vert_tab>",
}

_SEQUENCE_GLYPHS = (
    ("\n", "↵"),
    (" ", "⎵"),
    ("\t", "⇥"),
    ("\r", "⏎"),
)


def display_char(character: str) -> str:
    return _CHAR_LABELS.get(character, character)


def display_sequence(sequence: str) -> str:
    for raw, glyph in _SEQUENCE_GLYPHS:
        sequence = sequence.replace(raw, glyph)
    return sequence


def render_table(result: AnalysisResult, *, show_percentages: bool = True) -> str:
    lines: List[str] = []
    rule = "-" * _RULE_WIDTH

    def _header(first: str) -> None:
        header = f"{first:<10} {'Count':<10}"
        if show_percentages:
            header += f" {'Percentage':<12}"
        lines.append(rule)
        lines.append(header)
        lines.append(rule)

    def _row(label: str, count: int, percentage: float) -> None:
        row = f"{label:<10} {count:<10d}"
        if show_percentages:
            row += f" {percentage:<12.2f}%"
        lines.append(row.rstrip())

    lines.append("Characters:")
    _header("Character")
    for char in result.characters:
        _row(display_char(char.character), char.count, char.percentage)
    lines.append(rule)

    if result.sequences:
        lines.append("")
        lines.append("Sequences (2-3 chars):")
        _header("Sequence")
        for seq in result.sequences:
            _row(display_sequence(seq.sequence), seq.count, seq.percentage)
        lines.append(rule)

    return "\n".join(lines) + "\n"


def render_csv(result: AnalysisResult, *, show_percentages: bool = True) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    header = ["type", "sequence", "count"]
    if show_percentages:
        header.append("percentage")
    writer.writerow(header)

    for char in result.characters:
        row = ["character", display_char(char.character), str(char.count)]
        if show_percentages:
            row.append(f"{char.percentage:.2f}%")
        writer.writerow(row)

    for seq in result.sequences:
        row = ["sequence", display_sequence(seq.sequence), str(seq.count)]
        if show_percentages:
            row.append(f"{seq.percentage:.2f}%")
        writer.writerow(row)

    return buffer.getvalue()


def build_json_payload(
    result: AnalysisResult,
    *,
    show_percentages: bool = True,
    directory: str | None = None,
    include_metadata: bool = True,
) -> Dict[str, Any]:
    """Return the JSON-serialisable document used by the CLI and the service."""

    def _char(entry: CharCount) -> Dict[str, Any]:
        return {
            "char": entry.character,
            "count": entry.count,
            "percentage": entry.percentage if show_percentages else 0,
        }

    def _sequence(entry: SequenceCount) -> Dict[str, Any]:
        return {
            "sequence": entry.sequence,
            "count": entry.count,
            "percentage": entry.percentage if show_percentages else 0,
        }

    payload: Dict[str, Any] = {
        "result": {
            "characters": [_char(entry) for entry in result.characters],
            "sequences": [_sequence(entry) for entry in result.sequences],
        }
    }
    if include_metadata:
        payload["metadata"] = {
            "directory": directory,
            "files_found": result.files_found,
            "files_processed": result.files_processed,
            "files_ignored": result.files_ignored,
            "total_characters": result.total_chars,
            "unique_characters": result.unique_chars,
            "unique_sequences": result.unique_sequences,
            "timing": asdict(result.timing),
        }
    return payload


def render_json(
    result: AnalysisResult,
    *,
    show_percentages: bool = True,
    directory: str | None = None,
    include_metadata: bool = True,
) -> str:
    payload = build_json_payload(
        result,
        show_percentages=show_percentages,
        directory=directory,
        include_metadata=include_metadata,
    )
    return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"


def render(
    kind: str,
    result: AnalysisResult,
    *,
    show_percentages: bool = True,
    directory: str | None = None,
    include_metadata: bool = True,
) -> str:
    """Render ``result`` in ``kind`` format; unknown kinds fall back to a table."""
    if kind == "json":
        return render_json(
            result,
            show_percentages=show_percentages,
            directory=directory,
            include_metadata=include_metadata,
        )
    if kind == "csv":
        return render_csv(result, show_percentages=show_percentages)
    return render_table(result, show_percentages=show_percentages)


__all__ = [
    "build_json_payload",
    "display_char",
    "display_sequence",
    "render",
    "render_csv",
    "render_json",
    "render_table",
]
