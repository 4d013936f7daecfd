"""CLI entrypoints for symbolista commands."""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import TextIO

from . import __version__
from .config import OUTPUT_FORMATS, ConfigError, SymbolistaConfig, load_config
from .logging import configure_logging
from .models import AnalysisResult, SequenceConfig
from .orchestrator import Orchestrator
from .output import render


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "count",
        "help": "Increase log verbosity (-v info, -vv debug, -vvv trace).",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = 0
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="symbolista",
        description=(
            "Count characters and short byte sequences in a codebase, "
            "respecting .gitignore rules."
        ),
    )
    parser.add_argument("--version", action="version", version=__version__)
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write log records to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyze a directory tree and print character statistics.",
    )
    _add_verbose_option(analyze_parser, suppress_default=True)
    analyze_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Directory to analyze (defaults to current directory).",
    )
    analyze_parser.add_argument(
        "-f",
        "--format",
        choices=OUTPUT_FORMATS,
        default=None,
        help="Output format (default: table, or the value from .symbolista.yml).",
    )
    analyze_parser.add_argument(
        "-w",
        "--workers",
        type=int,
        default=None,
        help="Number of worker threads (0 = one per CPU).",
    )
    analyze_parser.add_argument(
        "--include-dotfiles",
        action="store_true",
        default=None,
        help="Include dotfiles and dot-directories in the analysis.",
    )
    analyze_parser.add_argument(
        "--unicode",
        action="store_true",
        help="Count all Unicode characters instead of ASCII only.",
    )
    analyze_parser.add_argument(
        "--no-percentages",
        action="store_true",
        help="Omit percentages from the output.",
    )
    analyze_parser.add_argument(
        "--no-metadata",
        action="store_true",
        help="Omit the metadata block from JSON output.",
    )
    analyze_parser.add_argument(
        "--no-sequences",
        action="store_true",
        help="Skip 2-3 character sequence extraction.",
    )
    analyze_parser.add_argument(
        "--threshold",
        type=int,
        default=None,
        help="Minimum occurrences for a sequence to be reported.",
    )
    analyze_parser.add_argument(
        "--top",
        type=int,
        default=None,
        help="Report only the N most frequent sequences (0 = no limit).",
    )
    analyze_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a .symbolista.yml file (defaults to the one in the analyzed directory).",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP analysis service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def _resolve_settings(args: argparse.Namespace, config: SymbolistaConfig) -> dict[str, object]:
    sequences = config.sequences
    threshold = args.threshold if args.threshold is not None else sequences.threshold
    top_n = args.top if args.top is not None else sequences.top_n
    return {
        "workers": args.workers if args.workers is not None else config.workers,
        "include_dotfiles": bool(args.include_dotfiles) or config.include_dotfiles,
        "ascii_only": False if args.unicode else config.ascii_only,
        "sequence_config": SequenceConfig(
            enabled=sequences.enabled and not args.no_sequences,
            threshold=threshold,
            top_n=top_n or None,
        ),
    }


def _progress_printer(stream: TextIO):
    def _report(files_found: int, files_processed: int) -> None:
        stream.write(f"\rFiles found: {files_found}, Processed: {files_processed}")
        stream.flush()

    return _report


def _print_summary(
    result: AnalysisResult, *, verbose: bool, output_duration: float, stream: TextIO
) -> None:
    stream.write(f"Files/directories ignored: {result.files_ignored}\n")
    stream.write(f"Total characters: {result.total_chars}\n")
    stream.write(f"Unique characters: {result.unique_chars}\n")
    if verbose:
        stream.write("\nTiming Breakdown:\n")
        stream.write(f"  Ignore rules: {result.timing.rules:.6f}s\n")
        stream.write(f"  File traversal & counting: {result.timing.traversal:.6f}s\n")
        stream.write(f"  Sorting results: {result.timing.sorting:.6f}s\n")
        stream.write(f"  Output formatting: {output_duration:.6f}s\n")
    stream.write(f"Total time: {result.timing.total + output_duration:.6f}s\n")


def _run_analyze(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    target = Path(args.path)
    try:
        if args.config is not None:
            config = load_config(args.config)
        elif target.is_dir():
            config = load_config(target)
        else:
            # Missing or non-directory roots are reported by the orchestrator.
            config = SymbolistaConfig(root=target)
        settings = _resolve_settings(args, config)
    except (ConfigError, ValueError) as exc:
        parser.exit(1, f"symbolista: invalid configuration: {exc}\n")

    orchestrator = Orchestrator.from_config(config)
    try:
        result = orchestrator.analyze(
            args.path,
            progress_callback=_progress_printer(sys.stderr),
            **settings,  # type: ignore[arg-type]
        )
    except (FileNotFoundError, NotADirectoryError) as exc:
        sys.stderr.write("\n")
        parser.exit(1, f"{exc}\n")
    except RuntimeError as exc:
        sys.stderr.write("\n")
        parser.exit(1, f"symbolista analyze failed: {exc}\nRun with --verbose for more details.\n")
    sys.stderr.write("\n")

    output_format = args.format or config.output.format
    output_start = time.perf_counter()
    sys.stdout.write(
        render(
            output_format,
            result,
            show_percentages=config.output.percentages and not args.no_percentages,
            directory=args.path,
            include_metadata=config.output.metadata and not args.no_metadata,
        )
    )
    output_duration = time.perf_counter() - output_start
    result.timing.output = output_duration

    _print_summary(
        result,
        verbose=bool(args.verbose),
        output_duration=output_duration,
        stream=sys.stderr,
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for symbolista commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbosity=int(args.verbose), log_file=args.log_file)

    if args.command == "analyze":
        _run_analyze(parser, args)
    elif args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


if __name__ == "__main__":
    main(sys.argv[1:])
