"""
Command line interface for Snippet Harness.

    snippet-harness run DOCS_DIR [--languages cpp,python] [--timeout 10]
    snippet-harness extract DOCS_DIR [--format json]
    snippet-harness doctor

Exit codes: 0 = all verdicts matched, 1 = mismatches present, 2 = tooling error.
"""

from __future__ import annotations

import argparse
import json
import signal
import sys
import threading
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .batch import BatchRunner
from .core.config import ConfigManager, HarnessConfig
from .core.exceptions import ConfigurationError, SnippetHarnessError
from .core.logging import get_logger, setup_logging
from .extraction import ExtractionResult, SnippetExtractor
from .report import (
    EXIT_OK,
    EXIT_TOOLING_ERROR,
    BatchReport,
    build_extraction_table,
    extraction_to_dict,
)
from .toolchains.registry import detect_toolchain_health, resolve_language

logger = get_logger(__name__)

COMMANDS = ("run", "extract", "doctor")


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration file (YAML or JSON). Defaults to ./snippet_harness.yaml when present.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")


def _add_input_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", type=Path, help="Markdown file or directory of markdown files.")
    parser.add_argument(
        "--languages",
        "-l",
        default=None,
        help="Comma-separated language allow-list (e.g. cpp,python,go).",
    )
    parser.add_argument(
        "--format",
        choices=("table", "json"),
        default="table",
        help="Report format written to stdout.",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Also write the JSON report to this path.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snippet-harness",
        description="Compile and run broken/fixed code snippets from markdown tutorials.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Extract, run and classify snippets.")
    _add_input_options(run_parser)
    run_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-snippet run timeout in seconds.",
    )
    run_parser.add_argument(
        "--compile-timeout",
        type=float,
        default=None,
        help="Per-snippet compile timeout in seconds.",
    )
    run_parser.add_argument(
        "--jobs",
        "-j",
        type=int,
        default=None,
        help="Number of snippets run in parallel.",
    )
    run_parser.add_argument(
        "--strict",
        action="store_true",
        help="Treat indeterminate verdicts as failures (exit 1).",
    )
    _add_common_options(run_parser)

    extract_parser = subparsers.add_parser("extract", help="List snippets without running them.")
    _add_input_options(extract_parser)
    _add_common_options(extract_parser)

    doctor_parser = subparsers.add_parser("doctor", help="Show toolchain availability.")
    _add_common_options(doctor_parser)
    return parser


def _normalize_argv(argv: list[str]) -> list[str]:
    # `snippet-harness DOCS_DIR ...` is shorthand for `snippet-harness run DOCS_DIR ...`.
    if argv and argv[0] not in COMMANDS and not argv[0].startswith("-"):
        return ["run", *argv]
    return argv


def _parse_languages(raw: str | None, config: HarnessConfig) -> list[str] | None:
    if raw is None:
        return None
    languages: list[str] = []
    for item in raw.split(","):
        name = item.strip()
        if not name:
            continue
        resolved = resolve_language(name, config.toolchains)
        if resolved is None:
            raise ConfigurationError(f"Unknown language in allow-list: {name}")
        languages.append(resolved)
    return languages


def _load_config(args: argparse.Namespace) -> HarnessConfig:
    manager = ConfigManager(config_path=args.config)
    return manager.load_config()


def _extract(args: argparse.Namespace, config: HarnessConfig) -> ExtractionResult:
    extractor = SnippetExtractor(languages=config.languages, toolchains=config.toolchains)
    return extractor.extract(args.input)


def cmd_run(args: argparse.Namespace, console: Console) -> int:
    config = _load_config(args)
    languages = _parse_languages(args.languages, config)
    config = config.with_overrides(
        run_timeout_seconds=args.timeout,
        compile_timeout_seconds=args.compile_timeout,
        jobs=args.jobs,
        languages=languages,
    )

    extraction = _extract(args, config)
    batch = BatchRunner(config)

    previous_handler = None
    if threading.current_thread() is threading.main_thread():
        def _on_sigint(signum, frame):
            if batch.cancelled:
                raise KeyboardInterrupt
            batch.cancel()

        previous_handler = signal.signal(signal.SIGINT, _on_sigint)

    try:
        if args.format == "table" and extraction.snippets:
            with console.status(f"Running {len(extraction.snippets)} snippets..."):
                run_result = batch.run(extraction.snippets)
        else:
            run_result = batch.run(extraction.snippets)
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)

    report = BatchReport(input_path=str(args.input), extraction=extraction, run=run_result)
    if args.output is not None:
        report.write(args.output)
    if args.format == "json":
        print(report.to_json())
    else:
        report.render(console)
    return report.exit_code(strict=args.strict)


def cmd_extract(args: argparse.Namespace, console: Console) -> int:
    config = _load_config(args)
    languages = _parse_languages(args.languages, config)
    config = config.with_overrides(languages=languages)
    extraction = _extract(args, config)
    payload = extraction_to_dict(str(args.input), extraction)

    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    if args.format == "json":
        print(json.dumps(payload, indent=2))
        return EXIT_OK

    if extraction.snippets:
        console.print(build_extraction_table(extraction))
    else:
        console.print("[yellow]No snippets found[/yellow]")
    for block in extraction.skipped:
        console.print(
            f"[dim]skipped {escape(block.source_file)}:{block.position} "
            f"({block.reason.value}) {escape(block.detail)}[/dim]"
        )
    return EXIT_OK


def cmd_doctor(args: argparse.Namespace, console: Console) -> int:
    config = _load_config(args)
    health = detect_toolchain_health(config)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Language", style="cyan")
    table.add_column("Status")
    table.add_column("Detail", overflow="fold")
    for language, item in sorted(health.items()):
        status = "[green]ready[/green]" if item.available else "[yellow]missing[/yellow]"
        table.add_row(language, status, escape(item.detail))
    console.print(table)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    raw_args = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    args = parser.parse_args(_normalize_argv(raw_args))
    if args.command is None:
        parser.print_help()
        return EXIT_TOOLING_ERROR

    console = Console()
    setup_logging(verbose=args.verbose)

    handlers = {"run": cmd_run, "extract": cmd_extract, "doctor": cmd_doctor}
    try:
        return handlers[args.command](args, console)
    except SnippetHarnessError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        return EXIT_TOOLING_ERROR
    except KeyboardInterrupt:
        console.print("[red]Interrupted[/red]")
        return EXIT_TOOLING_ERROR
    except Exception as exc:
        logger.error(f"Unexpected failure: {exc}", exc_info=args.verbose)
        console.print(f"[red]Unexpected error:[/red] {escape(str(exc))}")
        return EXIT_TOOLING_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
