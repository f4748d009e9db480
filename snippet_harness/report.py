"""
Batch report: JSON serialization and rich table rendering.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .batch import BatchRunResult
from .classification import Verdict, VerdictStatus
from .execution import Outcome
from .extraction import ExtractionResult

EXIT_OK = 0
EXIT_MISMATCH = 1
EXIT_TOOLING_ERROR = 2

_STATUS_STYLES = {
    VerdictStatus.MATCH: "green",
    VerdictStatus.MISMATCH: "bold red",
    VerdictStatus.INDETERMINATE: "yellow",
}


@dataclass(slots=True)
class BatchReport:
    """Everything a run produced: extraction stats, verdicts and toolchain gaps."""

    input_path: str
    extraction: ExtractionResult
    run: BatchRunResult = field(default_factory=BatchRunResult)
    generated_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds")
    )

    @property
    def verdicts(self) -> list[Verdict]:
        return self.run.verdicts

    @property
    def tooling_errors(self) -> list[Verdict]:
        """Verdicts whose snippet hit a harness failure rather than a toolchain outcome."""
        return [
            verdict
            for verdict in self.verdicts
            if verdict.result is not None and verdict.result.outcome is Outcome.TOOLING_ERROR
        ]

    def summary(self) -> dict[str, Any]:
        return {
            "files_scanned": self.extraction.files_scanned,
            "snippets": len(self.verdicts),
            "match": self.run.count(VerdictStatus.MATCH),
            "mismatch": self.run.count(VerdictStatus.MISMATCH),
            "indeterminate": self.run.count(VerdictStatus.INDETERMINATE),
            "tooling_errors": len(self.tooling_errors),
            "skipped": self.extraction.skipped_count,
            "skip_reasons": self.extraction.skip_reasons(),
            "filtered": self.extraction.filtered_count,
            "missing_toolchains": dict(self.run.missing_toolchains),
            "cancelled": self.run.cancelled,
            "duration_seconds": round(self.run.duration_seconds, 3),
        }

    def exit_code(self, strict: bool = False) -> int:
        """
        2 when any snippet hit a tooling error, 1 when any mismatched (or, strict,
        was indeterminate), otherwise 0.
        """
        if self.tooling_errors:
            return EXIT_TOOLING_ERROR
        if self.run.count(VerdictStatus.MISMATCH):
            return EXIT_MISMATCH
        if strict and self.run.count(VerdictStatus.INDETERMINATE):
            return EXIT_MISMATCH
        return EXIT_OK

    def to_dict(self) -> dict[str, Any]:
        return {
            "input": self.input_path,
            "generated_at": self.generated_at,
            "summary": self.summary(),
            "results": [verdict.to_dict() for verdict in self.verdicts],
            "skipped": [block.to_dict() for block in self.extraction.skipped],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def write(self, output_path: Path) -> None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.to_json() + "\n", encoding="utf-8")

    def render(self, console: Console) -> None:
        """Print the verdict table and summary."""
        if self.verdicts:
            console.print(build_verdict_table(self.verdicts))
        else:
            console.print("[yellow]No snippets to run[/yellow]")

        summary = self.summary()
        console.print()
        console.print(
            f"[bold]{summary['snippets']}[/bold] snippets from {summary['files_scanned']} files: "
            f"[green]{summary['match']} match[/green], "
            f"[red]{summary['mismatch']} mismatch[/red], "
            f"[yellow]{summary['indeterminate']} indeterminate[/yellow]"
        )
        if summary["skipped"]:
            reasons = ", ".join(
                f"{reason}={count}" for reason, count in sorted(summary["skip_reasons"].items())
            )
            console.print(f"Skipped blocks: {summary['skipped']} ({reasons})")
        if summary["filtered"]:
            console.print(f"Filtered by language: {summary['filtered']}")
        for language, executable in sorted(summary["missing_toolchains"].items()):
            console.print(f"[yellow]Missing toolchain[/yellow] {language}: {executable}")
        if summary["tooling_errors"]:
            console.print(f"[red]Tooling errors:[/red] {summary['tooling_errors']}")
        if summary["cancelled"]:
            console.print(
                "[yellow]Run was cancelled; unlaunched snippets are indeterminate[/yellow]"
            )


def build_verdict_table(verdicts: list[Verdict]) -> Table:
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Snippet", style="cyan", no_wrap=True)
    table.add_column("Lang")
    table.add_column("Label")
    table.add_column("Observed")
    table.add_column("Exit", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Verdict")
    table.add_column("Reason", overflow="fold")

    for verdict in verdicts:
        result = verdict.result
        label = verdict.snippet.label.value
        if verdict.snippet.expected_stage.value != "any":
            label = f"{label} ({verdict.snippet.expected_stage.value})"
        table.add_row(
            escape(verdict.snippet.snippet_id),
            verdict.snippet.language,
            label,
            result.outcome.value if result is not None else "-",
            "-" if result is None or result.exit_code is None else str(result.exit_code),
            "-" if result is None else f"{result.duration_seconds:.2f}s",
            f"[{_STATUS_STYLES[verdict.status]}]{verdict.status.value}[/]",
            escape(verdict.reason),
        )
    return table


def build_extraction_table(extraction: ExtractionResult) -> Table:
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Snippet", style="cyan", no_wrap=True)
    table.add_column("Lang")
    table.add_column("Label")
    table.add_column("Stage")
    table.add_column("File hint")
    for snippet in extraction.snippets:
        table.add_row(
            escape(snippet.snippet_id),
            snippet.language,
            snippet.label.value,
            snippet.expected_stage.value,
            escape(snippet.filename_hint or "-"),
        )
    return table


def extraction_to_dict(input_path: str, extraction: ExtractionResult) -> dict[str, Any]:
    return {
        "input": input_path,
        "summary": {
            "files_scanned": extraction.files_scanned,
            "snippets": len(extraction.snippets),
            "skipped": extraction.skipped_count,
            "skip_reasons": extraction.skip_reasons(),
            "filtered": extraction.filtered_count,
        },
        "snippets": [snippet.to_dict() for snippet in extraction.snippets],
        "skipped": [block.to_dict() for block in extraction.skipped],
    }
