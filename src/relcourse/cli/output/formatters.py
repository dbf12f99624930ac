"""Output formatting utilities for CLI."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import click
import yaml

from relcourse.core.lint.findings import LintReport, Severity

SEVERITY_ICONS = {
    Severity.ERROR: "❌",
    Severity.WARNING: "⚠️ ",
    Severity.INFO: "ℹ️ ",
}


class OutputFormatter:
    """Format output for CLI display.

    Example:
        >>> out = OutputFormatter()
        >>> out.success("Schema is valid")
        >>> out.stats({"entities": 6, "foreign keys": 6})
    """

    @staticmethod
    def success(message: str) -> None:
        click.echo(f"✓ {message}")

    @staticmethod
    def error(message: str, abort: bool = False) -> None:
        """Display error message.

        Args:
            message: Error message to display
            abort: Whether to abort command execution after displaying error
        """
        click.echo(f"❌ {message}", err=True)
        if abort:
            raise click.Abort()

    @staticmethod
    def warning(message: str) -> None:
        click.echo(f"⚠️  {message}")

    @staticmethod
    def info(message: str) -> None:
        click.echo(f"ℹ️  {message}")

    @staticmethod
    def section(title: str) -> None:
        click.echo(f"\n{title}")

    @staticmethod
    def stats(stats_dict: Dict[str, Any], indent: str = "   ") -> None:
        """Display statistics dictionary in key: value format.

        Args:
            stats_dict: Dictionary of statistics to display
            indent: Indentation string for each line
        """
        for key, value in stats_dict.items():
            click.echo(f"{indent}{key}: {value}")

    @staticmethod
    def list_items(items: List[str], indent: str = "   ", bullet: str = "-") -> None:
        for item in items:
            click.echo(f"{indent}{bullet} {item}")

    @staticmethod
    def json(data: Any) -> None:
        click.echo(json.dumps(data, indent=2, default=str))

    @staticmethod
    def write(data: Dict[str, Any], path: str | Path) -> Path:
        """Write a dict as JSON or YAML depending on the file suffix.

        Args:
            data: Data to write
            path: Output path

        Returns:
            The output path
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            if path.suffix.lower() in (".yml", ".yaml"):
                yaml.safe_dump(data, f, sort_keys=False)
            else:
                json.dump(data, f, indent=2, default=str)
        return path

    @staticmethod
    def lint_report(report: LintReport, output_format: str = "text") -> str:
        """Render a lint report.

        Args:
            report: Lint report
            output_format: "text" or "json"

        Returns:
            Rendered report
        """
        if output_format == "json":
            return json.dumps(report.to_dict(), indent=2)

        lines = []
        for finding in report.sorted_findings():
            lines.append(f"{SEVERITY_ICONS[finding.severity]} {finding}")
        summary = ", ".join(
            f"{report.count(s)} {s.value}(s)" for s in Severity if report.count(s)
        )
        lines.append(
            f"\nChecked {report.files_checked} file(s), {report.blocks_checked} SQL block(s): "
            f"{summary or 'no findings'}"
        )
        return "\n".join(lines)
