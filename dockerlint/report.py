"""Rendering of findings for people (text) and machines (JSON)."""

from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass, field

from . import __version__
from .messages import WHOLE_FILE, Category, Finding, Severity
from .parser import split_lines

CATEGORY_COLORS = {
    Category.DEPRECATION: "\033[91m",
    Category.POSSIBLE_BUG: "\033[93m",
    Category.CLARITY: "\033[96m",
    Category.OPTIMIZATION: "\033[96m",
    Category.STANDARD_COMPLIANCE: "\033[97m",
}

SEVERITY_COLORS = {
    Severity.ERROR: "\033[91m",
    Severity.WARNING: "\033[93m",
    Severity.INFO: "\033[96m",
}
RESET = "\033[0m"
DIM = "\033[2m"
MAGENTA = "\033[95m"
GREEN = "\033[92m"
INVERSE = "\033[7m"


def supports_color() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty() and os.environ.get("NO_COLOR") is None


@dataclass
class FileReport:
    filename: str
    content: str
    findings: list[Finding]
    ruleset: str = ""

    @property
    def lines(self) -> list[str]:
        return split_lines(self.content)

    @property
    def by_line(self) -> dict[int, list[Finding]]:
        """Findings grouped by line, whole-file findings first."""
        grouped: dict[int, list[Finding]] = {}
        for finding in sorted(self.findings, key=lambda f: f.line):
            grouped.setdefault(finding.line, []).append(finding)
        return grouped

    @property
    def unique_issues(self) -> int:
        return len({(f.line, f.rule) for f in self.findings})


@dataclass
class Report:
    files: list[FileReport] = field(default_factory=list)

    def add_file(self, filename: str, content: str, findings: list[Finding], ruleset: str = "") -> None:
        self.files.append(FileReport(filename, content, list(findings), ruleset))

    @property
    def total_issues(self) -> int:
        return sum(f.unique_issues for f in self.files)

    @property
    def error(self) -> bool:
        return any(finding.severity == Severity.ERROR for f in self.files for finding in f.findings)


def _paint(text: str, code: str, color: bool) -> str:
    return f"{code}{text}{RESET}" if color else text


def format_text(report: Report, color: bool | None = None) -> str:
    """Format a report as a per-line table of issues."""
    if color is None:
        color = supports_color()
    lines = []

    for file_report in report.files:
        lines.append("")
        lines.append(f"File:   {file_report.filename}")
        if file_report.ruleset:
            lines.append(f"Custom Ruleset:   {file_report.ruleset}")

        if not file_report.findings:
            lines.append(f"Issues: {_paint('None found', GREEN, color)} 👍")
            continue
        lines.append(f"Issues: {file_report.unique_issues}")

        source = file_report.lines
        number = 1
        for line, findings in file_report.by_line.items():
            if line != WHOLE_FILE:
                text = source[line - 1] if 0 < line <= len(source) else ""
                lines.append("")
                lines.append(f"Line {line}: {_paint(text, MAGENTA, color)}")
            lines.append(f"{'Issue':>5}  {'Rule':<36}  {'Severity':<8}  {'Category':<19}  Title")
            for finding in findings:
                category_code = CATEGORY_COLORS.get(finding.category, CATEGORY_COLORS[Category.CLARITY])
                severity = _paint(f"{finding.severity.value:<8}", INVERSE + SEVERITY_COLORS[finding.severity], color)
                category = _paint(f"{finding.category.value:<19}", INVERSE + category_code, color)
                lines.append(
                    f"{_paint(f'{number:>5}', category_code, color)}  {finding.rule:<36}  "
                    f"{severity}  {category}  {_paint(finding.title, category_code, color)}"
                )
                lines.append(f"{'':>5}  {_paint(finding.description, DIM, color)}")
                number += 1

    lines.append("")
    return "\n".join(lines)


def format_json(report: Report) -> str:
    """Format a report as JSON."""
    data = {
        "version": __version__,
        "files": [
            {
                "file": f.filename,
                "issues_count": f.unique_issues,
                "issues": [finding.to_dict() for finding in f.findings],
            }
            for f in report.files
        ],
        "totalIssues": report.total_issues,
    }
    return json.dumps(data, indent=2)
