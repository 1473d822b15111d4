"""Command line interface.

Usage:
    dockerlint [OPTIONS] [FILE|CONTENT ...]

Examples:
    dockerlint Dockerfile
    dockerlint --json Dockerfile other/Dockerfile
    dockerlint 'FROM ubuntu:latest'
    dockerlint < Dockerfile
    dockerlint -r my_rules.py Dockerfile
    dockerlint --list-rules
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from . import __version__
from .config import load_config
from .custom import load_ruleset
from .errors import DockerlintError
from .linter import lint
from .messages import MESSAGES
from .report import Report, format_json, format_text

USAGE = "dockerlint [files | content..] [options]"


def list_rules() -> str:
    """List the built-in rules."""
    lines = ["dockerlint rules:", ""]
    for rule_id in sorted(MESSAGES):
        template = MESSAGES[rule_id]
        lines.append(f"  {rule_id:<36} [{template.severity.value:<7}] {template.title}")
    lines.append(f"\nTotal: {len(MESSAGES)} rules")
    return "\n".join(lines)


def read_inputs(sources: list[str]) -> list[tuple[str, str, str]]:
    """Resolve CLI arguments into (name, content, config directory) triples."""
    if not sources or sources == ["-"]:
        content = sys.stdin.read()
        if not content:
            raise DockerlintError(f"usage: {USAGE}")
        return [("<stdin>", content, ".")]

    inputs = []
    for source in sources:
        if os.path.isfile(source):
            with open(source, "r", encoding="utf-8", errors="replace") as f:
                inputs.append((source, f.read(), os.path.dirname(os.path.abspath(source))))
        elif source.strip():
            # not a file: lint the argument itself
            inputs.append(("<contents>", source, "."))
        else:
            raise DockerlintError(f"invalid input: {source!r}")
    return inputs


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="dockerlint",
        usage=USAGE,
        description="Lint Dockerfiles for style, correctness and best-practice issues.",
    )
    parser.add_argument(
        "files", nargs="*", default=[],
        help="Dockerfile(s) to lint, literal Dockerfile content, or - for stdin",
    )
    parser.add_argument(
        "-o", "--output", choices=["cli", "json"], default=None,
        help="Output format (default: cli)",
    )
    parser.add_argument(
        "-j", "--json", action="store_true",
        help="Output results as JSON, same as -o json",
    )
    parser.add_argument(
        "-c", "--config", default=None, metavar="DIR",
        help="Directory holding the .dockerfilelintrc file (default: the Dockerfile's directory)",
    )
    parser.add_argument(
        "-r", "--ruleset", default=None, metavar="FILE",
        help="Python file defining a RULES mapping of custom rules",
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Log debug information to stderr",
    )
    parser.add_argument(
        "--list-rules", action="store_true",
        help="List all built-in rules and exit",
    )
    parser.add_argument(
        "-v", "--version", action="version", version=f"dockerlint {__version__}",
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s: %(message)s")

    if args.list_rules:
        print(list_rules())
        return 0

    output = args.output or ("json" if args.json else "cli")
    report = Report()

    try:
        custom_rules = load_ruleset(args.ruleset) if args.ruleset else {}
        for name, content, config_dir in read_inputs(args.files):
            config = load_config(args.config or config_dir)
            findings = lint(content, config, custom_rules)
            report.add_file(name, content, findings, args.ruleset or "")
    except DockerlintError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if output == "json":
        print(format_json(report))
    else:
        print(format_text(report))

    return 1 if report.error else 0


if __name__ == "__main__":
    sys.exit(main())
