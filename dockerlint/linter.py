"""The lint pass: one walk over the instructions of a Dockerfile.

`lint` is a pure function of (content, rule config, custom rules). All state
lives in a `LintRun` created per call, so independent files can be linted
in parallel threads.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Mapping, Optional

from .checks import CheckContext, run_check
from .custom import RuleContext, custom_templates, normalize_rules, run_custom_rules
from .messages import WHOLE_FILE, Finding, build_message, merge_catalog
from .parser import Instruction, Stage, parse_dockerfile, split_lines, stage_name

logger = logging.getLogger(__name__)


class LintRun:
    """Mutable state of a single lint pass."""

    def __init__(self, content: str, config: Optional[Mapping[str, Any]] = None,
                 custom_rules: Optional[Mapping[str, Any]] = None):
        self.lines = tuple(split_lines(content))
        self.instructions = parse_dockerfile(content)
        self.config = dict(config or {})
        self.custom_rules = normalize_rules(custom_rules)
        self.catalog = merge_catalog(custom_templates(self.custom_rules))
        self.stages: list[Stage] = [Stage()]
        self.findings: list[Finding] = []

    @property
    def stage(self) -> Stage:
        return self.stages[-1]

    def report(self, rule_id: str, line: int, data: Optional[Mapping[str, Any]] = None) -> None:
        finding = build_message(rule_id, line, data, self.config, self.catalog)
        if finding is not None:
            self.findings.append(finding)

    def run(self) -> list[Finding]:
        last = len(self.instructions) - 1
        for index, instruction in enumerate(self.instructions):
            self.process(instruction, finalize=index == last)

        if not self.instructions and self.custom_rules:
            self.run_custom(RuleContext(keyword="", args="", line=WHOLE_FILE, instruction=""),
                            finalize=True, checks=False)

        logger.debug("%d finding(s) for %d instruction(s)", len(self.findings), len(self.instructions))
        return list(self.findings)

    def process(self, instruction: Instruction, finalize: bool = False) -> None:
        line = instruction.line
        tokens = instruction.text.split()

        # every instruction takes at least one argument
        if len(tokens) == 1:
            self.report("required_params", line)

        keyword = instruction.keyword
        if instruction.command != instruction.command.upper():
            self.report("uppercase_commands", line)

        if self.stage.instructions_processed == 0 and keyword not in ("arg", "from"):
            self.report("from_first", line)

        args = instruction.arguments.lower()
        if not args:
            self.report("invalid_line", line)
        else:
            for token in args.split():
                if token == "sudo":
                    self.report("sudo_usage", line)

            context = CheckContext(stage_names=tuple(stage.name for stage in self.stages))
            for rule_id in run_check(keyword, args, context):
                self.report(rule_id, line)

        if keyword == "cmd":
            self.stages[-1] = replace(self.stage, cmd_found=True)
        elif keyword == "from":
            self.stages.append(Stage(name=stage_name(instruction.text)))

        self.stages[-1] = replace(self.stage, instructions_processed=self.stage.instructions_processed + 1)

        if self.custom_rules:
            self.run_custom(
                RuleContext(keyword=keyword, args=args, line=line, instruction=instruction.text),
                finalize=finalize,
            )

    def run_custom(self, context: RuleContext, finalize: bool = False, checks: bool = True) -> None:
        context = replace(
            context,
            stages=tuple(self.stages),
            lines=self.lines,
            findings=tuple(self.findings),
        )
        for hit in run_custom_rules(self.custom_rules, context, finalize=finalize, checks=checks):
            self.report(hit.rule_id, hit.line, hit.data)


def lint(content: str, config: Optional[Mapping[str, Any]] = None,
         custom_rules: Optional[Mapping[str, Any]] = None) -> list[Finding]:
    """Lint Dockerfile content and return its findings in line order.

    `config` maps rule ids to an on/off flag (booleans or off/false/0/n).
    `custom_rules` maps rule ids to `CustomRule` objects or loader-style
    dicts, see `dockerlint.custom.normalize_rules`.
    """
    return LintRun(content, config, custom_rules).run()
