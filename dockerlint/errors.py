"""Exception hierarchy for dockerlint.

Problems found *in* a Dockerfile never raise: they are reported as findings.
These exceptions cover everything around the lint pass itself.
"""

from __future__ import annotations


class DockerlintError(Exception):
    """Base class for all dockerlint errors."""


class DirectiveSyntaxError(DockerlintError, ValueError):
    """An instruction body could not be tokenized (e.g. bad key=value pair)."""


class ConfigError(DockerlintError):
    """The .dockerfilelintrc file could not be read or has the wrong shape."""


class RulesetError(DockerlintError):
    """A custom ruleset file could not be imported."""


class CustomRuleError(DockerlintError):
    """A custom rule callback raised while linting."""

    def __init__(self, rule_id: str, line: int, phase: str = "check"):
        self.rule_id = rule_id
        self.line = line
        self.phase = phase
        super().__init__(f"custom rule '{rule_id}' {phase} failed on line {line}")
