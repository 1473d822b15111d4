"""dockerlint - Dockerfile linter.

Reports style, correctness and best-practice problems in Dockerfiles as
findings keyed by source line. Rules can be switched off individually and
extended with custom Python rules.
"""

from __future__ import annotations

__version__ = "1.0.0"

from .custom import CustomRule, RuleContext, load_ruleset
from .errors import ConfigError, CustomRuleError, DockerlintError, RulesetError
from .linter import lint
from .messages import MESSAGES, Category, Finding, MessageTemplate, Severity

__all__ = [
    "__version__",
    "lint",
    "load_ruleset",
    "CustomRule",
    "RuleContext",
    "Finding",
    "MessageTemplate",
    "Severity",
    "Category",
    "MESSAGES",
    "DockerlintError",
    "ConfigError",
    "RulesetError",
    "CustomRuleError",
]
