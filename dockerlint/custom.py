"""User-supplied rules.

A ruleset maps rule ids to a per-instruction `check` and/or an end-of-file
`finalizer`. Both receive a read-only `RuleContext` and return either a
truthy value or a mapping `{"result": bool, "data": {...}}`; the data feeds
the rule's message template.
"""

from __future__ import annotations

import importlib.util
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from .errors import CustomRuleError, RulesetError
from .messages import WHOLE_FILE, Category, MessageTemplate, NO_DESCRIPTION, Severity
from .parser import Stage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleContext:
    """Snapshot of the lint pass handed to custom rule callbacks."""
    keyword: str
    args: str
    line: int
    instruction: str
    stages: tuple[Stage, ...] = ()
    lines: tuple[str, ...] = ()
    findings: tuple = ()


RuleFn = Callable[[RuleContext], Any]


@dataclass(frozen=True)
class CustomRule:
    rule_id: str
    check: Optional[RuleFn] = None
    finalizer: Optional[RuleFn] = None
    template: Optional[MessageTemplate] = None


@dataclass(frozen=True)
class RuleHit:
    rule_id: str
    line: int
    data: Mapping[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Ruleset normalisation and loading
# ---------------------------------------------------------------------------

def _template_from(spec: Mapping[str, Any], rule_id: str) -> Optional[MessageTemplate]:
    if not any(key in spec for key in ("title", "description", "severity", "category")):
        return None
    severity = spec.get("severity", Severity.WARNING)
    category = spec.get("category", Category.CLARITY)
    return MessageTemplate(
        title=spec.get("title") or rule_id,
        description=spec.get("description") or NO_DESCRIPTION,
        severity=severity if isinstance(severity, Severity) else Severity(severity),
        category=category if isinstance(category, Category) else Category(category),
    )


def normalize_rules(rules: Optional[Mapping[str, Any]]) -> dict[str, CustomRule]:
    """Accept CustomRule objects or loader-style dicts keyed by rule id.

    Dict entries use `function` (or `check`) and `finalizer` for callbacks
    and may carry `title`, `description`, `severity` and `category`.
    """
    normalized: dict[str, CustomRule] = {}
    for rule_id, spec in (rules or {}).items():
        if isinstance(spec, CustomRule):
            normalized[rule_id] = spec
            continue
        if not isinstance(spec, Mapping):
            raise RulesetError(f"custom rule '{rule_id}' must be a mapping or CustomRule")
        try:
            template = _template_from(spec, rule_id)
        except ValueError as exc:
            raise RulesetError(f"custom rule '{rule_id}': {exc}") from exc
        normalized[rule_id] = CustomRule(
            rule_id=rule_id,
            check=spec.get("function") or spec.get("check"),
            finalizer=spec.get("finalizer"),
            template=template,
        )
    return normalized


def custom_templates(rules: Mapping[str, CustomRule]) -> dict[str, MessageTemplate]:
    return {rule_id: rule.template for rule_id, rule in rules.items() if rule.template is not None}


def load_ruleset(path: str) -> dict[str, CustomRule]:
    """Import a Python ruleset file and return its normalised RULES mapping."""
    if not os.path.isfile(path):
        raise RulesetError(f"ruleset {path} not found")

    module_name = "dockerlint_ruleset_" + os.path.splitext(os.path.basename(path))[0]
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise RulesetError(f"cannot import ruleset {path}")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise RulesetError(f"failed to import ruleset {path}: {exc}") from exc

    rules = getattr(module, "RULES", None)
    if not isinstance(rules, Mapping):
        raise RulesetError(f"ruleset {path} does not define a RULES mapping")

    logger.debug("Loaded %d custom rule(s) from %s", len(rules), path)
    return normalize_rules(rules)


# ---------------------------------------------------------------------------
# Running
# ---------------------------------------------------------------------------

def _outcome(result: Any) -> tuple[bool, Mapping[str, Any]]:
    if isinstance(result, Mapping):
        return bool(result.get("result")), result.get("data") or {}
    return bool(result), {}


def _call(rule: CustomRule, fn: RuleFn, context: RuleContext, phase: str):
    try:
        return fn(context)
    except Exception as exc:
        raise CustomRuleError(rule.rule_id, context.line, phase) from exc


def run_custom_rules(rules: Mapping[str, CustomRule], context: RuleContext,
                     finalize: bool = False, checks: bool = True) -> list[RuleHit]:
    """Run every rule's check (and finalizer when `finalize`) for one instruction.

    `checks=False` runs finalizers only, for input without instructions.
    """
    hits: list[RuleHit] = []
    for rule_id, rule in rules.items():
        if checks and rule.check is not None:
            matched, data = _outcome(_call(rule, rule.check, context, "check"))
            if matched:
                hits.append(RuleHit(rule_id, context.line, data))
        if finalize and rule.finalizer is not None:
            matched, data = _outcome(_call(rule, rule.finalizer, context, "finalizer"))
            if matched:
                hits.append(RuleHit(rule_id, WHOLE_FILE, data))
    return hits
