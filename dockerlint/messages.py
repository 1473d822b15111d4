"""Rule catalog and message building.

Every check reports a rule id; `build_message` turns that id into a
`Finding`, honouring the per-rule on/off configuration and rendering the
catalog's title and description as Jinja2 templates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from jinja2 import Environment, TemplateSyntaxError

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "No description for message"
WHOLE_FILE = -1

FALSE_VALUES = {"off", "false", "0", "n"}


class Severity(Enum):
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"


class Category(Enum):
    DEPRECATION = "Deprecation"
    POSSIBLE_BUG = "Possible Bug"
    CLARITY = "Clarity"
    OPTIMIZATION = "Optimization"
    STANDARD_COMPLIANCE = "Standard Compliance"


@dataclass(frozen=True)
class MessageTemplate:
    title: str
    description: str
    severity: Severity = Severity.WARNING
    category: Category = Category.CLARITY


@dataclass(frozen=True)
class Finding:
    rule: str
    line: int
    title: str
    description: str
    severity: Severity
    category: Category

    @property
    def whole_file(self) -> bool:
        return self.line == WHOLE_FILE

    def to_dict(self) -> dict:
        return {
            "rule": self.rule,
            "line": self.line,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "category": self.category.value,
        }


def _msg(title: str, description: str, severity: Severity, category: Category) -> MessageTemplate:
    return MessageTemplate(title=title, description=description, severity=severity, category=category)


# ---------------------------------------------------------------------------
# Built-in catalog
# ---------------------------------------------------------------------------

MESSAGES: dict[str, MessageTemplate] = {
    "required_params": _msg(
        "Required Parameters Missing",
        "All commands in a Dockerfile require at least 1 argument.",
        Severity.ERROR, Category.POSSIBLE_BUG,
    ),
    "uppercase_commands": _msg(
        "Capitalize Dockerfile Instructions",
        "For clarity and readability, all instructions in a Dockerfile should be uppercase.",
        Severity.INFO, Category.CLARITY,
    ),
    "from_first": _msg(
        "First Command Must Be FROM or ARG",
        "The first instruction in a Dockerfile (and in each build stage) must be "
        "`FROM`, optionally preceded by `ARG`.",
        Severity.ERROR, Category.POSSIBLE_BUG,
    ),
    "invalid_line": _msg(
        "Invalid Line",
        "This line is not a valid Dockerfile line.",
        Severity.ERROR, Category.POSSIBLE_BUG,
    ),
    "sudo_usage": _msg(
        "`sudo` Usage",
        "Avoid installing or using `sudo` since it has unpredictable TTY and "
        "signal-forwarding behavior. Use `USER` to switch users, or `gosu` when a "
        "process must start as root and drop privileges.",
        Severity.WARNING, Category.POSSIBLE_BUG,
    ),
    "invalid_command": _msg(
        "Invalid Command",
        "This command is not a valid Dockerfile instruction.",
        Severity.ERROR, Category.POSSIBLE_BUG,
    ),
    "missing_tag": _msg(
        "Base Image Missing Tag",
        "Base images should specify a tag to use.",
        Severity.WARNING, Category.CLARITY,
    ),
    "latest_tag": _msg(
        "Base Image Latest Tag",
        "Base images should not use the latest tag.",
        Severity.WARNING, Category.CLARITY,
    ),
    "label_invalid": _msg(
        "Label Is Invalid",
        "`LABEL` must be a list of `key=value` pairs.",
        Severity.ERROR, Category.POSSIBLE_BUG,
    ),
    "missing_args": _msg(
        "Missing Arguments",
        "This command has an invalid number of arguments.",
        Severity.ERROR, Category.POSSIBLE_BUG,
    ),
    "extra_args": _msg(
        "Extra Arguments",
        "This command has extra arguments and they will be ignored.",
        Severity.WARNING, Category.POSSIBLE_BUG,
    ),
    "deprecated_in_1.13": _msg(
        "Deprecated as of Docker 1.13",
        "`MAINTAINER` is deprecated. Use `LABEL maintainer=\"...\"` instead.",
        Severity.INFO, Category.DEPRECATION,
    ),
    "expose_host_port": _msg(
        "Expose Only Container Port",
        "Using `EXPOSE` to specify a host port is not allowed.",
        Severity.WARNING, Category.DEPRECATION,
    ),
    "invalid_port": _msg(
        "Invalid Port",
        "Ports must be a number between 0 and 65535, optionally followed by `/tcp` or `/udp`.",
        Severity.ERROR, Category.POSSIBLE_BUG,
    ),
    "invalid_format": _msg(
        "Invalid Argument Format",
        "The arguments to this command are in an invalid format.",
        Severity.ERROR, Category.POSSIBLE_BUG,
    ),
    "add_src_invalid": _msg(
        "Invalid Source Directory",
        "`ADD` sources must be inside the build context.",
        Severity.ERROR, Category.POSSIBLE_BUG,
    ),
    "add_dest_invalid": _msg(
        "Invalid `ADD` Destination",
        "When `ADD` has more than one source, or a wildcard source, the destination "
        "must be a directory ending in `/`.",
        Severity.ERROR, Category.POSSIBLE_BUG,
    ),
    "invalid_workdir": _msg(
        "Invalid WORKDIR",
        "`WORKDIR` paths containing spaces must be quoted.",
        Severity.ERROR, Category.POSSIBLE_BUG,
    ),
    "healthcheck_options_missing_args": _msg(
        "`HEALTHCHECK` Options Missing Arguments",
        "`HEALTHCHECK` options must be given a value, e.g. `--interval=30s`.",
        Severity.WARNING, Category.POSSIBLE_BUG,
    ),
    "apt-get_missing_param": _msg(
        "Missing parameter for `apt-get`",
        "`apt-get install`, `remove` and `upgrade` need `-y` so the build does not "
        "stop for confirmation.",
        Severity.ERROR, Category.POSSIBLE_BUG,
    ),
    "apt-get_recommends": _msg(
        "Consider `--no-install-recommends`",
        "Use `--no-install-recommends` with `apt-get install` to avoid pulling in "
        "packages that are not needed.",
        Severity.INFO, Category.OPTIMIZATION,
    ),
    "apt-get_missing_rm": _msg(
        "`apt-get update` Without Cleanup",
        "Remove the package lists with `rm -rf /var/lib/apt/lists/*` in the same "
        "`RUN` as `apt-get update` to keep them out of the layer.",
        Severity.INFO, Category.OPTIMIZATION,
    ),
    "apt-get-upgrade": _msg(
        "`apt-get upgrade` Is Not Allowed",
        "Many essential packages from the parent image cannot be upgraded inside an "
        "unprivileged container. Ask the base image maintainer to update instead.",
        Severity.WARNING, Category.POSSIBLE_BUG,
    ),
    "apt-get-dist-upgrade": _msg(
        "`apt-get dist-upgrade` Is Not Allowed",
        "Many essential packages from the parent image cannot be upgraded inside an "
        "unprivileged container. Ask the base image maintainer to update instead.",
        Severity.WARNING, Category.POSSIBLE_BUG,
    ),
    "apt-get-update_require_install": _msg(
        "`apt-get update` Without `apt-get install`",
        "Running `apt-get update` alone in a `RUN` caches a stale package index in "
        "its own layer. Always combine it with `apt-get install` in the same `RUN`.",
        Severity.WARNING, Category.POSSIBLE_BUG,
    ),
    "apkadd-missing_nocache_or_updaterm": _msg(
        "Consider `--no-cache` or `--update` With `rm -rf /var/cache/apk/*`",
        "`apk add` leaves its package cache in the layer unless `--no-cache` is used, "
        "or `--update` is followed by removing `/var/cache/apk/*`.",
        Severity.INFO, Category.OPTIMIZATION,
    ),
    "apkadd-missing-virtual": _msg(
        "Consider `--virtual` With `apk add` and `apk del`",
        "Group build-only packages with `apk add --virtual <name>` so a single "
        "`apk del <name>` removes them all.",
        Severity.INFO, Category.OPTIMIZATION,
    ),
}


# ---------------------------------------------------------------------------
# Message building
# ---------------------------------------------------------------------------

_env = Environment(autoescape=False, keep_trailing_newline=True)


def parse_bool(value: Any) -> bool:
    """Interpret a rule on/off setting; only off/false/0/n (any case) disable."""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in FALSE_VALUES


def rule_enabled(config: Optional[Mapping[str, Any]], rule_id: str) -> bool:
    if config and rule_id in config:
        return parse_bool(config[rule_id])
    return True


def merge_catalog(custom: Optional[Mapping[str, MessageTemplate]] = None) -> dict[str, MessageTemplate]:
    """Layer custom templates over the built-in catalog without touching it."""
    catalog = dict(MESSAGES)
    if custom:
        catalog.update(custom)
    return catalog


def render(template: str, data: Optional[Mapping[str, Any]] = None) -> str:
    """Fill `{{ name }}` placeholders; text that is not a valid template is kept verbatim."""
    try:
        compiled = _env.from_string(template)
    except TemplateSyntaxError as exc:
        logger.warning("Message %r is not a valid template (%s), using it as-is", template, exc)
        return template
    return compiled.render(dict(data or {}))


def build_message(rule_id: str, line: int,
                  data: Optional[Mapping[str, Any]] = None,
                  config: Optional[Mapping[str, Any]] = None,
                  catalog: Optional[Mapping[str, MessageTemplate]] = None) -> Optional[Finding]:
    """Resolve a rule id into a Finding, or None when the rule is switched off."""
    if not rule_enabled(config, rule_id):
        return None

    template = (catalog if catalog is not None else MESSAGES).get(rule_id)
    if template is None:
        return Finding(
            rule=rule_id,
            line=line,
            title=rule_id,
            description=NO_DESCRIPTION,
            severity=Severity.WARNING,
            category=Category.CLARITY,
        )

    return Finding(
        rule=rule_id,
        line=line,
        title=render(template.title, data),
        description=render(template.description, data),
        severity=template.severity,
        category=template.category,
    )
