"""Per-instruction checks.

Each check takes the lower-cased argument string of one instruction plus a
`CheckContext` and returns the rule ids it raises. Checks are registered by
keyword with the `@check` decorator; keywords registered without a function
are valid instructions that carry no checks.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import DirectiveSyntaxError
from .parser import parse_name_values, parse_words
from .shell import check_run


@dataclass(frozen=True)
class CheckContext:
    """Lint state a check may need beyond its own arguments."""
    stage_names: tuple[str, ...] = ()


CheckFn = Callable[[str, CheckContext], list]

# ---------------------------------------------------------------------------
# Check registry
# ---------------------------------------------------------------------------

CHECKS: dict[str, Optional[CheckFn]] = {
    keyword: None
    for keyword in ("cmd", "copy", "entrypoint", "volume", "arg", "onbuild", "stopsignal")
}


def check(keyword: str):
    """Decorator to register the check for an instruction keyword."""
    def decorator(fn):
        CHECKS[keyword] = fn
        return fn
    return decorator


def run_check(keyword: str, args: str, context: CheckContext) -> list[str]:
    """Dispatch to the registered check; unknown keywords raise invalid_command."""
    if keyword not in CHECKS:
        return ["invalid_command"]
    fn = CHECKS[keyword]
    return list(fn(args, context)) if fn else []


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

PORT_RE = re.compile(
    r"^([0-9]{1,4}|[1-5][0-9]{4}|6[0-4][0-9]{3}|65[0-4][0-9]{2}|655[0-2][0-9]|6553[0-5])"
    r"(/tcp|/udp)?$"
)
HEALTHCHECK_OPTIONS = {"--interval", "--timeout", "--start-period", "--retries"}
HEALTHCHECK_OPTION_NAME_RE = re.compile(r"--[\w-]+")
HEALTHCHECK_OPTION_ARG_RE = re.compile(r"^--[\w-]+=\d+\w*$")


def expose_port_valid(port: str) -> bool:
    return bool(PORT_RE.match(port))


def is_dir_in_context(path: str) -> bool:
    return not path.startswith("..") and not path.startswith("/")


def is_wrapped_in_quotes(args: str) -> bool:
    if len(args) < 2:
        return False
    return (args.startswith("'") and args.endswith("'")) or (args.startswith('"') and args.endswith('"'))


def split_image(reference: str) -> list[str]:
    """Split an image reference on its tag separator.

    Only a colon in the last path component separates the tag, so a
    registry port (`localhost:5000/app`) is not mistaken for one.
    """
    head, slash, last = reference.rpartition("/")
    parts = last.split(":")
    parts[0] = head + slash + parts[0]
    return parts


# ---------------------------------------------------------------------------
# Instruction checks
# ---------------------------------------------------------------------------

@check("from")
def check_from(args: str, context: CheckContext) -> list[str]:
    """Base images need an explicit, non-latest tag unless they are a prior stage."""
    if "@" in args:
        image = args.split("@")
    else:
        words = args.split()
        if words and words[0].startswith("--platform"):
            words = words[1:]
        if not words:
            return ["missing_args"]
        image = split_image(words[0])

    if len(image) == 1:
        # scratch does not need (or support) a tag
        if image[0] == "scratch":
            return []
        if image[0] not in context.stage_names:
            return ["missing_tag"]
    elif image[-1] == "latest":
        return ["latest_tag"]
    return []


@check("run")
def check_run_instruction(args: str, context: CheckContext) -> list[str]:
    return check_run(args)


@check("label")
def check_label(args: str, context: CheckContext) -> list[str]:
    # only LABEL key=value ...; the legacy `LABEL key value` form is rejected
    try:
        parse_name_values(args)
    except DirectiveSyntaxError:
        return ["label_invalid"]
    return []


@check("maintainer")
def check_maintainer(args: str, context: CheckContext) -> list[str]:
    result = []
    emails = args.count("@")
    if emails == 0:
        result.append("missing_args")
    elif emails > 1:
        result.append("extra_args")
    result.append("deprecated_in_1.13")
    return result


@check("expose")
def check_expose(args: str, context: CheckContext) -> list[str]:
    ports = args.split()
    result = ["expose_host_port" for port in ports if ":" in port]
    for port in ports:
        if not expose_port_valid(port) and ":" not in port:
            result.append("invalid_port")
    return result


@check("env")
def check_env(args: str, context: CheckContext) -> list[str]:
    words = parse_words(args)
    if not words or "=" not in words[0]:
        # empty, or the legacy `ENV key value` form
        return []
    try:
        parse_name_values(args)
    except DirectiveSyntaxError:
        return ["invalid_format"]
    return []


@check("add")
def check_add(args: str, context: CheckContext) -> list[str]:
    words = args.split()
    while words and words[0].startswith("--"):
        words = words[1:]

    result = []
    if len(words) < 2:
        result.append("missing_args")

    sources = words[:-1]
    has_wildcard = False
    for source in sources:
        if "*" in source or "?" in source:
            has_wildcard = True
        if not is_dir_in_context(source):
            result.append("add_src_invalid")

    if (len(sources) > 1 or has_wildcard) and not args.endswith("/"):
        result.append("add_dest_invalid")
    return result


@check("user")
def check_user(args: str, context: CheckContext) -> list[str]:
    if len(args.split()) != 1:
        return ["extra_args"]
    return []


@check("workdir")
def check_workdir(args: str, context: CheckContext) -> list[str]:
    if is_wrapped_in_quotes(args):
        return []
    if len(args.split()) > 1:
        return ["invalid_workdir"]
    return []


@check("shell")
def check_shell(args: str, context: CheckContext) -> list[str]:
    """SHELL only accepts the JSON array form."""
    try:
        parsed = json.loads(args)
    except ValueError:
        return ["invalid_format"]
    if not isinstance(parsed, list):
        return ["invalid_format"]
    return []


@check("healthcheck")
def check_healthcheck(args: str, context: CheckContext) -> list[str]:
    words = parse_words(args)
    if words and words[0] == "none":
        return [] if len(words) == 1 else ["invalid_format"]

    tokens = args.split()
    command_at = next((i for i, token in enumerate(tokens) if not token.startswith("-")), None)
    if command_at is None:
        return []

    # options before CMD only; the command itself may take its own flags
    options = tokens[:command_at]
    names = []
    for token in options:
        match = HEALTHCHECK_OPTION_NAME_RE.match(token)
        if match:
            names.append(match.group(0))
    if not names:
        return []
    if any(name not in HEALTHCHECK_OPTIONS for name in names):
        return ["invalid_format"]
    if not all(HEALTHCHECK_OPTION_ARG_RE.match(token) for token in options):
        return ["healthcheck_options_missing_args"]
    return []
