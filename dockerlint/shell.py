"""Shell command splitting and package-manager heuristics for RUN.

A RUN body is cut into sub-commands on shell control operators. Sub-commands
running `apt-get`/`apt` or `apk` are then inspected for the usual layer
hygiene mistakes (missing -y, recommended packages, leftover caches, ...).
"""

from __future__ import annotations

import logging
import re
import shlex
from dataclasses import dataclass

logger = logging.getLogger(__name__)

CONTROL_OPERATORS = {"&&", "||", ";", "|", "&", "|&", ";;", "(", ")"}
REDIRECTIONS = {">", ">>", "<", "<<", "<<<", ">&", "<&", "&>", "&>>", ">|", "<>"}
OPERATOR_SPLIT_RE = re.compile(r"&&|\|\||;|\|")
ASSIGNMENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")

APT_PROGRAMS = {"apt-get", "apt"}
APT_VALUE_OPTIONS = {"-o", "--option", "-c", "--config-file", "-t", "--target-release", "--default-release"}
APT_YES_FLAGS = {"-y", "--yes", "--assume-yes", "-qq", "-q=2", "--quiet=2"}
APT_SHORT_YES_RE = re.compile(r"^-[a-z]*y[a-z]*$")
APT_ASSUME_YES_OPTIONS = {"apt::get::assume-yes=true", "apt::get::assume-yes=1"}
APT_NO_RECOMMENDS_OPTIONS = {"apt::install-recommends=false", "apt::install-recommends=0"}
APT_YES_SUBCOMMANDS = {"install", "remove", "upgrade"}
APT_LISTS_DIR = "/var/lib/apt/lists"

APK_VALUE_OPTIONS = {
    "-t", "--virtual", "-x", "--repository", "-p", "--root", "--repositories-file",
    "--arch", "--cache-dir", "--keys-dir",
}
APK_NO_CACHE_FLAGS = {"--no-cache"}
APK_UPDATE_FLAGS = {"--update", "--update-cache", "-u"}
APK_VIRTUAL_FLAGS = {"--virtual", "-t"}
APK_CACHE_DIR = "/var/cache/apk"


@dataclass(frozen=True)
class ShellCommand:
    """One simple command from a RUN body, e.g. `apt-get install -y curl`."""
    words: tuple[str, ...]

    @property
    def program_index(self) -> int:
        """Index of the program word, past `NAME=value` assignments and sudo."""
        for i, word in enumerate(self.words):
            if ASSIGNMENT_RE.match(word) or word == "sudo":
                continue
            return i
        return len(self.words)

    @property
    def program(self) -> str:
        index = self.program_index
        return self.words[index] if index < len(self.words) else ""

    @property
    def arguments(self) -> tuple[str, ...]:
        return self.words[self.program_index + 1:]


# ---------------------------------------------------------------------------
# Splitting
# ---------------------------------------------------------------------------

def _tokenize(args: str) -> list[str]:
    lexer = shlex.shlex(args, posix=True, punctuation_chars=True)
    lexer.whitespace_split = True
    lexer.commenters = ""
    return list(lexer)


def split_commands(args: str) -> list[ShellCommand]:
    """Split a RUN body into simple commands on control operators.

    Redirections and their targets are dropped. Input shlex cannot tokenize
    (unbalanced quotes) is split on the operators with a plain regex.
    """
    try:
        tokens = _tokenize(args)
    except ValueError as exc:
        logger.debug("shlex could not tokenize %r (%s), using plain split", args, exc)
        return [
            ShellCommand(tuple(part.split()))
            for part in OPERATOR_SPLIT_RE.split(args)
            if part.split()
        ]

    commands: list[ShellCommand] = []
    words: list[str] = []
    skip_next = False

    for token in tokens:
        if skip_next:
            skip_next = False
            continue
        if token in CONTROL_OPERATORS:
            if words:
                commands.append(ShellCommand(tuple(words)))
            words = []
            continue
        if token in REDIRECTIONS:
            skip_next = True
            continue
        words.append(token)

    if words:
        commands.append(ShellCommand(tuple(words)))

    return commands


def subcommand(command: ShellCommand, value_options: set[str]) -> str:
    """First non-option argument, skipping the values of options that take one."""
    skip = False
    for word in command.arguments:
        if skip:
            skip = False
            continue
        if word in value_options:
            skip = True
            continue
        if word.startswith("-"):
            continue
        return word
    return ""


def _option_values(command: ShellCommand, option: str) -> list[str]:
    args = command.arguments
    return [args[i + 1] for i, word in enumerate(args[:-1]) if word == option]


def follows_removal(commands: list[ShellCommand], index: int, directory: str) -> bool:
    """True when a later `rm` in the same RUN deletes something under `directory`."""
    for command in commands[index + 1:]:
        if command.program != "rm":
            continue
        if any(word.startswith(directory) for word in command.arguments):
            return True
    return False


# ---------------------------------------------------------------------------
# apt-get / apt
# ---------------------------------------------------------------------------

def is_apt(command: ShellCommand) -> bool:
    return command.program in APT_PROGRAMS


def apt_subcommand(command: ShellCommand) -> str:
    return subcommand(command, APT_VALUE_OPTIONS)


def apt_has_yes(command: ShellCommand) -> bool:
    for word in command.arguments:
        if word in APT_YES_FLAGS or APT_SHORT_YES_RE.match(word):
            return True
    return any(v in APT_ASSUME_YES_OPTIONS for v in _option_values(command, "-o"))


def apt_has_no_recommends(command: ShellCommand) -> bool:
    if "--no-install-recommends" in command.arguments:
        return True
    return any(v in APT_NO_RECOMMENDS_OPTIONS for v in _option_values(command, "-o"))


def follows_rm_apt_lists(commands: list[ShellCommand], index: int) -> bool:
    return follows_removal(commands, index, APT_LISTS_DIR)


# ---------------------------------------------------------------------------
# apk
# ---------------------------------------------------------------------------

def is_apk(command: ShellCommand) -> bool:
    return command.program == "apk"


def apk_subcommand(command: ShellCommand) -> str:
    return subcommand(command, APK_VALUE_OPTIONS)


def apk_packages(command: ShellCommand) -> list[str]:
    """Package names given to an apk subcommand."""
    packages: list[str] = []
    seen_subcommand = False
    skip = False
    for word in command.arguments:
        if skip:
            skip = False
            continue
        if word in APK_VALUE_OPTIONS:
            skip = True
            continue
        if word.startswith("-"):
            continue
        if not seen_subcommand:
            seen_subcommand = True
            continue
        packages.append(word)
    return packages


def apk_has_virtual(command: ShellCommand) -> bool:
    return any(
        word in APK_VIRTUAL_FLAGS or word.startswith("--virtual=")
        for word in command.arguments
    )


def apk_has_no_cache(command: ShellCommand) -> bool:
    return any(word in APK_NO_CACHE_FLAGS for word in command.arguments)


def apk_has_update(command: ShellCommand) -> bool:
    return any(word in APK_UPDATE_FLAGS for word in command.arguments)


def follows_rm_apk_cache(commands: list[ShellCommand], index: int) -> bool:
    return follows_removal(commands, index, APK_CACHE_DIR)


# ---------------------------------------------------------------------------
# RUN check
# ---------------------------------------------------------------------------

def check_apt(commands: list[ShellCommand]) -> list[str]:
    result: list[str] = []
    verbs: list[str] = []

    for index, command in enumerate(commands):
        if not is_apt(command):
            continue
        verb = apt_subcommand(command)
        verbs.append(verb)

        if verb in APT_YES_SUBCOMMANDS and not apt_has_yes(command):
            result.append("apt-get_missing_param")

        if verb == "install":
            if not apt_has_no_recommends(command):
                result.append("apt-get_recommends")
        elif verb == "update":
            if not follows_rm_apt_lists(commands, index):
                result.append("apt-get_missing_rm")
        elif verb == "upgrade":
            result.append("apt-get-upgrade")
        elif verb == "dist-upgrade":
            result.append("apt-get-dist-upgrade")

    if "update" in verbs and "install" not in verbs:
        result.append("apt-get-update_require_install")

    return result


def check_apk(commands: list[ShellCommand]) -> list[str]:
    result: list[str] = []
    apk = [(index, command) for index, command in enumerate(commands) if is_apk(command)]
    deletes = sum(1 for _, command in apk if apk_subcommand(command) == "del")

    for index, command in apk:
        if apk_subcommand(command) != "add":
            continue
        if len(apk_packages(command)) > 1 and deletes and not apk_has_virtual(command):
            result.append("apkadd-missing-virtual")
        if not apk_has_no_cache(command):
            if not apk_has_update(command) or not follows_rm_apk_cache(commands, index):
                result.append("apkadd-missing_nocache_or_updaterm")

    return result


def check_run(args: str) -> list[str]:
    """Rule ids raised by the package-manager calls inside a RUN body."""
    commands = split_commands(args)
    return check_apt(commands) + check_apk(commands)
