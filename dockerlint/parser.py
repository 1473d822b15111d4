"""Dockerfile text handling: logical instructions, build stages, word splitting."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from .errors import DirectiveSyntaxError

logger = logging.getLogger(__name__)

LINE_SPLIT_RE = re.compile(r"\r?\n")
CONTINUATION = "\\"
ESCAPE_TOKEN = "\\"


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Instruction:
    """A logical Dockerfile instruction (continuation lines already folded)."""
    line: int             # first physical line number (1-based)
    text: str             # full folded text, keyword included

    @property
    def command(self) -> str:
        """The instruction word exactly as written."""
        parts = self.text.split(None, 1)
        return parts[0] if parts else ""

    @property
    def keyword(self) -> str:
        return self.command.lower()

    @property
    def arguments(self) -> str:
        """Everything after the instruction word, case preserved."""
        return self.text.strip()[len(self.command):].strip()


@dataclass(frozen=True)
class Stage:
    """A build stage opened by FROM (the first one is implicit and unnamed)."""
    name: str = ""
    instructions_processed: int = 0
    cmd_found: bool = False


# ---------------------------------------------------------------------------
# Line assembly
# ---------------------------------------------------------------------------

def split_lines(content: str) -> list[str]:
    """Split raw content into physical lines, accepting LF and CRLF."""
    return LINE_SPLIT_RE.split(content)


def assemble(content: str) -> dict[int, str]:
    """Fold continuation lines and drop blanks and comments.

    Returns a mapping of start line (1-based) to instruction text, in file
    order. A continuation still open at end of input is dropped.
    """
    instructions: dict[int, str] = {}
    fragments: list[str] = []
    start_line: int | None = None

    for index, raw in enumerate(split_lines(content)):
        line = raw.strip()

        if not line or line.startswith("#"):
            continue

        if line.endswith(CONTINUATION):
            fragment = line[:-1].rstrip()
            if fragment:
                fragments.append(fragment)
            if start_line is None:
                start_line = index + 1
            continue

        number = start_line if start_line is not None else index + 1
        instructions[number] = " ".join(fragments + [line]).strip()
        fragments = []
        start_line = None

    if start_line is not None:
        logger.warning(
            "Line %d: continuation never closed before end of input, instruction dropped",
            start_line,
        )

    return instructions


def parse_dockerfile(content: str) -> list[Instruction]:
    """Parse Dockerfile content into an ordered list of instructions."""
    instructions = [Instruction(line=number, text=text) for number, text in assemble(content).items()]
    logger.debug("Assembled %d instruction(s)", len(instructions))
    return instructions


def stage_name(text: str) -> str:
    """Return the lower-cased alias of a `FROM ... AS name` instruction, or ''."""
    parts = text.split()
    if len(parts) > 2 and parts[-2].lower() == "as":
        return parts[-1].lower()
    return ""


# ---------------------------------------------------------------------------
# Word and key=value parsing (Docker's own rules for ENV and LABEL)
# ---------------------------------------------------------------------------

def parse_words(rest: str) -> list[str]:
    """Split an instruction body into words the way the Docker builder does.

    Whitespace separates words unless quoted; quotes are kept in the word.
    The escape token protects the next character outside single quotes.
    """
    words: list[str] = []
    word = ""
    quote = ""
    blank_ok = False
    in_word = False
    pos = 0
    size = len(rest)

    while pos < size:
        ch = rest[pos]

        if not in_word and not quote:
            if ch.isspace():
                pos += 1
                continue
            in_word = True

        if quote:
            if ch == quote:
                quote = ""
            elif ch == ESCAPE_TOKEN and quote != "'":
                if pos + 1 == size:
                    pos += 1
                    continue
                word += ch
                pos += 1
                ch = rest[pos]
            word += ch
            pos += 1
            continue

        if ch.isspace():
            if blank_ok or word:
                words.append(word)
            word = ""
            blank_ok = False
            in_word = False
            pos += 1
            continue

        if ch in ("'", '"'):
            quote = ch
            blank_ok = True
        elif ch == ESCAPE_TOKEN:
            if pos + 1 == size:
                pos += 1
                continue
            word += ch
            pos += 1
            ch = rest[pos]

        word += ch
        pos += 1

    if blank_ok or word:
        words.append(word)

    return words


def parse_name_values(rest: str) -> list[tuple[str, str]]:
    """Parse `name=value [name=value ...]`, raising DirectiveSyntaxError on bad input."""
    pairs: list[tuple[str, str]] = []
    for word in parse_words(rest):
        name, sep, value = word.partition("=")
        if not sep:
            raise DirectiveSyntaxError(
                f"can't find = in {word!r}, must be of the form name=value"
            )
        if not name:
            raise DirectiveSyntaxError(f"empty name in {word!r}")
        pairs.append((name, value))
    return pairs
