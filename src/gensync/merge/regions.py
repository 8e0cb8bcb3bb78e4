"""Managed regions: delimited spans of a hand-authored file owned by gensync."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable


def detect_newline(text: str) -> str:
    """Return the newline style used by text (``\\r\\n`` or ``\\n``)."""
    return "\r\n" if "\r\n" in text else "\n"


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def restore_newlines(original: str, normalized: str) -> str:
    """Re-apply the original file's newline style to normalized text."""
    if detect_newline(original) == "\r\n":
        return normalized.replace("\n", "\r\n")
    return normalized


def normalize_whitespace(text: str) -> str:
    return normalize_newlines(text).strip()


def _never(_line: str) -> bool:
    return False


@dataclass(frozen=True)
class ManagedRegion:
    """A start/end marker pair plus the lines the generator owns.

    Everything strictly between the markers belongs to the generator.
    ``owns`` additionally claims lines outside the markers that earlier
    versions of the generator emitted without markers; those lines are
    dropped when the region is rebuilt.
    """

    start_marker: str
    end_marker: str
    owns: Callable[[str], bool] = field(default=_never, compare=False)

    def is_start(self, line: str) -> bool:
        return line.strip() == self.start_marker

    def is_end(self, line: str) -> bool:
        return line.strip() == self.end_marker


@dataclass(frozen=True)
class RegionSpan:
    """Line indexes of a region's markers inside a list of lines."""

    start: int
    end: int
    indent: str


def find_region(lines: list[str], region: ManagedRegion) -> RegionSpan | None:
    """Locate the first complete marker pair in lines."""
    start = None
    for index, line in enumerate(lines):
        if start is None and region.is_start(line):
            start = index
        elif start is not None and region.is_end(line):
            indent = re.match(r"^\s*", lines[start]).group(0)
            return RegionSpan(start=start, end=index, indent=indent)
    return None


def replace_region(text: str, region: ManagedRegion, body: list[str]) -> str | None:
    """Replace the lines between a region's markers with body.

    Returns None when text has no complete marker pair. Lines outside the
    markers are returned unchanged.
    """
    lines = normalize_newlines(text).split("\n")
    span = find_region(lines, region)
    if span is None:
        return None
    updated = lines[: span.start + 1] + body + lines[span.end:]
    return restore_newlines(text, "\n".join(updated))


def strip_owned_lines(lines: list[str], region: ManagedRegion, statement_open: str, statement_close: tuple[str, ...]) -> list[str]:
    """Remove marker-delimited lines and generator-owned statements.

    A statement starting with ``statement_open`` that does not close on
    the same line swallows following lines until one contains a closing
    token. What remains is developer-written code.
    """
    kept: list[str] = []
    in_region = False
    in_statement = False

    for line in lines:
        stripped = line.strip()

        if region.is_start(line):
            in_region = True
            continue
        if region.is_end(line):
            in_region = False
            continue
        if in_region:
            continue

        if in_statement:
            if any(token in stripped for token in statement_close):
                in_statement = False
            continue

        if stripped.startswith(statement_open):
            in_statement = not any(token in stripped for token in statement_close)
            continue

        if region.owns(line):
            continue

        kept.append(line)

    return kept


def reindent(lines: list[str], indent: str) -> list[str]:
    """Re-indent lines uniformly, trimming blank lines at both ends."""
    result = ["" if not line.strip() else indent + line.strip() for line in lines]
    while result and result[0] == "":
        result.pop(0)
    while result and result[-1] == "":
        result.pop()
    return result


def find_braced_body(text: str, opening: re.Pattern[str]) -> tuple[int, int] | None:
    """Span of the text between the ``{`` after ``opening`` and its partner.

    Braces are counted naively; braces inside strings or comments in the
    body throw the count off.
    """
    match = opening.search(text)
    if match is None:
        return None
    brace = text.find("{", match.end())
    if brace == -1:
        return None

    depth = 1
    for index in range(brace + 1, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return brace + 1, index
    return None
