"""Import (``use``) statements in hand-maintained PHP files.

All functions work on newline-normalized text; callers restore the
original newline style with :func:`gensync.merge.regions.restore_newlines`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

# Namespace segments that say nothing about where a class belongs.
GENERIC_SEGMENTS = frozenset({"repositories", "models", "requests", "resources"})

SCOPE_TAGS = ("Central", "Tenant", "Shared")

_USE_RE = re.compile(r"^use\s+([^;]+);[ \t]*$", re.MULTILINE)
_AS_RE = re.compile(r"\s+as\s+", re.IGNORECASE)
_NAMESPACE_RE = re.compile(r"^namespace\s+[^;]+;", re.MULTILINE)
_SCOPE_RE = re.compile(r"\\(" + "|".join(SCOPE_TAGS) + r")\\", re.IGNORECASE)


def normalize_class_name(fqcn: str) -> str:
    return fqcn.strip().strip("\\")


def class_basename(fqcn: str) -> str:
    return normalize_class_name(fqcn).rsplit("\\", 1)[-1]


def studly(value: str) -> str:
    """``tenant_admin`` -> ``TenantAdmin``."""
    parts = re.split(r"[^A-Za-z0-9]+", value)
    return "".join(part[:1].upper() + part[1:] for part in parts if part)


@dataclass(frozen=True)
class UseStatement:
    """One ``use Fqcn [as Alias];`` line."""

    fqcn: str
    alias: str | None = None
    start: int = -1
    end: int = -1

    @property
    def local_name(self) -> str:
        return self.alias or class_basename(self.fqcn)

    @property
    def key(self) -> str:
        return self.fqcn.lower()

    def render(self) -> str:
        return render_use(self.fqcn, self.alias)


def render_use(fqcn: str, alias: str | None = None) -> str:
    fqcn = normalize_class_name(fqcn)
    if alias and alias != class_basename(fqcn):
        return f"use {fqcn} as {alias};"
    return f"use {fqcn};"


def parse_use_statement(body: str, start: int = -1, end: int = -1) -> UseStatement | None:
    """Parse the part between ``use`` and ``;``."""
    parts = _AS_RE.split(body.strip(), maxsplit=1)
    fqcn = normalize_class_name(parts[0])
    if not fqcn or " " in fqcn or "{" in fqcn:
        return None
    alias = parts[1].strip() if len(parts) > 1 and parts[1].strip() else None
    return UseStatement(fqcn=fqcn, alias=alias, start=start, end=end)


def parse_use_statements(text: str) -> list[UseStatement]:
    """Top-level use statements of a file, in file order.

    Indented ``use`` lines (trait imports inside a class body) are ignored.
    """
    statements = []
    for match in _USE_RE.finditer(text):
        parsed = parse_use_statement(match.group(1), match.start(), match.end())
        if parsed is not None:
            statements.append(parsed)
    return statements


def detect_scope_tag(fqcn: str) -> str | None:
    """The Central/Tenant/Shared scope a class lives under, if any."""
    match = _SCOPE_RE.search("\\" + normalize_class_name(fqcn) + "\\")
    if match is None:
        return None
    return studly(match.group(1).lower())


def namespace_hint(fqcn: str) -> str | None:
    """Closest meaningful namespace segment above the class name."""
    segments = normalize_class_name(fqcn).split("\\")[:-1]
    for segment in reversed(segments):
        segment = segment.strip()
        if segment and segment.lower() not in GENERIC_SEGMENTS:
            return studly(segment)
    return None


def ensure_unique_alias(alias: str, used: set[str]) -> str:
    """Return alias, or alias with the first free numeric suffix from 2.

    ``used`` holds lowercased identifiers and is updated in place.
    """
    base = alias or "Alias"
    candidate = base
    index = 2
    while candidate.lower() in used:
        candidate = f"{base}{index}"
        index += 1
    used.add(candidate.lower())
    return candidate


def derive_alias(fqcn: str, used: set[str], scope_tag: str | None = None) -> str:
    """Pick a collision-free local name for fqcn.

    Hints are tried in order: the explicit scope tag, the scope found in the
    namespace, then the nearest meaningful namespace segment. When every
    hinted name is taken the first one gets a numeric suffix.
    """
    base = class_basename(fqcn)
    hints = [scope_tag and studly(scope_tag), detect_scope_tag(fqcn), namespace_hint(fqcn)]
    candidates: list[str] = []
    for hint in hints:
        if hint and f"{hint}{base}" not in candidates and f"{hint}{base}" != base:
            candidates.append(f"{hint}{base}")

    for candidate in candidates:
        if candidate.lower() not in used:
            used.add(candidate.lower())
            return candidate

    return ensure_unique_alias(candidates[0] if candidates else base, used)


def derive_seeder_alias(fqcn: str, used: set[str]) -> str:
    """Alias for a module seeder whose class name is already taken.

    ``Database\\Seeders\\Billing\\InvoicesSeeder`` becomes
    ``BillingInvoicesSeeder``; with no qualifying segment the prefix is
    ``Module``.
    """
    segments = [s for s in normalize_class_name(fqcn).split("\\") if s]
    if not segments:
        return ensure_unique_alias("ModuleSeederAlias", used)

    base = segments.pop()
    qualifiers = [s for s in segments if s.lower() not in ("database", "seeders")] or ["Module"]
    return ensure_unique_alias("".join(qualifiers) + base, used)


def insert_use_statement(text: str, statement: str) -> str:
    """Insert a use line after the last existing one.

    Without existing imports it goes below the namespace declaration, then
    below the opening ``<?php`` line, and finally at the top of the file.
    """
    uses = list(_USE_RE.finditer(text))
    if uses:
        position = uses[-1].end()
        return text[:position] + "\n" + statement + text[position:]

    namespace = _NAMESPACE_RE.search(text)
    if namespace is not None:
        before = text[: namespace.end()].rstrip("\n")
        after = text[namespace.end():].lstrip("\n")
        return f"{before}\n\n{statement}\n{after}"

    if text.startswith("<?php"):
        newline = text.find("\n")
        if newline == -1:
            return f"{text}\n{statement}\n"
        return text[: newline + 1] + statement + "\n" + text[newline + 1:]

    return f"{statement}\n{text}"


def used_identifiers(statements: Iterable[UseStatement]) -> set[str]:
    return {statement.local_name.lower() for statement in statements}


def ensure_import(text: str, fqcn: str, scope_tag: str | None = None) -> tuple[str, str]:
    """Make sure text imports fqcn under a local name nothing else uses.

    Returns the updated text and the local name to reference the class by.
    An existing import of the same class is reused. When its local name is
    shared with another import, the line is rewritten in place with a
    derived alias. A new import gets the class basename, or a derived
    alias when the basename is taken.
    """
    fqcn = normalize_class_name(fqcn)
    statements = parse_use_statements(text)
    existing = next((s for s in statements if s.key == fqcn.lower()), None)

    if existing is not None:
        others = [s for s in statements if s.key != existing.key]
        used = used_identifiers(others)
        if existing.local_name.lower() not in used:
            return text, existing.local_name

        alias = derive_alias(fqcn, used, scope_tag)
        rewritten = render_use(fqcn, alias)
        return text[: existing.start] + rewritten + text[existing.end:], alias

    used = used_identifiers(statements)
    base = class_basename(fqcn)
    if base.lower() in used:
        alias = derive_alias(fqcn, used, scope_tag)
    else:
        alias = base

    return insert_use_statement(text, render_use(fqcn, alias)), alias
