"""Block-replace merge for the top-level seed aggregator (``DatabaseSeeder``)."""

from __future__ import annotations

import logging
import re

from gensync.core.errors import MergeError
from gensync.merge.imports import (
    class_basename,
    derive_seeder_alias,
    insert_use_statement,
    normalize_class_name,
    parse_use_statements,
    render_use,
    used_identifiers,
)
from gensync.merge.regions import (
    ManagedRegion,
    find_braced_body,
    normalize_newlines,
    normalize_whitespace,
    reindent,
    restore_newlines,
    strip_owned_lines,
)

logger = logging.getLogger(__name__)

SEEDER_REGION = ManagedRegion("// @gensync:seeders:start", "// @gensync:seeders:end")

CALL_OPEN = "$this->call("
CALL_CLOSE = ("];", ");")

_RUN_RE = re.compile(r"^([ \t]*)public function run\(\)(?:\s*:\s*void)?", re.MULTILINE)

INDENT = "    "


class AggregatorMerger:
    """Keeps the list of called seeders inside a managed block.

    The block lives at the top of the aggregator's ``run()`` body. Whatever
    else the developer put in that body survives beneath the block, minus
    seeder call statements, which the block now owns. Everything outside
    ``run()`` is left as it was, apart from added imports.
    """

    def __init__(
        self,
        namespace: str = "Database\\Seeders",
        class_name: str = "DatabaseSeeder",
        base_class: str = "Illuminate\\Database\\Seeder",
        region: ManagedRegion = SEEDER_REGION,
    ):
        self.namespace = namespace
        self.class_name = class_name
        self.base_class = base_class
        self.region = region

    def merge(self, existing: str | None, classes: list[str]) -> str | None:
        """Return the new aggregator text, or None when nothing changes.

        ``classes`` are fully-qualified seeder classes in call order.
        """
        classes = _unique(normalize_class_name(c) for c in classes)

        if existing is None:
            return self.render_skeleton(classes)

        text = normalize_newlines(existing)
        text, names = self._ensure_imports(text, classes)

        span = find_braced_body(text, _RUN_RE)
        if span is None:
            raise MergeError(f"{self.class_name} has no run() method to hold the seeder block")

        start, end = span
        method_indent = _RUN_RE.search(text).group(1)
        body_indent = method_indent + INDENT

        custom = strip_owned_lines(text[start:end].split("\n"), self.region, CALL_OPEN, CALL_CLOSE)
        body = self.render_block(names, body_indent)
        custom = reindent(custom, body_indent)
        if custom:
            body += [""] + custom

        merged = text[:start] + "\n" + "\n".join(body) + "\n" + method_indent + text[end:]

        if normalize_whitespace(merged) == normalize_whitespace(existing):
            logger.debug("%s already up to date", self.class_name)
            return None
        return restore_newlines(existing, merged)

    def render_block(self, names: list[str], indent: str) -> list[str]:
        """Marker-delimited call block for the given local class names."""
        lines = [indent + self.region.start_marker, f"{indent}$this->call(["]
        lines += [f"{indent}{INDENT}{name}::class," for name in names]
        lines += [f"{indent}]);", indent + self.region.end_marker]
        return lines

    def render_skeleton(self, classes: list[str]) -> str:
        """A complete aggregator file calling classes."""
        used = {class_basename(self.base_class).lower()}
        rendered = {self.base_class.lower(): render_use(self.base_class)}
        names = []

        base_counts: dict[str, int] = {}
        for fqcn in classes:
            base = class_basename(fqcn).lower()
            base_counts[base] = base_counts.get(base, 0) + 1

        for fqcn in classes:
            base = class_basename(fqcn)
            if base_counts[base.lower()] > 1 or base.lower() in used:
                alias = derive_seeder_alias(fqcn, used)
            else:
                alias = base
                used.add(base.lower())
            rendered[fqcn.lower()] = render_use(fqcn, alias)
            names.append(alias)

        ordered = [rendered[self.base_class.lower()]] + sorted(
            statement for key, statement in rendered.items() if key != self.base_class.lower()
        )

        lines = ["<?php", "", f"namespace {self.namespace};", ""]
        lines += ordered + [""]
        lines += [
            f"class {self.class_name} extends {class_basename(self.base_class)}",
            "{",
            f"{INDENT}public function run(): void",
            f"{INDENT}{{",
        ]
        lines += self.render_block(names, INDENT * 2)
        lines += [f"{INDENT}}}", "}", ""]
        return "\n".join(lines)

    def _ensure_imports(self, text: str, classes: list[str]) -> tuple[str, list[str]]:
        """Import every class, returning the local name each is called by."""
        names = []
        for fqcn in classes:
            statements = parse_use_statements(text)
            current = next((s for s in statements if s.key == fqcn.lower()), None)
            if current is not None:
                names.append(current.local_name)
                continue

            used = used_identifiers(statements)
            used.add(self.class_name.lower())
            base = class_basename(fqcn)
            alias = derive_seeder_alias(fqcn, used) if base.lower() in used else base
            text = insert_use_statement(text, render_use(fqcn, alias))
            names.append(alias)
        return text, names


def _unique(values) -> list[str]:
    seen: set[str] = set()
    result = []
    for value in values:
        if value and value.lower() not in seen:
            seen.add(value.lower())
            result.append(value)
    return result
