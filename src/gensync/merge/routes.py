"""Anchor-and-register merge for the API routing table."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from gensync.merge.imports import ensure_import
from gensync.merge.regions import find_braced_body, normalize_newlines, restore_newlines

logger = logging.getLogger(__name__)

ROUTE_FACADE = "Illuminate\\Support\\Facades\\Route"

ROUTES_SKELETON = "<?php\n\nuse Illuminate\\Support\\Facades\\Route;\n"

INDENT = "    "


@dataclass(frozen=True)
class RouteRegistration:
    """A resource route the routing table should contain.

    ``middleware`` holds access-control tags; when present a new
    registration is placed inside a matching guard group.
    """

    controller: str
    uri: str
    scope_tag: str | None = None
    middleware: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not isinstance(self.middleware, tuple):
            object.__setattr__(self, "middleware", tuple(self.middleware))

    def render(self, alias: str) -> str:
        return f"Route::apiResource('{self.uri}', {alias}::class)"


def registration_pattern(alias: str) -> re.Pattern[str]:
    """Pattern for ``Route::apiResource('<uri>', <alias>::class)``."""
    return re.compile(
        r"Route::apiResource\(\s*(?P<quote>['\"])(?P<uri>[^'\"]*)(?P=quote)\s*,\s*"
        + re.escape(alias)
        + r"::class\s*\)"
    )


def find_registration(text: str, alias: str) -> re.Match[str] | None:
    return registration_pattern(alias).search(text)


def guard_pattern(middleware: tuple[str, ...]) -> re.Pattern[str]:
    """Pattern for the opening of a guard group with exactly these tags."""
    tags = r"\s*,\s*".join(r"['\"]" + re.escape(tag) + r"['\"]" for tag in middleware)
    return re.compile(
        r"Route::middleware\(\s*\[\s*" + tags + r"\s*,?\s*\]\s*\)\s*->\s*group\(\s*function\s*\(\s*\)(?:\s*:\s*void)?"
    )


def render_guard(middleware: tuple[str, ...], statements: list[str]) -> str:
    tags = ", ".join(f"'{tag}'" for tag in middleware)
    lines = [f"Route::middleware([{tags}])->group(function (): void {{"]
    lines += [INDENT + statement for statement in statements]
    lines.append("});")
    return "\n".join(lines)


class RouteRegistrar:
    """Registers resource routes without disturbing hand-written ones."""

    def __init__(self, skeleton: str = ROUTES_SKELETON):
        self.skeleton = skeleton

    def merge(self, existing: str | None, registration: RouteRegistration) -> str | None:
        """Return the updated routing table, or None when it already matches."""
        original = existing if existing is not None else self.skeleton
        text = normalize_newlines(original)

        text, _ = ensure_import(text, ROUTE_FACADE)
        text, alias = ensure_import(text, registration.controller, registration.scope_tag)

        desired = registration.render(alias)
        match = find_registration(text, alias)

        if match is not None:
            if match.group("uri") != registration.uri:
                logger.info("Updating route for %s: %s -> %s", alias, match.group("uri"), registration.uri)
                text = text[: match.start()] + desired + text[match.end():]
        else:
            text = self._append(text, desired + ";", registration.middleware)

        if existing is not None and text == normalize_newlines(existing):
            return None
        return restore_newlines(original, text)

    def _append(self, text: str, statement: str, middleware: tuple[str, ...]) -> str:
        if not middleware:
            return text.rstrip("\n") + "\n\n" + statement + "\n"

        span = find_braced_body(text, guard_pattern(middleware))
        if span is not None:
            start, end = span
            body = text[start:end].rstrip()
            return text[:start] + body + "\n" + INDENT + statement + "\n" + text[end:]

        return text.rstrip("\n") + "\n\n" + render_guard(middleware, [statement]) + "\n"
