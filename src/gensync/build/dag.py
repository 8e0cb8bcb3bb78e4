"""Dependency ordering: deterministic topological order with a cycle fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from gensync.core.models import DependencyEntity

logger = logging.getLogger(__name__)


@dataclass
class DependencyOrder:
    """Ordered entities plus whether the order is only best-effort.

    ``approximate`` is True when a cycle (or a dependency that never
    resolves) forced the remaining entities to be appended in input order.
    """

    entities: list[DependencyEntity] = field(default_factory=list)
    approximate: bool = False
    unresolved: list[str] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [entity.name for entity in self.entities]


def order_with_status(entities: Iterable[DependencyEntity]) -> DependencyOrder:
    """Repeated-pass topological sort.

    Each pass emits, in input order, every entity whose dependencies are
    already emitted or are not part of the input at all. A pass that emits
    nothing stops the loop and appends the rest in input order.
    """
    remaining: dict[str, DependencyEntity] = {}
    for entity in entities:
        # Later duplicates replace earlier ones but keep the first position.
        remaining[entity.name] = entity

    result = DependencyOrder()

    while remaining:
        progress = False

        for name, entity in list(remaining.items()):
            blocked = [
                dep for dep in entity.dependencies
                if dep and dep != name and dep in remaining
            ]
            if blocked:
                continue

            result.entities.append(entity)
            del remaining[name]
            progress = True

        if not progress:
            result.approximate = True
            result.unresolved = list(remaining)
            logger.debug("Dependency cycle among %s; using input order", result.unresolved)
            result.entities.extend(remaining.values())
            break

    return result


def order(entities: Iterable[DependencyEntity]) -> list[DependencyEntity]:
    """Return entities so each one follows the dependencies it names."""
    return order_with_status(entities).entities
