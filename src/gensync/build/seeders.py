"""Seeder registry: which entities each module seeds, and in what order.

The registry lives in the ``seeders`` section of the state document::

    {
        "billing": {
            "module": "Billing",
            "module_studly": "Billing",
            "entities": {
                "Invoice": {
                    "entity": "Invoice",
                    "model": "App\\Models\\Invoice",
                    "count": 10,
                    "dependencies": ["Customer"]
                }
            }
        }
    }

Modules without a name are kept under the ``_`` key.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from gensync.build.dag import DependencyOrder, order_with_status
from gensync.build.state import StateStore
from gensync.core.models import DependencyEntity
from gensync.merge.aggregator import INDENT, SEEDER_REGION
from gensync.merge.imports import class_basename, derive_alias, render_use

logger = logging.getLogger(__name__)

DEFAULT_COUNT = 10
SEEDER_NAMESPACE = "Database\\Seeders"
SEEDER_BASE = "Illuminate\\Database\\Seeder"


def scope_key(module: str | None) -> str:
    return module.lower() if module else "_"


@dataclass
class ModuleSeeder:
    """A module's seeder class, ready to render."""

    namespace: str
    class_name: str
    calls: list[tuple[str, int]] = field(default_factory=list)  # (model fqcn, count)
    approximate: bool = False

    @property
    def fqcn(self) -> str:
        return f"{self.namespace}\\{self.class_name}"

    @property
    def relative_path(self) -> str:
        sub = self.namespace[len(SEEDER_NAMESPACE):].strip("\\").replace("\\", "/")
        directory = f"database/seeders/{sub}" if sub else "database/seeders"
        return f"{directory}/{self.class_name}.php"

    def render(self) -> str:
        used = {class_basename(SEEDER_BASE).lower(), self.class_name.lower()}
        imports = {SEEDER_BASE: render_use(SEEDER_BASE)}
        names: dict[str, str] = {}

        for model, _count in self.calls:
            if model in names:
                continue
            base = class_basename(model)
            if base.lower() in used:
                alias = derive_alias(model, used)
            else:
                alias = base
                used.add(base.lower())
            names[model] = alias
            imports[model] = render_use(model, alias)

        lines = ["<?php", "", f"namespace {self.namespace};", ""]
        lines += sorted(imports.values()) + [""]
        lines += [
            f"class {self.class_name} extends {class_basename(SEEDER_BASE)}",
            "{",
            f"{INDENT}public function run(): void",
            f"{INDENT}{{",
            INDENT * 2 + SEEDER_REGION.start_marker,
        ]
        lines += [
            f"{INDENT * 2}{names[model]}::factory()->count({count})->create();"
            for model, count in self.calls
        ]
        lines += [INDENT * 2 + SEEDER_REGION.end_marker, f"{INDENT}}}", "}", ""]
        return "\n".join(lines)


class SeederRegistry:
    """Records seeded entities per module across generation passes.

    The first registration for a module in this process clears the
    module's previous entity list, so entities dropped from the entity
    descriptions stop being seeded.
    """

    def __init__(self, store: StateStore):
        self.store = store
        self._refreshed: set[str] = set()

    def register(
        self,
        module: str | None,
        entity: str,
        model: str,
        count: int = DEFAULT_COUNT,
        dependencies: Iterable[str] = (),
        module_studly: str | None = None,
    ) -> None:
        """Record that ``entity`` of ``module`` seeds ``count`` rows of ``model``."""
        key = scope_key(module)
        state = self.store.load()
        seeders = state["seeders"]

        scope = seeders.get(key)
        if not isinstance(scope, dict):
            scope = {"module": module, "module_studly": module_studly, "entities": {}}
        if key not in self._refreshed:
            scope["entities"] = {}
            self._refreshed.add(key)
        if not isinstance(scope.get("entities"), dict):
            scope["entities"] = {}

        scope["module"] = module
        scope["module_studly"] = module_studly or None
        scope["entities"][entity] = {
            "entity": entity,
            "model": model,
            "count": int(count),
            "dependencies": list(dict.fromkeys(d for d in dependencies if d)),
        }
        seeders[key] = scope
        self.store.save(state)
        logger.debug("Registered seeder %s for %s", entity, key)

    def order(self, module: str | None) -> DependencyOrder:
        """Entities registered for module, dependencies first."""
        scope = self.store.load()["seeders"].get(scope_key(module))
        if not isinstance(scope, dict) or not isinstance(scope.get("entities"), dict):
            return DependencyOrder()

        entities = []
        for name, meta in scope["entities"].items():
            if not isinstance(meta, dict):
                continue
            entity = meta.get("entity") if isinstance(meta.get("entity"), str) else name
            dependencies = [str(d) for d in meta.get("dependencies") or [] if d]
            entities.append(DependencyEntity(entity, tuple(dependencies), payload=meta))

        result = order_with_status(entities)
        if result.approximate:
            logger.warning(
                "Seeders of %s have circular dependencies (%s); using registration order",
                scope_key(module), ", ".join(result.unresolved),
            )
        return result

    def entities(self, module: str | None) -> list[DependencyEntity]:
        return self.order(module).entities

    def module_seeder(self, module: str | None) -> ModuleSeeder | None:
        """The seeder class for module, or None when it has nothing to seed."""
        scope = self.store.load()["seeders"].get(scope_key(module))
        if not isinstance(scope, dict):
            return None

        studly = scope.get("module_studly")
        segments = [s for s in str(studly or "").split("\\") if s]
        if not segments:
            return None

        ordered = self.order(module)
        calls = [
            (str(entity.payload["model"]), int(entity.payload.get("count") or DEFAULT_COUNT))
            for entity in ordered.entities
            if entity.payload.get("model")
        ]
        if not calls:
            return None

        class_segment = segments.pop()
        namespace = "\\".join([SEEDER_NAMESPACE] + segments)
        return ModuleSeeder(
            namespace=namespace,
            class_name=f"{class_segment}Seeder",
            calls=calls,
            approximate=ordered.approximate,
        )

    def module_seeders(self) -> list[str]:
        """Fully-qualified module seeder classes the aggregator should call."""
        classes: list[str] = []
        for scope in self.store.load()["seeders"].values():
            if not isinstance(scope, dict):
                continue
            studly = scope.get("module_studly")
            if not isinstance(studly, str) or not studly or not scope.get("entities"):
                continue
            fqcn = f"{SEEDER_NAMESPACE}\\{studly}Seeder"
            if fqcn not in classes:
                classes.append(fqcn)
        return classes
