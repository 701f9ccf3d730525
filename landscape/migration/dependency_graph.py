"""
Static dependency DAG between migration objects.

A key depends on its values: every value must reach ``load=done`` before
the key may start.  Ties in execution order follow declaration order.
"""

from __future__ import annotations

import logging

from landscape.core.exceptions import FatalError

logger = logging.getLogger(__name__)

DEPENDENCIES: dict[str, list[str]] = {
    "GL_ACCOUNT": [],
    "COST_CENTER": [],
    "CUSTOMER": [],
    "VENDOR": [],
    "ITEM": [],
    "WORK_CENTER": ["COST_CENTER"],
    "BOM": ["ITEM"],
    "ROUTING": ["ITEM", "WORK_CENTER"],
    "SALES_ORDER": ["CUSTOMER", "ITEM"],
    "PURCHASE_ORDER": ["VENDOR", "ITEM"],
    "PRODUCTION_ORDER": ["ITEM", "BOM", "ROUTING"],
    "FIXED_ASSET": ["COST_CENTER", "GL_ACCOUNT"],
}


class DependencyGraph:
    def __init__(self, dependencies: dict[str, list[str]] | None = None) -> None:
        self.dependencies = {k: list(v) for k, v in (dependencies or DEPENDENCIES).items()}

    def set_dependencies(self, object_id: str, deps: list[str]) -> None:
        self.dependencies[object_id] = list(deps)

    def get_dependencies(self, object_id: str) -> list[str]:
        return self.dependencies.get(object_id, [])

    def transitive_dependencies(self, object_id: str) -> list[str]:
        seen: list[str] = []
        stack = list(self.get_dependencies(object_id))
        while stack:
            current = stack.pop(0)
            if current in seen or current == object_id:
                continue
            seen.append(current)
            stack.extend(self.get_dependencies(current))
        return seen

    def execution_order(self, object_ids: list[str] | None = None) -> list[str]:
        """Topological order (Kahn); ties resolve in declaration order.

        Raises FatalError on a cycle.
        """
        ids = list(object_ids) if object_ids is not None else list(self.dependencies)
        available = set(ids)
        remaining = {i: {d for d in self.get_dependencies(i) if d in available} for i in ids}
        order: list[str] = []
        while remaining:
            ready = [i for i in ids if i in remaining and not remaining[i]]
            if not ready:
                raise FatalError(f"Dependency cycle among: {', '.join(sorted(remaining))}")
            nxt = ready[0]
            order.append(nxt)
            del remaining[nxt]
            for deps in remaining.values():
                deps.discard(nxt)
        return order

    def waves(self, object_ids: list[str] | None = None) -> list[list[str]]:
        """Dependency levels; objects within a wave are independent."""
        ids = list(object_ids) if object_ids is not None else list(self.dependencies)
        available = set(ids)
        completed: set[str] = set()
        waves: list[list[str]] = []
        while len(completed) < len(available):
            wave = [
                i for i in ids
                if i not in completed
                and all(d in completed for d in self.get_dependencies(i) if d in available)
            ]
            if not wave:
                raise FatalError(f"Dependency cycle among: {', '.join(sorted(available - completed))}")
            waves.append(wave)
            completed.update(wave)
        return waves

    def detect_cycles(self) -> list[list[str]]:
        cycles: list[list[str]] = []
        visited: set[str] = set()

        def visit(node: str, path: list[str]) -> None:
            if node in path:
                cycles.append(path[path.index(node):] + [node])
                return
            if node in visited:
                return
            visited.add(node)
            for dep in self.get_dependencies(node):
                visit(dep, path + [node])

        for node in self.dependencies:
            visit(node, [])
        return cycles

    def validate(self, registered_ids) -> dict:
        registered = set(registered_ids)
        issues = [
            {"objectId": obj, "missingDependency": dep}
            for obj, deps in self.dependencies.items()
            for dep in deps
            if dep not in registered
        ]
        cycles = self.detect_cycles()
        if issues or cycles:
            logger.warning("Dependency graph invalid issues=%d cycles=%d", len(issues), len(cycles))
        return {"valid": not issues and not cycles, "issues": issues, "circularDependencies": cycles}
