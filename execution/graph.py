"""Task graph contracts.

A graph is a static set of named tasks, each declaring the names it depends on.
The graph is validated once at construction time so the executor never has to
deal with undeclared names or cycles while running.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable

ResultBag = Mapping[str, Any]
TaskAction = Callable[[ResultBag], Any]


class GraphConfigurationError(ValueError):
    """Raised when a task graph is malformed (unknown names, cycles, duplicates)."""


@dataclass(frozen=True)
class TaskNode:
    name: str
    action: TaskAction
    dependencies: frozenset[str] = field(default_factory=frozenset)


class TaskGraph:
    """Immutable, validated set of task nodes with a designated final task."""

    def __init__(self, nodes: Iterable[TaskNode], *, final: str):
        ordered = list(nodes)
        if not ordered:
            raise GraphConfigurationError("Task graph must declare at least one task")

        names = [node.name for node in ordered]
        if any(not str(name).strip() for name in names):
            raise GraphConfigurationError("Task names must be non-empty")
        if len(set(names)) != len(names):
            duplicates = sorted({name for name in names if names.count(name) > 1})
            raise GraphConfigurationError(f"Task names must be unique: {duplicates}")

        self._nodes: dict[str, TaskNode] = dict(zip(names, ordered))

        for node in ordered:
            if node.name in node.dependencies:
                raise GraphConfigurationError(f"Task '{node.name}' depends on itself")
            unknown = sorted(dep for dep in node.dependencies if dep not in self._nodes)
            if unknown:
                raise GraphConfigurationError(
                    f"Task '{node.name}' depends on undeclared tasks: {unknown}"
                )

        if final not in self._nodes:
            raise GraphConfigurationError(f"Final task '{final}' is not declared")

        cycle = self._find_cycle()
        if cycle:
            raise GraphConfigurationError(f"Task graph must not contain cycles: {' -> '.join(cycle)}")

        self.final = final

    @classmethod
    def from_mapping(
        cls,
        tasks: Mapping[str, tuple[Iterable[str], TaskAction]],
        *,
        final: str,
    ) -> "TaskGraph":
        """Build a graph from `{name: (dependency names, action)}`."""
        return cls(
            (
                TaskNode(name=name, action=action, dependencies=frozenset(depends_on))
                for name, (depends_on, action) in tasks.items()
            ),
            final=final,
        )

    @property
    def nodes(self) -> Mapping[str, TaskNode]:
        return MappingProxyType(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def _find_cycle(self) -> list[str]:
        visiting: list[str] = []
        visited: set[str] = set()

        def dfs(name: str) -> list[str]:
            if name in visiting:
                return visiting[visiting.index(name):] + [name]
            if name in visited:
                return []

            visiting.append(name)
            for dep in sorted(self._nodes[name].dependencies):
                cycle = dfs(dep)
                if cycle:
                    return cycle
            visiting.pop()
            visited.add(name)
            return []

        for name in self._nodes:
            cycle = dfs(name)
            if cycle:
                return cycle
        return []
