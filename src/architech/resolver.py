"""Module dependency and conflict resolution.

Planning works on adapter metadata alone, so a recipe with a structural
problem is rejected before any adapter is loaded or any file is written.
"""

import heapq
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set

from .errors import (
    ArchitechError,
    CyclicDependency,
    MissingDependency,
    ModuleConflict,
    PlanningFailed,
)
from .logging_config import get_logger
from .parser import Module
from .registry import AdapterMetadata

MetadataLookup = Callable[[str, str], Optional[AdapterMetadata]]


@dataclass
class DependencyGraph:
    """Edges point from a module to the modules that require it."""

    nodes: List[str] = field(default_factory=list)
    edges: Dict[str, Set[str]] = field(default_factory=dict)

    def add_node(self, key: str) -> None:
        if key not in self.edges:
            self.nodes.append(key)
            self.edges[key] = set()

    def add_edge(self, required: str, dependent: str) -> None:
        self.edges[required].add(dependent)

    def requirements(self, key: str) -> List[str]:
        return [node for node in self.nodes if key in self.edges[node]]

    def dependents(self, key: str) -> Set[str]:
        """All modules that need ``key``, directly or transitively."""
        found: Set[str] = set()
        stack = list(self.edges.get(key, ()))
        while stack:
            node = stack.pop()
            if node in found:
                continue
            found.add(node)
            stack.extend(self.edges.get(node, ()))
        return found


@dataclass
class ExecutionPlan:
    order: List[Module]
    errors: List[ArchitechError]
    graph: DependencyGraph

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        if self.errors:
            raise PlanningFailed(self.errors)


def _matches(module: Module, reference: str) -> bool:
    return reference in (module.id, module.key)


class DependencyResolver:
    """Computes a stable execution order for the modules of a recipe.

    Requirements and conflicts name other modules either by id
    (``drizzle``) or by ``category/id``. References listed in
    ``assume_present`` count as satisfied without being part of the
    plan, which is how modules are added to an existing project.
    """

    def __init__(self, metadata_lookup: MetadataLookup, assume_present: Iterable[str] = ()):
        self.metadata_lookup = metadata_lookup
        self.assume_present = set(assume_present)

    def plan(self, modules: Sequence[Module]) -> ExecutionPlan:
        logger = get_logger("resolver")
        errors: List[ArchitechError] = []
        graph = DependencyGraph()
        metadata: Dict[str, Optional[AdapterMetadata]] = {}

        for module in modules:
            graph.add_node(module.key)
            metadata[module.key] = self.metadata_lookup(module.category, module.id)
            if metadata[module.key] is None:
                logger.debug(f"No metadata registered for {module.key}; assuming no relations")

        for module in modules:
            meta = metadata[module.key]
            for requirement in meta.requires if meta else ():
                providers = [m for m in modules if _matches(m, requirement)]
                if providers:
                    for provider in providers:
                        graph.add_edge(provider.key, module.key)
                elif requirement not in self.assume_present:
                    errors.append(MissingDependency(module.key, requirement))

        order_keys = self._sort(graph)
        if len(order_keys) < len(graph.nodes):
            remaining = [key for key in graph.nodes if key not in order_keys]
            errors.extend(CyclicDependency(cycle) for cycle in self._find_cycles(graph, remaining))

        errors.extend(self._conflicts(modules, metadata))

        by_key = {module.key: module for module in modules}
        order = [by_key[key] for key in order_keys]
        logger.debug(f"Planned order: {' -> '.join(order_keys) or '(empty)'}")
        if errors:
            logger.debug(f"Planning found {len(errors)} error(s)")
        return ExecutionPlan(order=order, errors=errors, graph=graph)

    def _sort(self, graph: DependencyGraph) -> List[str]:
        """Kahn's algorithm; ties are broken by recipe position."""
        position = {key: index for index, key in enumerate(graph.nodes)}
        in_degree = {key: 0 for key in graph.nodes}
        for dependents in graph.edges.values():
            for dependent in dependents:
                in_degree[dependent] += 1

        ready = [position[key] for key in graph.nodes if in_degree[key] == 0]
        heapq.heapify(ready)
        order = []
        while ready:
            key = graph.nodes[heapq.heappop(ready)]
            order.append(key)
            for dependent in graph.edges[key]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(ready, position[dependent])
        return order

    def _find_cycles(self, graph: DependencyGraph, remaining: List[str]) -> List[List[str]]:
        # Nodes left over by Kahn's algorithm either sit on a cycle or require
        # one. A walk that runs out of pending requirements only reached cycles
        # that were already reported.
        pending = list(remaining)
        cycles = []
        while pending:
            path = [pending[0]]
            while True:
                next_node = next((r for r in graph.requirements(path[-1]) if r in pending), None)
                if next_node is None:
                    pending.remove(path[-1])
                    break
                if next_node in path:
                    cycle = path[path.index(next_node):] + [next_node]
                    cycles.append(cycle)
                    pending = [key for key in pending if key not in cycle]
                    break
                path.append(next_node)
        return cycles

    def _conflicts(
        self, modules: Sequence[Module], metadata: Dict[str, Optional[AdapterMetadata]]
    ) -> List[ModuleConflict]:
        conflicts = []
        for i, first in enumerate(modules):
            for second in modules[i + 1:]:
                first_meta = metadata[first.key]
                second_meta = metadata[second.key]
                declared = (first_meta and any(_matches(second, c) for c in first_meta.conflicts)) or (
                    second_meta and any(_matches(first, c) for c in second_meta.conflicts)
                )
                if declared:
                    conflicts.append(ModuleConflict(first.key, second.key))
        return conflicts
