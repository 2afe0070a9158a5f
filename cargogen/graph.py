"""Dependency graph of build targets and its bottom-up traversal."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Set

import networkx as nx

from .errors import GraphDefinitionError
from .models import GraphNode, Label, ManifestResult

logger = logging.getLogger(__name__)

NodeTransform = Callable[[GraphNode, Mapping[Label, Optional[ManifestResult]]], Optional[ManifestResult]]


@dataclass
class WalkReport:
    """Outcome of one traversal.

    ``results`` holds every visited node; a ``None`` value means the node was
    visited but is not a crate. Nodes that raised are in ``failures`` and
    nodes never visited because a dependency failed are in ``blocked``.
    """

    results: Dict[Label, Optional[ManifestResult]] = field(default_factory=dict)
    failures: Dict[Label, Exception] = field(default_factory=dict)
    blocked: List[Label] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures and not self.blocked

    @property
    def manifests(self) -> Dict[Label, ManifestResult]:
        return {label: result for label, result in self.results.items() if result is not None}


class BuildGraph:
    """Directed acyclic graph of :class:`GraphNode` keyed by label.

    Edges point from a dependency to its dependent, so a topological order
    lists every node after all of its dependencies.
    """

    def __init__(self) -> None:
        self._graph: nx.DiGraph = nx.DiGraph()

    @classmethod
    def from_nodes(cls, nodes: Iterable[GraphNode]) -> "BuildGraph":
        graph = cls()
        for node in nodes:
            graph.add_node(node)
        graph.validate()
        return graph

    def add_node(self, node: GraphNode) -> None:
        if self._graph.has_node(node.label) and "node" in self._graph.nodes[node.label]:
            raise GraphDefinitionError(f"Duplicate target {node.label}")
        self._graph.add_node(node.label, node=node)
        for dep in node.deps:
            self._graph.add_edge(dep, node.label)

    def validate(self) -> None:
        """Check that every edge ends at a declared node and that there are no cycles."""
        for label, data in self._graph.nodes(data=True):
            if "node" not in data:
                dependents = sorted(str(d) for d in self._graph.successors(label))
                raise GraphDefinitionError(
                    f"Unknown target {label} (depended on by {', '.join(dependents)})"
                )
        self.topological_order()

    def __contains__(self, label: object) -> bool:
        return self._graph.has_node(label)

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def __iter__(self) -> Iterator[GraphNode]:
        for label in self.topological_order():
            yield self.get(label)

    def get(self, label: Label) -> GraphNode:
        try:
            return self._graph.nodes[label]["node"]
        except KeyError:
            raise GraphDefinitionError(f"Unknown target {label}") from None

    def topological_order(self) -> List[Label]:
        try:
            return list(nx.lexicographical_topological_sort(self._graph, key=str))
        except nx.NetworkXUnfeasible as exc:
            raise GraphDefinitionError(f"Dependency graph has a cycle: {exc}") from exc

    def closure(self, targets: Iterable[Label]) -> Set[Label]:
        """Return ``targets`` plus everything they transitively depend on."""
        selected: Set[Label] = set()
        for target in targets:
            self.get(target)
            selected.add(target)
            selected |= nx.ancestors(self._graph, target)
        return selected

    def _generations(self, selected: Optional[Set[Label]]) -> List[List[Label]]:
        graph = self._graph if selected is None else self._graph.subgraph(selected)
        try:
            return [sorted(gen, key=str) for gen in nx.topological_generations(graph)]
        except nx.NetworkXUnfeasible as exc:
            raise GraphDefinitionError(f"Dependency graph has a cycle: {exc}") from exc

    def walk(
        self,
        transform: NodeTransform,
        targets: Optional[Iterable[Label]] = None,
        jobs: int = 1,
        keep_going: bool = False,
    ) -> WalkReport:
        """Visit nodes bottom-up, each exactly once after all its dependencies.

        Args:
            transform: Called with the node and the results of its direct
                dependencies; its return value is cached for dependents.
            targets: Restrict the walk to these targets and their
                dependencies. Defaults to the whole graph.
            jobs: Number of nodes of one topological generation that may be
                transformed concurrently.
            keep_going: Record failures and keep visiting independent nodes
                instead of raising the first error.
        """
        selected = self.closure(targets) if targets is not None else None
        report = WalkReport()
        unusable: Set[Label] = set()

        for generation in self._generations(selected):
            runnable: List[GraphNode] = []
            for label in generation:
                node = self.get(label)
                if any(dep in unusable for dep in node.deps):
                    logger.warning("Skipping %s: a dependency failed", label)
                    report.blocked.append(label)
                    unusable.add(label)
                else:
                    runnable.append(node)

            if jobs <= 1 or len(runnable) <= 1:
                for node in runnable:
                    self._visit(node, transform, report, unusable, keep_going)
                continue

            with ThreadPoolExecutor(max_workers=jobs) as pool:
                futures = {
                    pool.submit(transform, node, self._dep_results(node, report)): node
                    for node in runnable
                }
                for future in as_completed(futures):
                    node = futures[future]
                    try:
                        report.results[node.label] = future.result()
                    except Exception as exc:
                        self._record_failure(node, exc, report, unusable, keep_going)

        return report

    @staticmethod
    def _dep_results(node: GraphNode, report: WalkReport) -> Dict[Label, Optional[ManifestResult]]:
        return {dep: report.results.get(dep) for dep in node.deps}

    def _visit(
        self,
        node: GraphNode,
        transform: NodeTransform,
        report: WalkReport,
        unusable: Set[Label],
        keep_going: bool,
    ) -> None:
        try:
            report.results[node.label] = transform(node, self._dep_results(node, report))
        except Exception as exc:
            self._record_failure(node, exc, report, unusable, keep_going)

    @staticmethod
    def _record_failure(
        node: GraphNode,
        exc: Exception,
        report: WalkReport,
        unusable: Set[Label],
        keep_going: bool,
    ) -> None:
        if not keep_going:
            raise exc
        logger.error("Failed to generate %s: %s", node.label, exc)
        report.failures[node.label] = exc
        unusable.add(node.label)
