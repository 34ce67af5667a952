from __future__ import annotations

from collections.abc import Iterator

from llvmup.analysis.node import DependencyNode


class DependencyGraph:
    """Directed graph over dependency nodes; iteration follows insertion order."""

    def __init__(self) -> None:
        self._nodes: dict[DependencyNode, DependencyNode] = {}
        self._successors: dict[DependencyNode, dict[DependencyNode, None]] = {}

    def add_node(self, node: DependencyNode) -> DependencyNode:
        existing = self._nodes.get(node)
        if existing is not None:
            return existing
        self._nodes[node] = node
        self._successors[node] = {}
        return node

    def add_edge(self, source: DependencyNode, target: DependencyNode) -> None:
        source = self.add_node(source)
        target = self.add_node(target)
        self._successors[source][target] = None

    def __contains__(self, node: object) -> bool:
        return node in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def nodes(self) -> Iterator[DependencyNode]:
        return iter(self._nodes)

    def successors(self, node: DependencyNode) -> Iterator[DependencyNode]:
        return iter(self._successors[node])

    def has_edge(self, source: DependencyNode, target: DependencyNode) -> bool:
        return target in self._successors.get(source, {})

    def edges(self) -> Iterator[tuple[DependencyNode, DependencyNode]]:
        for source, targets in self._successors.items():
            for target in targets:
                yield source, target

    def node_count(self) -> int:
        return len(self._nodes)

    def edge_count(self) -> int:
        return sum(len(targets) for targets in self._successors.values())

    def find(self, name: str) -> list[DependencyNode]:
        return [node for node in self._nodes if node.name == name]

    def to_dict(self) -> dict:
        return {
            "nodes": [node.to_dict() for node in self._nodes],
            "edges": [{"src": source.name, "dst": target.name} for source, target in self.edges()],
        }
