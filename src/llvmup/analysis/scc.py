from __future__ import annotations

from collections.abc import Iterator

from llvmup.analysis.graph import DependencyGraph
from llvmup.analysis.node import DependencyNode


def tarjan_scc(graph: DependencyGraph) -> list[list[DependencyNode]]:
    """Strongly connected components in reverse topological order.

    A group is emitted only after every group it links against, so walking the
    result front to back visits dependencies before their dependents. Members of
    a group keep the order in which the search reached them.
    """
    index: dict[DependencyNode, int] = {}
    lowlink: dict[DependencyNode, int] = {}
    stack: list[DependencyNode] = []
    on_stack: set[DependencyNode] = set()
    groups: list[list[DependencyNode]] = []
    counter = 0

    for root in graph.nodes():
        if root in index:
            continue
        index[root] = lowlink[root] = counter
        counter += 1
        stack.append(root)
        on_stack.add(root)
        work: list[tuple[DependencyNode, Iterator[DependencyNode]]] = [(root, graph.successors(root))]

        while work:
            node, successors = work[-1]
            descended = False
            for successor in successors:
                if successor not in index:
                    index[successor] = lowlink[successor] = counter
                    counter += 1
                    stack.append(successor)
                    on_stack.add(successor)
                    work.append((successor, graph.successors(successor)))
                    descended = True
                    break
                if successor in on_stack:
                    lowlink[node] = min(lowlink[node], index[successor])
            if descended:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[node])
            if lowlink[node] == index[node]:
                group: list[DependencyNode] = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    group.append(member)
                    if member is node:
                        break
                group.reverse()
                groups.append(group)

    return groups
