"""
Topological sorting utilities for component dependency graphs.

The graph uses the "natural" dependency direction: if A depends on B, there is
an edge A -> B (B is in graph[A]). Sorting produces a dependency-first order,
in which every component appears after all of its dependencies.
"""

import logging
from typing import Dict, List, Sequence, Set

from .errors import CycleError, MissingDependencyError
from .types import Component

logger = logging.getLogger(__name__)


def build_graph_from_components(components: Sequence[Component]) -> Dict[str, Set[str]]:
    """
    Build a dependency graph from a registry of components.

    Keys keep the registry order. Every dependency must name a component of
    the registry.

    Args:
        components: Components loaded from the registry

    Returns:
        A dependency graph (component id -> set of dependency ids)

    Raises:
        MissingDependencyError: if any dependency id is not a registry member,
            naming all of them
    """
    graph: Dict[str, Set[str]] = {}
    for component in components:
        graph[component.dir] = component.depset()

    missing = {dep for deps in graph.values() for dep in deps if dep not in graph}
    if missing:
        raise MissingDependencyError(missing)
    return graph


def detect_cycles(graph: Dict[str, Set[str]]) -> List[List[str]]:
    """
    Detect cycles in a dependency graph using Tarjan's algorithm to find
    strongly connected components.

    Edges leading outside of ``graph`` are ignored.

    Args:
        graph: A dependency graph (node -> set of dependencies)

    Returns:
        A list of lists, where each inner list contains the sorted nodes of one
        cycle. Includes self-loops (a node that depends on itself).
    """
    index_counter = [0]
    index: Dict[str, int] = {}
    lowlink: Dict[str, int] = {}
    onstack: Set[str] = set()
    stack: List[str] = []
    result: List[List[str]] = []

    def strongconnect(node: str) -> None:
        index[node] = index_counter[0]
        lowlink[node] = index_counter[0]
        index_counter[0] += 1
        stack.append(node)
        onstack.add(node)

        for successor in sorted(graph.get(node, set())):
            if successor not in graph:
                continue
            if successor not in index:
                strongconnect(successor)
                lowlink[node] = min(lowlink[node], lowlink[successor])
            elif successor in onstack:
                lowlink[node] = min(lowlink[node], index[successor])

        # Root of an SCC: pop it off the stack
        if lowlink[node] == index[node]:
            scc = []
            while True:
                successor = stack.pop()
                onstack.remove(successor)
                scc.append(successor)
                if successor == node:
                    break

            if len(scc) > 1 or node in graph.get(node, set()):
                result.append(sorted(scc))

    for node in graph:
        if node not in index:
            strongconnect(node)

    return result


def topological_sort(graph: Dict[str, Set[str]]) -> List[str]:
    """
    Perform a topological sort on a dependency graph.

    Very simple pass-based sort (not Tarjan): keep walking the remaining nodes
    in input order, emitting every node whose dependencies have all been
    emitted, until a whole pass emits nothing. Nodes emitted earlier in the
    same pass count as emitted.

    Args:
        graph: A dependency graph (node -> set of dependencies), in input order

    Returns:
        A list of nodes in topological order (dependencies first)

    Raises:
        CycleError: if no progress can be made, naming every remaining node
            together with its unresolved dependencies
    """
    placed: Set[str] = set()
    result: List[str] = []
    remaining = list(graph.items())
    passes = 0

    while remaining:
        passes += 1
        blocked = []
        for node, deps in remaining:
            if deps <= placed:
                result.append(node)
                placed.add(node)
            else:
                blocked.append((node, deps))

        if len(blocked) == len(remaining):
            unresolved = {node: sorted(deps - placed) for node, deps in blocked}
            cycles = detect_cycles({node: deps - placed for node, deps in blocked})
            logger.debug("Sort stuck after %d pass(es); %d node(s) unresolved", passes, len(unresolved))
            raise CycleError(unresolved, cycles)
        remaining = blocked

    logger.debug("Sorted %d node(s) in %d pass(es)", len(result), passes)
    return result


def toposort_components(components: Sequence[Component]) -> List[Component]:
    """Return the components in dependency-first order."""
    graph = build_graph_from_components(components)
    by_id = {c.dir: c for c in components}
    return [by_id[node] for node in topological_sort(graph)]
