"""
Dependency graph engine for monorepo components: dependency-first ordering,
recursive content hashes and transitive dependency/dependent queries.
"""

from .closure import dependencies_of, dependents_of
from .errors import (
    ComponentGraphError,
    ContentLookupError,
    CycleError,
    DecodeError,
    MissingComponentError,
    MissingDependencyError,
)
from .hasher import hash_components
from .topo_sort import build_graph_from_components, topological_sort, toposort_components
from .types import Component, dump_components, load_components


__all__ = [
    'Component',
    'ComponentGraphError',
    'ContentLookupError',
    'CycleError',
    'DecodeError',
    'MissingComponentError',
    'MissingDependencyError',
    'build_graph_from_components',
    'dependencies_of',
    'dependents_of',
    'dump_components',
    'hash_components',
    'load_components',
    'topological_sort',
    'toposort_components',
]
