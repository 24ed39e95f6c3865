"""Transitive closure queries over a component registry.

``dependencies_of`` answers "what does this set of components need?", and
``dependents_of`` answers "what is affected when this set changes?". Both scan
the dependency-first order once, so each component is visited at most once.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence, Set

from .errors import MissingComponentError, MissingDependencyError
from .topo_sort import toposort_components
from .types import Component

logger = logging.getLogger(__name__)


def dependencies_of(
    components: Sequence[Component],
    roots: Iterable[str],
    *,
    include_roots: bool = False,
    order_reversed: bool = False,
) -> List[Component]:
    """All components transitively required by ``roots``.

    Args:
        components: the registry
        roots: ids to start from
        include_roots: also return the roots themselves
        order_reversed: return consumers before their dependencies instead of
            the default dependency-first order

    Raises:
        MissingDependencyError: naming every requested or required id that is
            not in the registry
    """
    roots = set(roots)
    needed: Set[str] = set(roots)
    result: List[Component] = []

    for comp in reversed(toposort_components(components)):
        if not needed:
            break
        if comp.dir not in needed:
            continue
        needed.discard(comp.dir)
        needed.update(comp.dependencies)
        if include_roots or comp.dir not in roots:
            result.append(comp)

    if needed:
        raise MissingDependencyError(needed)

    logger.info("Dependencies of %s: %d component(s)", sorted(roots), len(result))
    if not order_reversed:
        result.reverse()
    return result


def dependents_of(
    components: Sequence[Component],
    roots: Iterable[str],
    *,
    include_roots: bool = False,
) -> List[Component]:
    """All components that transitively depend on ``roots``, dependency-first.

    A root that itself depends on another root is still a root: it is returned
    only when ``include_roots`` is set.

    Raises:
        MissingComponentError: naming every root that is not in the registry
    """
    roots = set(roots)
    seen: Set[str] = set(roots)
    found: Set[str] = set()
    result: List[Component] = []

    for comp in toposort_components(components):
        is_root = comp.dir in roots
        if is_root:
            found.add(comp.dir)
            if include_roots:
                result.append(comp)
            continue
        if seen.intersection(comp.dependencies):
            seen.add(comp.dir)
            result.append(comp)

    missing = roots - found
    if missing:
        raise MissingComponentError(missing)

    logger.info("Dependents of %s: %d component(s)", sorted(roots), len(result))
    return result
