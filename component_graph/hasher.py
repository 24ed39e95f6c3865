"""Recursive content hashing of a component registry.

Each component gets a tree hash covering its own content identifier and the
tree hashes of all of its dependencies, so it changes whenever the component
or anything it transitively depends on changes.

Hash format (all integers big-endian):

  [depth u16] content-id [child data] [node kind u8 = 2]
  child data = * [offset u32] [depth u16] child tree hash [end flag u8 = 0/1]

Children are ordered by id. The encoding is a compatibility contract for
anything that caches by tree hash; do not change it.
"""

from __future__ import annotations

import binascii
import hashlib
import logging
import struct
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from tqdm import tqdm

from .errors import DecodeError
from .topo_sort import toposort_components
from .types import Component

logger = logging.getLogger(__name__)

ROOT_NODE_KIND = 2
DEFAULT_CONTENT_ID_WIDTH = 20
COMMIT_SHA_SHORT_LENGTH = 8
TREE_SHA_SHORT_LENGTH = 16

HashRecord = Dict[str, Tuple[int, bytes]]
ContentProvider = Callable[[Path, str], str]
PostProcess = Callable[[Component], None]


def decode_content_id(content_id: str, width: int = DEFAULT_CONTENT_ID_WIDTH) -> bytes:
    """Decode a hex content identifier into exactly ``width`` bytes."""
    try:
        raw = binascii.unhexlify(content_id.strip())
    except (binascii.Error, ValueError, AttributeError) as e:
        raise DecodeError(f"Malformed content identifier {content_id!r}: {e}") from e
    if len(raw) != width:
        raise DecodeError(
            f"Content identifier {content_id!r} is {len(raw)} bytes, expected {width}"
        )
    return raw


def build_hash(deps: Sequence[str], hashes: HashRecord) -> Tuple[int, bytes]:
    """Encode the child data of a node.

    Args:
        deps: dependency ids, already in canonical order
        hashes: records of every already-hashed component

    Returns:
        (max child depth or -1 for a leaf, encoded child data)
    """
    data = bytearray()
    max_depth = -1
    last = len(deps) - 1
    for i, dep in enumerate(deps):
        depth, digest = hashes[dep]
        data += struct.pack(">IH", i, depth)
        data += digest
        data.append(1 if i == last else 0)
        logger.debug("child (%s): [offset: %d] [depth: %d] %s [last node: %s]", dep, i, depth, digest.hex(), i == last)
        max_depth = max(max_depth, depth)
    return max_depth, bytes(data)


def hash_for_node(content_id: bytes, deps: Sequence[str], hashes: HashRecord) -> Tuple[int, bytes]:
    """Compute ``(depth, tree hash)`` of a node from its content and its children."""
    child_depth, data = build_hash(deps, hashes)
    depth = child_depth + 1
    hasher = hashlib.sha256()
    hasher.update(struct.pack(">H", depth))
    hasher.update(content_id)
    hasher.update(data)
    hasher.update(bytes([ROOT_NODE_KIND]))
    logger.debug("root: [depth: %d] %s [child data: %d bytes] [%d]", depth, content_id.hex(), len(data), ROOT_NODE_KIND)
    return depth, hasher.digest()


def _prefetch_content_ids(
    root: Path,
    ordered: Sequence[Component],
    provider: ContentProvider,
    max_workers: int,
) -> List[str]:
    # Lookups don't depend on other digests, only the combination step does.
    with ThreadPoolExecutor(max_workers=int(max_workers)) as ex:
        futs = [ex.submit(provider, root, comp.dir) for comp in ordered]
        # Raise for the first failing component in dependency-first order.
        return [fut.result() for fut in futs]


def hash_components(
    components: Sequence[Component],
    provider: ContentProvider,
    *,
    root: Union[str, Path] = ".",
    post_process: Optional[PostProcess] = None,
    remove_dependencies: bool = False,
    content_id_width: int = DEFAULT_CONTENT_ID_WIDTH,
    max_workers: int = 1,
    show_progress: bool = False,
) -> List[Component]:
    """Hash every component in place.

    Components are processed leaves first. For each one the content identifier
    comes from ``provider(root, comp.dir)``; the hash fields are written onto the
    component and ``post_process`` runs before the next component is hashed.

    Args:
        components: the registry
        provider: content-identifier lookup, e.g. :class:`GitContentProvider`
        root: registry root handed to the provider
        post_process: optional annotator called with each freshly hashed component
        remove_dependencies: empty ``dependencies`` on output
        content_id_width: decoded content-identifier width in bytes
        max_workers: >1 prefetches content identifiers on a thread pool
        show_progress: show a tqdm bar on stderr

    Returns:
        The same component objects, in dependency-first order.

    Raises:
        ComponentGraphError: any failure; nothing is partially returned
    """
    root = Path(root)
    ordered = toposort_components(components)

    prefetched: Optional[List[str]] = None
    if max_workers > 1 and len(ordered) > 1:
        prefetched = _prefetch_content_ids(root, ordered, provider, max_workers)

    hashes: HashRecord = {}
    pbar = None
    if show_progress:
        pbar = tqdm(total=len(ordered), desc="Hashing components", unit="component")
    try:
        for idx, comp in enumerate(ordered):
            logger.debug("Calculating hashes for %s, dependencies: %s", comp.dir, comp.dependencies)
            commit_hash = prefetched[idx] if prefetched is not None else provider(root, comp.dir)
            content_id = decode_content_id(commit_hash, content_id_width)

            depth, digest = hash_for_node(content_id, comp.depsorted(), hashes)
            hashes[comp.dir] = (depth, digest)

            tree_hex = digest.hex()
            commit_hash = commit_hash.strip()
            comp.commit_sha = commit_hash
            comp.commit_sha_short = commit_hash[:COMMIT_SHA_SHORT_LENGTH]
            comp.tree_sha = tree_hex
            comp.tree_sha_short = tree_hex[:TREE_SHA_SHORT_LENGTH]
            if remove_dependencies:
                comp.dependencies = []
            if post_process is not None:
                post_process(comp)
            if pbar is not None:
                pbar.update(1)
    finally:
        if pbar is not None:
            pbar.close()

    logger.info("Hashed %d component(s)", len(ordered))
    return list(ordered)
