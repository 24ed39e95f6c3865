"""
Git-backed content identifiers.

The content identifier of a component is the hash of the last commit that
touched its directory, so it is a deterministic function of committed history.

Requirements:
    pip install GitPython
"""

import logging
from pathlib import Path
from typing import Dict, Union

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from .errors import ContentLookupError

logger = logging.getLogger(__name__)


class GitContentProvider:
    """
    Content-identifier provider using GitPython.

    Instances are callables ``(root, path) -> commit hash`` suitable for
    :func:`component_graph.hasher.hash_components`. Opened repositories are kept
    for the lifetime of the instance only.
    """

    def __init__(self) -> None:
        self._repos: Dict[Path, Repo] = {}

    def _repo(self, root: Path) -> Repo:
        repo = self._repos.get(root)
        if repo is None:
            try:
                repo = Repo(str(root), search_parent_directories=True)
            except (InvalidGitRepositoryError, NoSuchPathError) as e:
                raise ContentLookupError(str(root), f"not a git repository ({e.__class__.__name__})") from e
            self._repos[root] = repo
        return repo

    def __call__(self, root: Union[str, Path], path: str) -> str:
        root = Path(root).resolve()
        repo = self._repo(root)
        target = (root / path).resolve()
        try:
            out = repo.git.log("-1", "--pretty=format:%H", "--", str(target))
        except GitCommandError as e:
            raise ContentLookupError(path, f"git exited with status {e.status}: {str(e.stderr).strip()}") from e
        commit_hash = out.strip()
        if not commit_hash:
            raise ContentLookupError(path)
        logger.debug("Last commit for %s: %s", path, commit_hash)
        return commit_hash
