"""Error types raised by the component graph engine and its collaborators.

Every error is fatal to the current operation: callers either get the whole
result or one of these exceptions, never partial output.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional


class ComponentGraphError(Exception):
    """Base class for all component graph errors."""


class CycleError(ComponentGraphError):
    """The dependency relation contains a cycle.

    Attributes:
        unresolved: remaining node id -> its still-unsatisfied dependency ids,
            in registry order.
        cycles: strongly connected components of the unresolved subgraph.
    """

    def __init__(self, unresolved: Dict[str, List[str]], cycles: Optional[List[List[str]]] = None):
        self.unresolved = dict(unresolved)
        self.cycles = [list(c) for c in (cycles or [])]
        participants = "; ".join(
            f"{node} -> [{', '.join(deps)}]" for node, deps in self.unresolved.items()
        )
        message = f"Cycle found in dependencies! participants: {participants}"
        if self.cycles:
            groups = " | ".join(", ".join(c) for c in self.cycles)
            message += f" (cycles: {groups})"
        super().__init__(message)

    @property
    def participants(self) -> List[str]:
        return list(self.unresolved)


class MissingDependencyError(ComponentGraphError):
    """A referenced component id does not exist in the registry."""

    def __init__(self, ids: Iterable[str]):
        self.ids = sorted(set(ids))
        super().__init__(f"Missing dependencies: {', '.join(self.ids)}")


class MissingComponentError(ComponentGraphError):
    """Requested root component ids were never found in the registry."""

    def __init__(self, ids: Iterable[str]):
        self.ids = sorted(set(ids))
        super().__init__(f"Components not found: {', '.join(self.ids)}")


class ContentLookupError(ComponentGraphError):
    """The VCS could not produce a content identifier for a path."""

    def __init__(self, path: str, reason: str = "no commit history"):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot get content identifier for '{path}': {reason}")


class DecodeError(ComponentGraphError):
    """A content identifier or the registry itself could not be decoded."""


class CommandError(ComponentGraphError):
    """A property command could not be rendered or exited unsuccessfully."""

    def __init__(self, command: str, returncode: Optional[int] = None, reason: str = ""):
        self.command = command
        self.returncode = returncode
        detail = reason or f"exit status {returncode}"
        super().__init__(f"Command {command!r} was not successful: {detail}")


class DuplicatePropertyNameError(ComponentGraphError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Duplicate property name: {name}")
