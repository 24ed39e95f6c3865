from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from component_graph.errors import ContentLookupError
from component_graph.types import Component


class FakeContentProvider:
    """In-memory content identifiers: sha1 of the path unless overridden."""

    def __init__(self, overrides: Optional[Dict[str, str]] = None):
        self.overrides = dict(overrides or {})
        self.missing: set = set()
        self.calls: List[str] = []

    def __call__(self, root: Path, path: str) -> str:
        self.calls.append(path)
        if path in self.missing:
            raise ContentLookupError(path)
        if path in self.overrides:
            return self.overrides[path]
        return hashlib.sha1(path.encode("utf-8")).hexdigest()


def make_registry(graph: Dict[str, List[str]]) -> List[Component]:
    return [Component(dir=comp_id, dependencies=list(deps)) for comp_id, deps in graph.items()]


@pytest.fixture
def provider() -> FakeContentProvider:
    return FakeContentProvider()


@pytest.fixture
def abc_registry() -> List[Component]:
    return make_registry({"a": [], "b": ["a"], "c": ["a", "b"]})


@pytest.fixture
def services_registry() -> List[Component]:
    return make_registry({
        "lib": [],
        "svcA": ["lib"],
        "svcB": ["lib"],
        "svcC": ["svcA"],
        "tools": [],
    })
