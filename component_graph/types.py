"""Component records and registry load/dump.

A registry is a JSON array of component objects:

  [
    {"dir": "libs/core"},
    {"dir": "services/api", "dependencies": ["libs/core"], "owner": "team-a"},
    ...
  ]

Known fields map to attributes of :class:`Component`; every other field is kept
in ``Component.extra`` in its original order so that a load/dump cycle is
lossless.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import yaml

from .errors import DecodeError, MissingComponentError

DEFAULT_REGISTRY_FILE = "components.json"

KNOWN_FIELDS = ("dir", "dependencies", "commit_sha", "commit_sha_short", "tree_sha", "tree_sha_short")


@dataclass
class Component:
    dir: str
    dependencies: List[str] = field(default_factory=list)
    commit_sha: Optional[str] = None
    commit_sha_short: Optional[str] = None
    tree_sha: Optional[str] = None
    tree_sha_short: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.dir

    def depset(self) -> set:
        return set(self.dependencies)

    def depsorted(self) -> List[str]:
        """Dependency ids in canonical (lexicographic) order."""
        return sorted(set(self.dependencies))

    def merge_extra(self, values: Dict[str, Any]) -> None:
        for key, value in values.items():
            self.extra[key] = value

    @classmethod
    def from_dict(cls, record: Any) -> "Component":
        if not isinstance(record, dict):
            raise DecodeError(f"Component record must be an object, got {type(record).__name__}")
        comp_id = record.get("dir")
        if not isinstance(comp_id, str) or not comp_id:
            raise DecodeError(f"Component record without a valid 'dir': {record!r}")
        deps = record.get("dependencies") or []
        if not isinstance(deps, list) or not all(isinstance(d, str) for d in deps):
            raise DecodeError(f"Component '{comp_id}': 'dependencies' must be a list of strings")
        return cls(
            dir=comp_id,
            dependencies=list(deps),
            commit_sha=record.get("commit_sha"),
            commit_sha_short=record.get("commit_sha_short"),
            tree_sha=record.get("tree_sha"),
            tree_sha_short=record.get("tree_sha_short"),
            extra={k: v for k, v in record.items() if k not in KNOWN_FIELDS},
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"dir": self.dir}
        if self.dependencies:
            out["dependencies"] = list(self.dependencies)
        for name in ("commit_sha", "commit_sha_short", "tree_sha", "tree_sha_short"):
            value = getattr(self, name)
            if value is not None:
                out[name] = value
        for key, value in self.extra.items():
            # Known fields win over same-named extras.
            out.setdefault(key, value)
        return out


def parse_components(data: Any) -> List[Component]:
    if not isinstance(data, list):
        raise DecodeError("Registry must be a list of component records")
    components = [Component.from_dict(item) for item in data]
    seen: set = set()
    duplicates: List[str] = []
    for comp in components:
        if comp.dir in seen:
            duplicates.append(comp.dir)
        seen.add(comp.dir)
    if duplicates:
        raise DecodeError(f"Duplicate component ids: {', '.join(sorted(set(duplicates)))}")
    return components


def registry_path(path: Union[str, Path], registry_file: str = DEFAULT_REGISTRY_FILE) -> Path:
    path = Path(path)
    return path / registry_file if path.is_dir() else path


def load_components(path: Union[str, Path], registry_file: str = DEFAULT_REGISTRY_FILE) -> List[Component]:
    """Load a registry from a file, or from ``registry_file`` inside a directory.

    ``.yaml``/``.yml`` files are read with PyYAML, everything else as JSON.
    """
    file_path = registry_path(path, registry_file)
    try:
        text = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DecodeError(f"Cannot read registry {file_path}: {e}") from e
    try:
        if file_path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise DecodeError(f"Malformed registry {file_path}: {e}") from e
    return parse_components(data)


def dump_components(components: Sequence[Component], pretty_print: bool = False) -> str:
    records = [c.to_dict() for c in components]
    if pretty_print:
        return json.dumps(records, ensure_ascii=False, indent=2)
    return json.dumps(records, ensure_ascii=False, separators=(",", ":"))


def find_component(components: Sequence[Component], comp_id: str) -> Component:
    for comp in components:
        if comp.dir == comp_id:
            return comp
    raise MissingComponentError([comp_id])
