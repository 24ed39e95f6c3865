from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import DecodeError
from .executor import DEFAULT_ENV_PREFIX, PropertyCommand
from .hasher import DEFAULT_CONTENT_ID_WIDTH
from .types import DEFAULT_REGISTRY_FILE

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config") / "build_config.yaml"


@dataclass
class BuildConfig:
    """Settings read from ``config/build_config.yaml`` under the registry root.

    Expected keys (all optional):
      registry_file: "components.json"
      pretty_print: false
      remove_dependencies: false
      content_id_width: 20
      max_workers: 1
      env_prefix: "COMPONENT_"
      log_level: "WARNING"
      show_progress: false
      properties:
        - name: image
          command: "echo registry/{{ dir }}:{{ tree_sha_short }}"
          shell: false
    """

    registry_file: str = DEFAULT_REGISTRY_FILE
    pretty_print: bool = False
    remove_dependencies: bool = False
    content_id_width: int = DEFAULT_CONTENT_ID_WIDTH
    max_workers: int = 1
    env_prefix: str = DEFAULT_ENV_PREFIX
    log_level: str = "WARNING"
    show_progress: bool = False
    properties: List[PropertyCommand] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BuildConfig":
        known = {f.name for f in fields(cls)}
        for key in data:
            if key not in known:
                logger.warning("Ignoring unknown config key: %s", key)
        values = {k: v for k, v in data.items() if k in known and k != "properties"}
        for key, value in values.items():
            _check_type(key, value)
        config = cls(**values)
        config.properties = [_parse_property(item) for item in data.get("properties") or []]
        return config


_BOOL_KEYS = {"pretty_print", "remove_dependencies", "show_progress"}
_POSITIVE_INT_KEYS = {"content_id_width", "max_workers"}
_STR_KEYS = {"registry_file", "env_prefix", "log_level"}


def _check_type(key: str, value: Any) -> None:
    if key in _BOOL_KEYS and not isinstance(value, bool):
        raise DecodeError(f"Config key '{key}' must be true or false, got {value!r}")
    # bool is an int subclass; reject it explicitly
    if key in _POSITIVE_INT_KEYS and (isinstance(value, bool) or not isinstance(value, int) or value < 1):
        raise DecodeError(f"Config key '{key}' must be a positive integer, got {value!r}")
    if key in _STR_KEYS and not isinstance(value, str):
        raise DecodeError(f"Config key '{key}' must be a string, got {value!r}")


def _parse_property(item: Any) -> PropertyCommand:
    if not isinstance(item, dict) or not item.get("name") or not item.get("command"):
        raise DecodeError(f"Property entries need 'name' and 'command': {item!r}")
    return PropertyCommand(str(item["name"]), str(item["command"]), bool(item.get("shell", False)))


def load_config(root: Path, config_path: Optional[Path] = None) -> BuildConfig:
    """Load the build config; a missing default config file means defaults."""
    path = config_path or (Path(root) / DEFAULT_CONFIG_PATH)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        if config_path is not None:
            raise DecodeError(f"Configuration file not found at {path}")
        return BuildConfig()
    except yaml.YAMLError as e:
        raise DecodeError(f"Malformed configuration {path}: {e}") from e

    if not isinstance(data, dict):
        raise DecodeError(f"Configuration {path} must be a mapping")
    logger.debug("Loaded config from %s", path)
    return BuildConfig.from_dict(data)
