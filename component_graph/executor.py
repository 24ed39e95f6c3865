"""Templated property commands.

A property is a named command template rendered against a component's record,
e.g. ``docker build -t registry/{{ dir }}:{{ tree_sha_short }} {{ dir }}``.
Running all registered properties for a component yields ``name -> stdout``
pairs that are merged into the component's extra fields.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
import subprocess
from dataclasses import dataclass
from typing import Dict, List, Tuple

from jinja2 import Environment, StrictUndefined, Template, TemplateError

from .errors import CommandError, DuplicatePropertyNameError
from .types import KNOWN_FIELDS, Component

logger = logging.getLogger(__name__)

DEFAULT_ENV_PREFIX = "COMPONENT_"

_ENV_KEY_RE = re.compile(r"[^a-zA-Z0-9_]+")


def _build_environment() -> Environment:
    return Environment(undefined=StrictUndefined, autoescape=False, keep_trailing_newline=False)


@dataclass(frozen=True)
class PropertyCommand:
    name: str
    command: str
    shell: bool = False


def key_to_env_var(key: str, prefix: str = DEFAULT_ENV_PREFIX) -> str:
    return (prefix + _ENV_KEY_RE.sub("_", key)).upper()


def component_to_envs(component: Component, prefix: str = DEFAULT_ENV_PREFIX) -> Dict[str, str]:
    """String-valued fields of the component's record as environment variables."""
    return {
        key_to_env_var(k, prefix): v
        for k, v in component.to_dict().items()
        if isinstance(v, str)
    }


class CommandRegistry:
    """Ordered set of named command templates."""

    def __init__(self, env_prefix: str = DEFAULT_ENV_PREFIX):
        self.env_prefix = env_prefix
        self._env = _build_environment()
        self._commands: Dict[str, PropertyCommand] = {}
        self._templates: Dict[str, Template] = {}

    def __len__(self) -> int:
        return len(self._commands)

    def add_command(self, name: str, command: str, is_shell_command: bool = False) -> None:
        # Built-in record fields would shadow the property on output.
        if name in self._templates or name in KNOWN_FIELDS:
            raise DuplicatePropertyNameError(name)
        try:
            template = self._env.from_string(command)
        except TemplateError as e:
            raise CommandError(command, reason=f"invalid template: {e}") from e
        self._commands[name] = PropertyCommand(name, command, is_shell_command)
        self._templates[name] = template

    def render(self, name: str, component: Component) -> str:
        try:
            return self._templates[name].render(component.to_dict())
        except TemplateError as e:
            raise CommandError(self._commands[name].command, reason=f"cannot render template: {e}") from e

    def run_command(self, prop: PropertyCommand, component: Component) -> str:
        cmd = self.render(prop.name, component)
        if prop.shell:
            args = ["sh", "-xc", cmd]
        else:
            try:
                args = shlex.split(cmd)
            except ValueError as e:
                raise CommandError(cmd, reason=str(e)) from e
            if not args:
                raise CommandError(cmd, reason="empty command")

        env = dict(os.environ)
        env.update(component_to_envs(component, self.env_prefix))
        logger.debug("Running property %s for %s: %s", prop.name, component.dir, cmd)
        try:
            out = subprocess.run(args, env=env, stdout=subprocess.PIPE, stderr=None, check=False)
        except OSError as e:
            raise CommandError(cmd, reason=str(e)) from e
        if out.returncode != 0:
            raise CommandError(cmd, out.returncode)
        return out.stdout.decode("utf-8", errors="replace").strip()

    def run_all(self, component: Component) -> List[Tuple[str, str]]:
        return [(prop.name, self.run_command(prop, component)) for prop in self._commands.values()]


def annotate_component(registry: CommandRegistry, component: Component) -> None:
    component.merge_extra(dict(registry.run_all(component)))
