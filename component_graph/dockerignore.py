"""Generate a ``.dockerignore`` that limits the build context to one component.

Everything is excluded, then the component's directory and the directories of
all of its transitive dependencies are re-included. The existing
``.dockerignore`` is appended so that its rules still apply.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, TextIO, Union

from .closure import dependencies_of
from .types import Component, find_component

logger = logging.getLogger(__name__)

DOCKERIGNORE_NAME = ".dockerignore"


def render_dockerignore(components: Sequence[Component], comp_id: str, existing: Optional[str] = None) -> str:
    component = find_component(components, comp_id)
    lines: List[str] = ["**", f"!{component.dir}/**"]
    for dep in dependencies_of(components, [comp_id]):
        lines.append(f"!{dep.dir}/**")
    text = "\n".join(lines) + "\n"
    if existing:
        text += existing
    return text


def run_dockerignore_creator(
    components: Sequence[Component],
    root: Union[str, Path],
    comp_id: str,
    *,
    write_to_file: bool = False,
    no_include: bool = False,
    out: Optional[TextIO] = None,
) -> str:
    """Render the ``.dockerignore`` for ``comp_id`` and write it out.

    Writes to ``<root>/.dockerignore`` when ``write_to_file``, else to ``out``.
    The text is fully rendered before anything is written.
    """
    dockerignore_path = Path(root) / DOCKERIGNORE_NAME
    existing = None
    if not no_include and dockerignore_path.is_file():
        existing = dockerignore_path.read_text(encoding="utf-8")

    text = render_dockerignore(components, comp_id, existing)
    if write_to_file:
        dockerignore_path.write_text(text, encoding="utf-8")
        logger.info("Wrote %s", dockerignore_path)
    elif out is not None:
        out.write(text)
    return text
