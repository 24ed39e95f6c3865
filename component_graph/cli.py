"""
Command line for the component graph.

Run (from the monorepo root):
  component-graph hash -p
  component-graph toposort
  component-graph deps services/api --include-roots
  component-graph rdeps libs/core
  component-graph dockerignore services/api --write

The registry is read from ``components.json`` under the root given with
``-C`` (default: current directory). Settings come from
``config/build_config.yaml`` under the same root, or from ``--config``.
"""

from __future__ import annotations

import argparse
import functools
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from colorama import Fore, Style, init

from .closure import dependencies_of, dependents_of
from .config import BuildConfig, load_config
from .dockerignore import run_dockerignore_creator
from .errors import ComponentGraphError
from .executor import CommandRegistry, annotate_component
from .hasher import hash_components
from .topo_sort import toposort_components
from .types import Component, dump_components, load_components
from .vcs import GitContentProvider

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _property_arg(value: str) -> Tuple[str, str]:
    name, sep, command = value.partition("=")
    if not sep or not name or not command:
        raise argparse.ArgumentTypeError(f"expected NAME=COMMAND, got {value!r}")
    return name, command


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="component-graph",
        description="Dependency ordering and content hashes for monorepo components",
    )
    parser.add_argument("-C", "--directory", type=Path, default=Path("."), help="Registry root (default: .)")
    parser.add_argument("--config", type=Path, default=None, help="Path to a build_config.yaml")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for info, -vv for debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_hash = sub.add_parser("hash", help="Compute commit and tree hashes for every component")
    p_hash.add_argument("-p", "--pretty-print", action="store_true", default=None)
    p_hash.add_argument("--remove-dependencies", action="store_true", default=None)
    p_hash.add_argument(
        "--property",
        dest="properties",
        action="append",
        type=_property_arg,
        default=[],
        metavar="NAME=COMMAND",
        help="Add a property from a command template (repeatable)",
    )
    p_hash.add_argument(
        "--shell-property",
        dest="shell_properties",
        action="append",
        type=_property_arg,
        default=[],
        metavar="NAME=COMMAND",
        help="Like --property, but run the command with 'sh -xc'",
    )
    p_hash.add_argument("--jobs", type=int, default=None, help="Parallel git lookups")
    p_hash.add_argument("--progress", action="store_true", default=None, help="Show a progress bar on stderr")

    p_sort = sub.add_parser("toposort", help="Print the registry in dependency-first order")
    p_sort.add_argument("-p", "--pretty-print", action="store_true", default=None)

    p_deps = sub.add_parser("deps", help="Print all transitive dependencies of the given components")
    p_deps.add_argument("ids", nargs="+")
    p_deps.add_argument("--include-roots", action="store_true")
    p_deps.add_argument("--reverse", action="store_true", help="Consumers before their dependencies")

    p_rdeps = sub.add_parser("rdeps", help="Print all transitive dependents of the given components")
    p_rdeps.add_argument("ids", nargs="+")
    p_rdeps.add_argument("--include-roots", action="store_true")

    p_ignore = sub.add_parser("dockerignore", help="Print a .dockerignore for one component")
    p_ignore.add_argument("dir")
    p_ignore.add_argument("--write", action="store_true", help="Overwrite <root>/.dockerignore")
    p_ignore.add_argument("--no-include", action="store_true", help="Don't append the existing .dockerignore")

    return parser.parse_args(list(argv))


def _configure_logging(config: BuildConfig, verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = getattr(logging, str(config.log_level).upper(), logging.WARNING)
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def build_command_registry(config: BuildConfig, args: argparse.Namespace) -> CommandRegistry:
    registry = CommandRegistry(env_prefix=config.env_prefix)
    for prop in config.properties:
        registry.add_command(prop.name, prop.command, prop.shell)
    for name, command in args.properties:
        registry.add_command(name, command, False)
    for name, command in args.shell_properties:
        registry.add_command(name, command, True)
    return registry


def _print_ids(components: List[Component]) -> None:
    for comp in components:
        print(comp.dir)


def run(args: argparse.Namespace, config: BuildConfig) -> None:
    root = args.directory
    components = load_components(root, config.registry_file)
    pretty = getattr(args, "pretty_print", None)
    pretty = config.pretty_print if pretty is None else pretty

    if args.command == "hash":
        registry = build_command_registry(config, args)
        post_process = None
        if len(registry):
            post_process = functools.partial(annotate_component, registry)
        remove = config.remove_dependencies if args.remove_dependencies is None else args.remove_dependencies
        hashed = hash_components(
            components,
            GitContentProvider(),
            root=root,
            post_process=post_process,
            remove_dependencies=remove,
            content_id_width=config.content_id_width,
            max_workers=args.jobs if args.jobs is not None else config.max_workers,
            show_progress=config.show_progress if args.progress is None else args.progress,
        )
        print(dump_components(hashed, pretty))
    elif args.command == "toposort":
        print(dump_components(toposort_components(components), pretty))
    elif args.command == "deps":
        _print_ids(
            dependencies_of(components, args.ids, include_roots=args.include_roots, order_reversed=args.reverse)
        )
    elif args.command == "rdeps":
        _print_ids(dependents_of(components, args.ids, include_roots=args.include_roots))
    elif args.command == "dockerignore":
        run_dockerignore_creator(
            components,
            root,
            args.dir,
            write_to_file=args.write,
            no_include=args.no_include,
            out=sys.stdout,
        )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    init()  # Initialize colorama
    try:
        config = load_config(args.directory, args.config)
        _configure_logging(config, args.verbose)
        run(args, config)
    except ComponentGraphError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"{Fore.RED}Error: {e}{Style.RESET_ALL}", file=sys.stderr)
        return 1
    return 0

