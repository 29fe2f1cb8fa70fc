#!/usr/bin/env python3
"""
nodegraph CLI - Main entry point.

Usage:
    nodegraph init                          # Create nodegraph.yaml
    nodegraph build                         # Build schema from nodegraph.yaml
    nodegraph build types.graphql -o out    # Build schema from files
    nodegraph validate types.graphql        # Check type definitions only
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .. import __version__
from ..core.errors import ConfigError, SchemaValidationError
from ..core.features import Features
from ..core.schema import SchemaSnapshot, build_schema_snapshot
from .config import DEFAULT_CONFIG_PATH, NodeGraphConfig, load_config

logger = logging.getLogger(__name__)


# =============================================================================
# Helpers
# =============================================================================


def _resolve_inputs(args: argparse.Namespace) -> tuple[list[Path], Features, Optional[str]]:
    """
    Type definition files, features and output path for a build.

    Files named on the command line win over the config's typeDefs.

    Raises:
        ConfigError: If the config is invalid or nothing is left to build
    """
    config = load_config(args.config)
    if config is None:
        config = NodeGraphConfig()
        if args.config != DEFAULT_CONFIG_PATH:
            raise ConfigError(f"{args.config} not found")

    files = [Path(f) for f in args.files] if args.files else config.type_def_files()
    if not files:
        raise ConfigError(f"No type definitions given and no typeDefs in {args.config}")

    features = config.features
    if getattr(args, "subscriptions", False):
        features = features.model_copy(update={"subscriptions": True})

    output = getattr(args, "output", None) or config.output
    return files, features, output


def _build(args: argparse.Namespace) -> tuple[SchemaSnapshot, Optional[str]]:
    files, features, output = _resolve_inputs(args)
    documents = []
    for path in files:
        if not path.exists():
            raise ConfigError(f"{path} not found")
        logger.debug(f"Reading {path}")
        documents.append(path.read_text())
    return build_schema_snapshot(documents, features), output


def _report_errors(e: SchemaValidationError) -> None:
    print(f"Error: schema has {len(e.errors)} problem(s):", file=sys.stderr)
    for message in e.error_messages():
        print(f"  {message}", file=sys.stderr)


# =============================================================================
# Commands
# =============================================================================


def cmd_init(args: argparse.Namespace) -> int:
    """Create a nodegraph.yaml in the current directory."""
    project_name = args.name or Path.cwd().name
    config_path = Path(DEFAULT_CONFIG_PATH)

    if config_path.exists() and not args.force:
        print(f"Error: {config_path} already exists. Use --force to overwrite.")
        return 1

    config = NodeGraphConfig(
        project=project_name,
        type_defs=["schema/*.graphql"],
        output="schema.graphql",
    )
    config.save(config_path)
    print(f"Created {config_path}")

    Path("schema").mkdir(exist_ok=True)
    print("Created schema/")

    print(f"\nProject '{project_name}' initialized!")
    print("Next steps:")
    print("  1. Add type definitions under schema/")
    print("  2. Run 'nodegraph build'")
    return 0


def cmd_build(args: argparse.Namespace) -> int:
    """Build the augmented schema and print or write its SDL."""
    try:
        snapshot, output = _build(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except SchemaValidationError as e:
        _report_errors(e)
        return 1

    if output:
        Path(output).write_text(snapshot.sdl)
        print(f"Wrote {output} (version {snapshot.version}, {len(snapshot.types)} types)")
    else:
        sys.stdout.write(snapshot.sdl)
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Check type definitions without writing anything."""
    try:
        snapshot, _ = _build(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except SchemaValidationError as e:
        _report_errors(e)
        return 1

    print(
        f"OK: {len(snapshot.graph.entities)} entities, "
        f"{len(snapshot.types)} types, {len(snapshot.rules)} authorization rules"
    )
    return 0


# =============================================================================
# Parser
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="nodegraph",
        description="nodegraph - GraphQL schema augmentation for graph databases"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init
    init_parser = subparsers.add_parser("init", help="Create nodegraph.yaml")
    init_parser.add_argument("--name", help="Project name")
    init_parser.add_argument("--force", "-f", action="store_true", help="Overwrite existing config")

    # build
    build_parser = subparsers.add_parser("build", help="Build the augmented schema")
    build_parser.add_argument("files", nargs="*", help="Type definition files")
    build_parser.add_argument("--config", "-c", default=DEFAULT_CONFIG_PATH, help="Config file")
    build_parser.add_argument("--output", "-o", help="Write SDL here instead of stdout")
    build_parser.add_argument("--subscriptions", action="store_true", help="Generate subscription types")

    # validate
    validate_parser = subparsers.add_parser("validate", help="Check type definitions")
    validate_parser.add_argument("files", nargs="*", help="Type definition files")
    validate_parser.add_argument("--config", "-c", default=DEFAULT_CONFIG_PATH, help="Config file")

    return parser


def app(args: Optional[List[str]] = None) -> int:
    """Main CLI application."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if not parsed.command:
        parser.print_help()
        return 0

    commands = {
        "init": cmd_init,
        "build": cmd_build,
        "validate": cmd_validate,
    }

    handler = commands.get(parsed.command)
    if handler:
        return handler(parsed)

    parser.print_help()
    return 1


def main() -> None:
    """Entry point for CLI."""
    sys.exit(app())


if __name__ == "__main__":
    main()
