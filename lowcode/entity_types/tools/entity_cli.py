"""
Entity type CLI tool.

This tool drives the registry from the command line:
- register: Register a new entity type
- show: Print a type and its declared fields
- list: Print every registered type
- check-field: Verify that a type declares a field

Usage:
    entity-types register --name Invoice --handler invoice.handler.v1 \\
        --fields '{"total": ["decimal"], "code": ["char", 8]}'
    entity-types show 1
    entity-types list
    entity-types check-field 1 total

Configuration comes from the environment (see config.py).

Invariants:
    - Registry errors print to stderr and exit with status 1
    - Output is JSON so it can be consumed by scripts
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Optional, Sequence

import json_log_formatter

from ..config import RegistryConfig
from ..errors import EntityRegistryError
from ..schema.registry import EntityTypeRegistry, create_registry

logger = logging.getLogger(__name__)


def setup_logging(config: RegistryConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Registry configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]


def _load_fields(args: argparse.Namespace) -> Any:
    if args.fields_file:
        with open(args.fields_file) as f:
            return json.load(f)
    return json.loads(args.fields)


def _emit(data: Any) -> None:
    print(json.dumps(data, indent=2))


def run(registry: EntityTypeRegistry, args: argparse.Namespace) -> int:
    """Execute one parsed command against a registry.

    Returns:
        Process exit code
    """
    try:
        if args.command == "register":
            type_id = registry.register_type(args.name, args.handler, _load_fields(args))
            _emit({"id": type_id})
        elif args.command == "show":
            _emit(registry.get_type_info(args.type_id))
        elif args.command == "list":
            _emit(registry.get_all_types_info())
        elif args.command == "check-field":
            _emit({"exists": registry.check_field_exists(args.type_id, args.field)})
    except EntityRegistryError as e:
        print(f"error [{e.code}]: {e.message}", file=sys.stderr)
        return 1
    except json.JSONDecodeError as e:
        print(f"error [INVALID_JSON]: {e}", file=sys.stderr)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Entity type registry tool")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_parser = subparsers.add_parser("register", help="Register a new entity type")
    register_parser.add_argument("--name", required=True, help="Entity type name")
    register_parser.add_argument("--handler", required=True, help="Handler identifier")
    fields_group = register_parser.add_mutually_exclusive_group(required=True)
    fields_group.add_argument("--fields", help="JSON object of field name to spec list")
    fields_group.add_argument("--fields-file", help="Path to a JSON file with the fields")

    show_parser = subparsers.add_parser("show", help="Show a type and its fields")
    show_parser.add_argument("type_id", type=int, help="Entity type id")

    subparsers.add_parser("list", help="List every registered type")

    check_parser = subparsers.add_parser("check-field", help="Check that a type declares a field")
    check_parser.add_argument("type_id", type=int, help="Entity type id")
    check_parser.add_argument("field", help="Field name")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point for the entity type tool."""
    args = build_parser().parse_args(argv)

    config = RegistryConfig.from_env()
    setup_logging(config)
    config.log_config()

    registry = create_registry(config)
    return run(registry, args)


if __name__ == "__main__":
    sys.exit(main())
