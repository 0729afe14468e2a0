"""Command-line entrypoints for inspecting and applying field filters."""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import orjson
from dotenv import load_dotenv

from fieldveil.config import FilterOptions, load_settings, options_from_settings
from fieldveil.errors import FieldVeilError
from fieldveil.filtering.fields import FieldFilter
from fieldveil.filtering.models import FilteredModel
from fieldveil.observability.log import configure_logging
from fieldveil.observability.metrics import MetricsRegistry
from fieldveil.schema.registry import SchemaRegistry
from fieldveil.storage.jsonl import JsonlDocumentStore

DEFAULT_SETTINGS = Path("config/settings.toml")
DEFAULT_SCHEMAS_DIR = Path("config/schemas")


def build_arg_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(prog="fieldveil", description="Role based field filtering for documents")
    parser.add_argument("--schemas", help="Directory holding <name>.schema.yaml declarations")
    sub = parser.add_subparsers(dest="command", required=True)

    paths = sub.add_parser("paths", help="Print the resolved path catalogue of a schema")
    paths.add_argument("--schema", required=True, help="Schema name")

    allowed = sub.add_parser("allowed", help="Print the paths visible to a role set")
    allowed.add_argument("--schema", required=True, help="Schema name")
    allowed.add_argument("--role", action="append", dest="roles", help="Access role (repeatable)")

    filter_cmd = sub.add_parser("filter", help="Filter documents read from a JSONL file")
    filter_cmd.add_argument("--schema", required=True, help="Schema name")
    filter_cmd.add_argument("--input", required=True, help="JSONL file with one document per line")
    filter_cmd.add_argument("--role", action="append", dest="roles", help="Access role (repeatable)")
    filter_cmd.add_argument("--where", action="append", default=[], help="Equality condition KEY=VALUE (repeatable)")
    filter_cmd.add_argument("--metrics-out", help="Write filtering counters to this JSON file")

    return parser


def _parse_conditions(pairs: List[str]) -> Dict[str, Any]:
    conditions: Dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise SystemExit(f"Invalid --where condition: {pair!r}")
        try:
            conditions[key] = orjson.loads(raw)
        except orjson.JSONDecodeError:
            conditions[key] = raw
    return conditions


def _print_json(payload: Any) -> None:
    print(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode())


def _schemas_dir(args: argparse.Namespace, settings: Dict[str, Any]) -> Path:
    if args.schemas:
        return Path(args.schemas)
    configured = settings.get("paths", {}).get("schemas_dir")
    return Path(configured) if configured else DEFAULT_SCHEMAS_DIR


def cmd_paths(field_filter: FieldFilter) -> None:
    _print_json([
        {
            "name": descriptor.name,
            "type": descriptor.type,
            "ref": descriptor.reference_target,
            "private": descriptor.is_private,
            "access": descriptor.access_roles if isinstance(descriptor.access_roles, str) else list(descriptor.access_roles),
            "depth": descriptor.depth,
        }
        for descriptor in field_filter.paths()
    ])


def cmd_allowed(field_filter: FieldFilter, roles: Optional[List[str]]) -> None:
    _print_json(sorted(field_filter.allowed_paths(roles)))


def cmd_filter(field_filter: FieldFilter, args: argparse.Namespace) -> None:
    store = JsonlDocumentStore(Path(args.input))
    model = FilteredModel(args.schema, store, field_filter)
    conditions = _parse_conditions(args.where)
    if args.roles:
        documents = model.by_access(args.roles).find(conditions)
    else:
        documents = model.find(conditions, filter=True)
    _print_json(documents)
    if args.metrics_out and field_filter.metrics is not None:
        field_filter.metrics.export(path=Path(args.metrics_out), label=args.schema)


def run(args: argparse.Namespace, settings: Dict[str, Any], options: FilterOptions) -> None:
    registry = SchemaRegistry(_schemas_dir(args, settings))
    schema = registry.get(args.schema)
    field_filter = FieldFilter(schema, registry, options, metrics=MetricsRegistry())
    if args.command == "paths":
        cmd_paths(field_filter)
    elif args.command == "allowed":
        cmd_allowed(field_filter, args.roles)
    elif args.command == "filter":
        cmd_filter(field_filter, args)


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI."""
    load_dotenv()
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    settings = load_settings(Path(os.environ.get("FIELDVEIL_SETTINGS", DEFAULT_SETTINGS)))
    configure_logging(Path(settings.get("logging", {}).get("config", "config/logging.yaml")))
    options = options_from_settings(settings)
    try:
        run(args, settings, options)
    except (FieldVeilError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
