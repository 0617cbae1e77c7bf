#!/usr/bin/env python3
"""
cli
===

Describe MySQL schemas as JSON snapshots and compare two of them.

Commands
--------

``dump``
    Collect a snapshot from a source and write it as JSON (and optionally as
    one ``.sql`` file per table).

``diff``
    Collect two snapshots (concurrently) and write their structural
    difference as JSON, optionally with a Markdown summary.

``ping``
    Check that a configured connection is reachable.

Sources
-------

A source is resolved in this order:

- a connection name from the ``connections`` section of the config
- a directory of ``.sql`` files
- a ``.json`` snapshot written by ``dump``
- a ``.sql`` file with one or more ``CREATE TABLE`` statements

Configuration
-------------

Example ``config.yml``::

    pretty: true
    ignore: [comment, auto_increment_id]

    table_filter:
      include: ["order_%"]
      exclude: ["re:^tmp_"]
      case_sensitive: false

    connections:
      staging:
        host: 127.0.0.1
        port: 3306
        user: app
        database: shop
      prod:
        host: db.internal
        user: readonly
        database: shop

Any connection field can be supplied through the environment as
``MYSQLDIFF_<CONNECTION>_<FIELD>`` (e.g. ``MYSQLDIFF_PROD_PASSWORD``), which
takes precedence over the file.

CLI Usage
---------

Dump a live schema::

    mysqldiff --config config.yml dump staging --to out/staging.json --pretty

Compare a live schema with a saved snapshot, ignoring cosmetic details::

    mysqldiff --config config.yml diff out/staging.json prod --ignore comment,row_format

Compare two directories of DDL files and write a Markdown summary::

    mysqldiff diff ddl/left ddl/right --to out/diff.json --summary out/SUMMARY.md

"""

from __future__ import annotations

import argparse
import os
import re
import sys
import threading
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

import yaml

from .auth import MysqlTarget, connection_test, ensure_mysql_cli
from .collectors import Collected, TableFilter, load_source
from .diffing import diff
from .errors import SchemaDiffError
from .models import SqlFeature, parse_features
from .reporting import generate_summary_md, header_for
from .snapshots import dumps
from .storage import LOCATION_CONSOLE, write_ddl_dir, write_output

DEFAULT_CONFIG = "config.yml"
DEFAULT_PORT = 3306
ENV_PREFIX = "MYSQLDIFF"
TARGET_FIELDS = ("host", "port", "user", "database", "password")
REQUIRED_FIELDS = ("host", "user", "database")


# -----------------------------
# Config helpers
# -----------------------------
def load_config(path: Path) -> Dict[str, Any]:
    """Load YAML config file."""
    if not path.exists():
        raise SystemExit(f"ERROR: config not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def deep_get(d: Dict[str, Any], keys: List[str], default: Any = None) -> Any:
    """Safely get nested dict value with default."""
    cur: Any = d
    for k in keys:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


def env_var_name(connection: str, field: str) -> str:
    """Environment variable overriding *field* of *connection*."""
    conn = re.sub(r"[^A-Za-z0-9]+", "_", connection).strip("_")
    return f"{ENV_PREFIX}_{conn.upper()}_{field.upper()}"


def get_env_var(connection: str, field: str) -> Optional[str]:
    """Return the environment override for a connection field, if set."""
    return os.environ.get(env_var_name(connection, field)) or None


def build_target(cfg: Dict[str, Any], name: str) -> MysqlTarget:
    """Build a :class:`MysqlTarget` for connection *name*.

    Precedence: environment variable, then ``connections.<name>`` in config.
    """
    ccfg = deep_get(cfg, ["connections", name], {}) or {}
    values: Dict[str, Any] = {}
    for field in TARGET_FIELDS:
        env = get_env_var(name, field)
        values[field] = env if env is not None else ccfg.get(field)

    for field in REQUIRED_FIELDS:
        if not values[field]:
            raise SystemExit(
                f"ERROR: missing {name}.{field}; set connections.{name}.{field} in the config "
                f"or the environment variable {env_var_name(name, field)}"
            )

    try:
        port = int(values["port"] or DEFAULT_PORT)
    except (TypeError, ValueError):
        raise SystemExit(f"ERROR: {name}.port must be an integer, got {values['port']!r}") from None

    return MysqlTarget(
        host=str(values["host"]),
        port=port,
        user=str(values["user"]),
        database=str(values["database"]),
        password=str(values["password"]) if values["password"] else None,
        label=name,
    )


def read_connections(cfg: Dict[str, Any], sources: Optional[Iterable[str]] = None) -> Dict[str, MysqlTarget]:
    """Build the declared connections named by *sources*, or all of them.

    Sources that are not connection names (file paths) are skipped, so an
    incomplete connection only fails a command that actually uses it.
    """
    declared = deep_get(cfg, ["connections"], {}) or {}
    wanted = None if sources is None else set(sources)
    names = [n for n in declared if wanted is None or n in wanted]
    return {name: build_target(cfg, name) for name in names}


def read_table_filter(cfg: Dict[str, Any], args: argparse.Namespace) -> TableFilter:
    """Merge config table filters with CLI ``--include`` / ``--exclude``."""
    includes = list(deep_get(cfg, ["table_filter", "include"], []) or []) + list(args.include or [])
    excludes = list(deep_get(cfg, ["table_filter", "exclude"], []) or []) + list(args.exclude or [])
    case_sensitive = bool(deep_get(cfg, ["table_filter", "case_sensitive"], False))
    return TableFilter(includes, excludes, case_sensitive)


def read_ignores(cfg: Dict[str, Any], args: argparse.Namespace) -> FrozenSet[SqlFeature]:
    """Merge config ``ignore`` with CLI ``--ignore``; unknown names exit."""
    names: List[str] = []
    cfg_ignore = cfg.get("ignore") or []
    names.extend(cfg_ignore.split(",") if isinstance(cfg_ignore, str) else cfg_ignore)
    for value in getattr(args, "ignore", None) or []:
        names.extend(value.split(","))
    try:
        return parse_features(names)
    except SchemaDiffError as exc:
        raise SystemExit(f"ERROR: {exc}") from exc


def read_pretty(cfg: Dict[str, Any], args: argparse.Namespace, default: bool) -> bool:
    """CLI ``--pretty`` / ``--compact`` win over the config ``pretty`` key."""
    if getattr(args, "pretty", False):
        return True
    if getattr(args, "compact", False):
        return False
    return bool(cfg.get("pretty", default))


# -----------------------------
# Commands
# -----------------------------
def _warn(collected: Collected) -> None:
    for w in collected.warnings:
        print(f"WARNING: {collected.origin}: {w}", file=sys.stderr)


def _load(source: str, connections: Dict[str, MysqlTarget], table_filter: TableFilter) -> Collected:
    if source in connections:
        ensure_mysql_cli()
    return load_source(source, connections, table_filter)


def _load_both(
    left: str,
    right: str,
    connections: Dict[str, MysqlTarget],
    table_filter: TableFilter,
) -> Tuple[Collected, Collected]:
    """Load both sides on their own threads; the first failure is re-raised."""
    results: Dict[str, Collected] = {}
    errors: Dict[str, BaseException] = {}

    def worker(side: str, source: str) -> None:
        try:
            results[side] = _load(source, connections, table_filter)
        except BaseException as exc:  # re-raised on the main thread below
            errors[side] = exc

    threads = [
        threading.Thread(target=worker, args=("left", left), name="load-left"),
        threading.Thread(target=worker, args=("right", right), name="load-right"),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    for side in ("left", "right"):
        if side in errors:
            raise errors[side]
    return results["left"], results["right"]


def cmd_dump(cfg: Dict[str, Any], args: argparse.Namespace) -> int:
    connections = read_connections(cfg, [args.source])
    table_filter = read_table_filter(cfg, args)

    collected = _load(args.source, connections, table_filter)
    _warn(collected)
    schema = collected.schema

    where = write_output(dumps(schema, pretty=read_pretty(cfg, args, default=False)), args.to)
    noun = "description has" if len(schema.tables) == 1 else "descriptions have"
    print(f"{len(schema.tables)} table {noun} been written to \"{where}\" .", file=sys.stderr)

    if args.ddl_dir:
        files = write_ddl_dir(schema, Path(args.ddl_dir))
        print(f"{len(files)} DDL file(s) written to \"{Path(args.ddl_dir).resolve()}\" .", file=sys.stderr)
    return 0


def cmd_diff(cfg: Dict[str, Any], args: argparse.Namespace) -> int:
    # validated before anything is loaded
    ignores = read_ignores(cfg, args)
    connections = read_connections(cfg, [args.left, args.right])
    table_filter = read_table_filter(cfg, args)

    left, right = _load_both(args.left, args.right, connections, table_filter)

    for side, collected in (("Left", left), ("Right", right)):
        _warn(collected)
        print(f"{side} side descriptions have been loaded from \"{collected.origin}\" .", file=sys.stderr)

    schema_diff = diff(left.schema, right.schema, ignores)

    if args.summary:
        header = header_for(left.origin, right.origin, [f.value for f in ignores])
        path = generate_summary_md(Path(args.summary).resolve(), header, schema_diff)
        print(f"Summary: {path}", file=sys.stderr)

    if schema_diff.is_empty():
        print("(No differences.)")
        return 0

    where = write_output(dumps(schema_diff, pretty=read_pretty(cfg, args, default=True)), args.to)
    if where != LOCATION_CONSOLE:
        print(f"Differences have been written to \"{where}\" .")
    return 1 if args.fail_on_diff else 0


def cmd_ping(cfg: Dict[str, Any], args: argparse.Namespace) -> int:
    ensure_mysql_cli()
    target = build_target(cfg, args.connection)
    ok, message = connection_test(target)
    print(f"{target.describe()}: {'OK' if ok else 'FAILED'}")
    print(message)
    return 0 if ok else 1


# -----------------------------
# Entry point
# -----------------------------
def _add_filter_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--include",
        action="append",
        default=[],
        help="Include table pattern (repeatable). SQL LIKE (% _) or regex via re:... e.g. --include 'order_%%'",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Exclude table pattern (repeatable). SQL LIKE (% _) or regex via re:... e.g. --exclude 'tmp_%%'",
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="mysqldiff",
        description="Describe MySQL schemas as JSON snapshots and compute structural differences.",
    )
    ap.add_argument("--config", default=None, help=f"Path to YAML config (default: {DEFAULT_CONFIG} if present)")
    sub = ap.add_subparsers(dest="command", required=True)

    dump_p = sub.add_parser("dump", help="Dump all tables of a source as JSON descriptions")
    dump_p.add_argument("source", help="Connection name, DDL directory, .sql file or .json snapshot")
    dump_p.add_argument("--to", default=LOCATION_CONSOLE, help="'console' (default) or a file path")
    dump_p.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    dump_p.add_argument("--ddl-dir", default=None, help="Also write one <table>.sql file per table here")
    _add_filter_args(dump_p)

    diff_p = sub.add_parser("diff", help="Compute differences of two sources")
    diff_p.add_argument("left", help="Left side: connection name, DDL directory, .sql file or .json snapshot")
    diff_p.add_argument("right", help="Right side: connection name, DDL directory, .sql file or .json snapshot")
    diff_p.add_argument("--to", default=LOCATION_CONSOLE, help="'console' (default) or a file path")
    diff_p.add_argument("--compact", action="store_true", help="Write compact JSON (default: pretty)")
    diff_p.add_argument(
        "--ignore",
        action="append",
        default=[],
        help=f"Ignore sql features, comma separated (repeatable). Possible values are: {SqlFeature.choices()}",
    )
    diff_p.add_argument("--summary", default=None, help="Also write a Markdown summary to this path")
    diff_p.add_argument("--fail-on-diff", action="store_true", help="Exit with status 1 when differences exist")
    _add_filter_args(diff_p)

    ping_p = sub.add_parser("ping", help="Test a configured connection")
    ping_p.add_argument("connection", help="Connection name from the config")

    return ap


COMMANDS = {"dump": cmd_dump, "diff": cmd_diff, "ping": cmd_ping}


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI entry-point."""
    args = build_parser().parse_args(argv)

    cfg: Dict[str, Any] = {}
    if args.config:
        cfg = load_config(Path(args.config).resolve())
    elif Path(DEFAULT_CONFIG).exists():
        cfg = load_config(Path(DEFAULT_CONFIG).resolve())

    try:
        return COMMANDS[args.command](cfg, args)
    except SchemaDiffError as exc:
        raise SystemExit(f"ERROR: {exc}") from exc


if __name__ == "__main__":
    raise SystemExit(main())
