"""
collectors
==========

Build :class:`~mysqldiff.models.SchemaDescription` snapshots from DDL sources.

Supported sources:

- a live MySQL schema, via the ``mysql`` client (:mod:`mysqldiff.auth`):
  ``SHOW FULL TABLES`` then ``SHOW CREATE TABLE`` per table
- a directory of ``.sql`` files (one or more ``CREATE TABLE`` per file)
- a single ``.sql`` file holding several statements
- a JSON snapshot previously written by ``mysqldiff dump``

Design choices
--------------
- Table filtering (include/exclude patterns) is applied to table names before
  any DDL is fetched from a live server, and after parsing for file sources.
- File sources only look at statements that create a table; ``SET``,
  ``DROP``, ``INSERT`` and the like found in dump files are ignored.
- Bulk collection is lenient per table: a table whose DDL cannot be fetched
  or parsed is skipped and reported as a warning string. A statement in a
  foreign dialect is not a per-table problem and propagates
  (:class:`~mysqldiff.errors.UnsupportedDialect`).
- A source that cannot be read at all raises
  :class:`~mysqldiff.errors.SourceError`.

Public helpers
--------------
- :func:`filter_tables` (include/exclude patterns)
- "collect_*" functions and :func:`load_source`
"""

from __future__ import annotations

import datetime as dt
import fnmatch
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from .auth import ERROR_SENTINEL, MysqlTarget, run_sql
from .errors import ParseError, SourceError
from .models import SchemaDescription, TableDescription
from .parser import is_table_statement, parse_create_table, split_statements
from .snapshots import loads_schema
from .storage import read_text
from .utils import quote_ident


@dataclass(frozen=True)
class TableFilter:
    """Include/exclude patterns for table selection."""
    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    case_sensitive: bool = False

    def matches(self, name: str) -> bool:
        """Return True if *name* passes both the include and exclude patterns."""
        if self.include and not any(matches_pattern(name, p, self.case_sensitive) for p in self.include):
            return False
        return not any(matches_pattern(name, p, self.case_sensitive) for p in self.exclude)


@dataclass(frozen=True)
class Collected:
    """A collected snapshot plus what had to be skipped on the way."""
    schema: SchemaDescription
    warnings: List[str]
    origin: str


# ---- common queries ----
Q_LIST_TABLES = "SHOW FULL TABLES WHERE Table_type = 'BASE TABLE';"


def q_show_create_table(table: str) -> str:
    """SHOW CREATE TABLE query for a table."""
    return f"SHOW CREATE TABLE {quote_ident(table)};"


def parse_single_col_tsv(tsv: str) -> List[str]:
    """Parse a single-column TSV into a list of values."""
    out: List[str] = []
    for line in tsv.splitlines():
        line = line.strip()
        if not line:
            continue
        out.append(line.split("\t")[0].strip())
    return out


def parse_show_create_table(tsv: str) -> str:
    """Return the DDL column of raw ``SHOW CREATE TABLE`` output.

    With ``--raw`` the statement keeps its newlines, so everything after the
    first tab belongs to the DDL.
    """
    if "\t" not in tsv:
        return ""
    return tsv.split("\t", 1)[1].strip()


# ---- table filter helpers ----
def sql_like_to_fnmatch(pattern: str) -> str:
    """Convert SQL LIKE patterns (% and _) to fnmatch syntax (* and ?)."""
    return pattern.replace("%", "*").replace("_", "?")


def matches_pattern(name: str, pattern: str, case_sensitive: bool = False) -> bool:
    """Return True if name matches pattern (LIKE by default, regex via ``re:``)."""
    if pattern.startswith("re:"):
        flags = 0 if case_sensitive else re.IGNORECASE
        return re.search(pattern[3:], name, flags) is not None
    if not case_sensitive:
        name, pattern = name.lower(), pattern.lower()
    return fnmatch.fnmatchcase(name, sql_like_to_fnmatch(pattern))


def filter_tables(
    tables: Sequence[str],
    include: Sequence[str],
    exclude: Sequence[str],
    case_sensitive: bool = False,
) -> List[str]:
    """Filter tables using include/exclude patterns.

    Include patterns keep a table if it matches *any* include pattern.
    Exclude patterns drop a table if it matches *any* exclude pattern.
    """
    tf = TableFilter(list(include), list(exclude), case_sensitive)
    return sorted({t for t in tables if tf.matches(t)})


# ---- collection functions ----
def collect_mysql(target: MysqlTarget, table_filter: Optional[TableFilter] = None) -> Collected:
    """Describe every (filtered) base table of a live schema."""
    table_filter = table_filter or TableFilter()

    out = run_sql(target, Q_LIST_TABLES)
    if out.startswith(ERROR_SENTINEL):
        raise SourceError(f"cannot list tables on {target.describe()}: {out.strip()}")
    all_tables = parse_single_col_tsv(out)
    tables = filter_tables(all_tables, table_filter.include, table_filter.exclude, table_filter.case_sensitive)

    descs: List[TableDescription] = []
    warnings: List[str] = []
    for t in tables:
        ddl_out = run_sql(target, q_show_create_table(t))
        if ddl_out.startswith(ERROR_SENTINEL):
            warnings.append(f"skipped table {t!r}: {ddl_out.strip()}")
            continue
        ddl = parse_show_create_table(ddl_out)
        if not ddl:
            warnings.append(f"skipped table {t!r}: SHOW CREATE TABLE returned no DDL")
            continue
        try:
            descs.append(parse_create_table(ddl))
        except ParseError as exc:
            warnings.append(f"skipped table {t!r}: {exc.args[0]}")

    return Collected(SchemaDescription(tuple(descs), dt.datetime.now()), warnings, target.describe())


def _parse_statements(
    statements: Iterable[Tuple[str, str]],
    table_filter: TableFilter,
) -> Tuple[List[TableDescription], List[str]]:
    descs: List[TableDescription] = []
    warnings: List[str] = []
    for where, sql in statements:
        if not is_table_statement(sql):
            continue
        try:
            table = parse_create_table(sql)
        except ParseError as exc:
            warnings.append(f"skipped statement in {where}: {exc.args[0]}")
            continue
        if table_filter.matches(table.name):
            descs.append(table)
    return descs, warnings


def collect_ddl_file(path: Path, table_filter: Optional[TableFilter] = None) -> Collected:
    """Describe the ``CREATE TABLE`` statements of one ``.sql`` file, in file order."""
    if not path.is_file():
        raise SourceError(f"DDL file not found: {path}")
    statements = [(path.name, s) for s in split_statements(read_text(path))]
    descs, warnings = _parse_statements(statements, table_filter or TableFilter())
    return Collected(SchemaDescription(tuple(descs), dt.datetime.now()), warnings, str(path))


def collect_ddl_dir(path: Path, table_filter: Optional[TableFilter] = None) -> Collected:
    """Describe every ``*.sql`` file of a directory, files in name order."""
    if not path.is_dir():
        raise SourceError(f"DDL directory not found: {path}")
    statements: List[Tuple[str, str]] = []
    for sql_file in sorted(path.glob("*.sql")):
        statements.extend((sql_file.name, s) for s in split_statements(read_text(sql_file)))
    descs, warnings = _parse_statements(statements, table_filter or TableFilter())
    return Collected(SchemaDescription(tuple(descs), dt.datetime.now()), warnings, str(path))


def load_snapshot(path: Path, table_filter: Optional[TableFilter] = None) -> Collected:
    """Load a JSON snapshot written by ``mysqldiff dump``."""
    if not path.is_file():
        raise SourceError(f"snapshot file not found: {path}")
    schema = loads_schema(read_text(path))
    if table_filter is not None and (table_filter.include or table_filter.exclude):
        schema = SchemaDescription(tuple(t for t in schema.tables if table_filter.matches(t.name)), schema.timestamp)
    return Collected(schema, [], str(path))


def load_source(
    source: str,
    connections: Mapping[str, MysqlTarget],
    table_filter: Optional[TableFilter] = None,
) -> Collected:
    """Resolve *source* and collect a snapshot from it.

    Resolution order: a configured connection name, a directory, a ``.json``
    snapshot, any other file (parsed as SQL).
    """
    if source in connections:
        return collect_mysql(connections[source], table_filter)

    path = Path(source)
    if path.is_dir():
        return collect_ddl_dir(path, table_filter)
    if path.suffix.lower() == ".json":
        return load_snapshot(path, table_filter)
    if path.is_file():
        return collect_ddl_file(path, table_filter)

    known = ", ".join(sorted(connections)) or "(none configured)"
    raise SourceError(f"unknown source {source!r}: not a connection ({known}), directory or file")
