"""
diffing
=======

Structural diff of two schema snapshots.

This module contains:
- the ignore rules (one per :class:`~mysqldiff.models.SqlFeature`)
- the named-snippet diff shared by columns and indexes
- :func:`diff`, which produces a :class:`~mysqldiff.models.SchemaDiff`

Everything here is pure: inputs are immutable snapshots plus an explicit
ignore set, and nothing is cached between calls.

Ignore rules
------------
Specs and options are flat token lists, so an ignorable clause is removed by
locating its marker token and dropping the marker together with its argument
(an optional ``=`` and one value token)::

    COMMENT 'contact'        -> 2 tokens
    USING BTREE              -> 2 tokens
    AUTO_INCREMENT = 804     -> 3 tokens
    ROW_FORMAT = DYNAMIC     -> 3 tokens
    COMMENT = 'log table'    -> 3 tokens

Only the first occurrence of a marker is removed. A sequence is expected to
hold at most one such clause; a second one would still take part in the
comparison.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
from typing import Dict, FrozenSet, Iterable, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

from .models import (
    ColumnDescription,
    IndexDescription,
    SchemaDescription,
    SchemaDiff,
    SqlFeature,
    StringDiff,
    TableDdl,
    TableDescription,
    TableDetailDiff,
    TableMissingDiff,
    parse_features,
)

COLUMN = "column"
INDEX = "index"
OPTIONS = "options"

# feature -> {token sequence kind -> marker}
IGNORE_RULES: Dict[SqlFeature, Dict[str, str]] = {
    SqlFeature.COMMENT: {COLUMN: "COMMENT", INDEX: "COMMENT", OPTIONS: "COMMENT"},
    SqlFeature.INDEX_STORAGE_TYPE: {INDEX: "USING"},
    SqlFeature.AUTO_INCREMENT_ID: {OPTIONS: "AUTO_INCREMENT"},
    SqlFeature.ROW_FORMAT: {OPTIONS: "ROW_FORMAT"},
}

_missing_rules = set(SqlFeature) - set(IGNORE_RULES)
if _missing_rules:
    raise RuntimeError(f"no ignore rule for: {sorted(f.value for f in _missing_rules)}")


def strip_clause(tokens: Sequence[str], marker: str) -> Tuple[str, ...]:
    """Remove the first ``marker [=] value`` clause from *tokens*.

    Parameters
    ----------
    tokens:
        Spec or option tokens in source order.
    marker:
        Keyword opening the clause (compared case-insensitively; quoted
        tokens never match because they keep their quotes).

    Returns
    -------
    tuple[str, ...]
        *tokens* without the clause, or unchanged if the marker is absent.

    Examples
    --------
    >>> strip_clause(["ENGINE", "=", "InnoDB", "AUTO_INCREMENT", "=", "804"], "AUTO_INCREMENT")
    ('ENGINE', '=', 'InnoDB')
    >>> strip_clause(["NOT", "NULL", "COMMENT", "'id'"], "COMMENT")
    ('NOT', 'NULL')
    """
    marker = marker.upper()
    for idx, tok in enumerate(tokens):
        if tok.upper() != marker:
            continue
        end = idx + 1
        if end < len(tokens) and tokens[end] == "=":
            end += 1
        end = min(end + 1, len(tokens))
        return tuple(tokens[:idx]) + tuple(tokens[end:])
    return tuple(tokens)


def apply_ignores(tokens: Sequence[str], kind: str, ignores: Iterable[SqlFeature]) -> Tuple[str, ...]:
    """Apply every active ignore rule that targets *kind* sequences."""
    result = tuple(tokens)
    for feature in sorted(ignores, key=lambda f: f.value):
        marker = IGNORE_RULES[feature].get(kind)
        if marker is not None:
            result = strip_clause(result, marker)
    return result


Snippet = Union[ColumnDescription, IndexDescription]


class SnippetPair(NamedTuple):
    """A named snippet prepared for comparison."""

    value: Snippet  # ignore rules applied, raw_sql blanked
    original: Snippet


def _keyed(snippets: Iterable[Snippet], kind: str, ignores: FrozenSet[SqlFeature]) -> Dict[str, SnippetPair]:
    out: Dict[str, SnippetPair] = {}
    for s in snippets:
        normalized = dataclasses.replace(s, specs=apply_ignores(s.specs, kind, ignores), raw_sql="")
        out[s.name] = SnippetPair(normalized, s)
    return out


def snippet_diffs(left: Mapping[str, SnippetPair], right: Mapping[str, SnippetPair]) -> List[StringDiff]:
    """Compare two name-keyed snippet collections.

    Returns
    -------
    list[StringDiff]
        Left-only snippets (left order), then right-only snippets (right
        order), then snippets present on both sides whose normalized values
        differ (left order). Each entry carries the original ``raw_sql``.
    """
    out: List[StringDiff] = []
    for name, pair in left.items():
        if name not in right:
            out.append(StringDiff(left=pair.original.raw_sql, right=None))
    for name, pair in right.items():
        if name not in left:
            out.append(StringDiff(left=None, right=pair.original.raw_sql))
    for name, pair in left.items():
        other = right.get(name)
        if other is not None and pair.value != other.value:
            out.append(StringDiff(left=pair.original.raw_sql, right=other.original.raw_sql))
    return out


def option_diff(left: TableDescription, right: TableDescription, ignores: FrozenSet[SqlFeature]) -> Optional[StringDiff]:
    """Return a diff of the original option strings if the stripped options differ."""
    if apply_ignores(left.options, OPTIONS, ignores) == apply_ignores(right.options, OPTIONS, ignores):
        return None
    return StringDiff(left=" ".join(left.options), right=" ".join(right.options))


def table_detail_diff(
    left: TableDescription,
    right: TableDescription,
    ignores: FrozenSet[SqlFeature],
) -> Optional[TableDetailDiff]:
    """Diff two definitions of the same table; None when nothing differs."""
    columns = snippet_diffs(_keyed(left.columns, COLUMN, ignores), _keyed(right.columns, COLUMN, ignores))
    indexes = snippet_diffs(_keyed(left.indexes, INDEX, ignores), _keyed(right.indexes, INDEX, ignores))
    option = option_diff(left, right, ignores)
    if not columns and not indexes and option is None:
        return None
    return TableDetailDiff(name=left.name, columns=tuple(columns), indexes=tuple(indexes), option=option)


def _by_name(schema: SchemaDescription) -> Dict[str, TableDescription]:
    out: Dict[str, TableDescription] = {}
    for t in schema.tables:
        out.setdefault(t.name, t)
    return out


def diff(
    left: SchemaDescription,
    right: SchemaDescription,
    ignores: Union[None, str, Iterable[Union[str, SqlFeature]]] = None,
) -> SchemaDiff:
    """Compute the structural difference between two snapshots.

    Parameters
    ----------
    left, right:
        Snapshots to compare. Neither is modified.
    ignores:
        Features to normalize away before comparison: members of
        :class:`~mysqldiff.models.SqlFeature`, their names, or a
        comma-separated string. Validated before any work is done.

    Returns
    -------
    SchemaDiff
        Tables present on one side only (left-only first, each group in its
        snapshot's order) and per-table detail diffs for shared tables (left
        order), stamped with the current local time.

    Raises
    ------
    UnknownFeature
        If *ignores* names an unrecognized feature.
    """
    features = parse_features(ignores)

    left_tables = _by_name(left)
    right_tables = _by_name(right)

    missing: List[TableMissingDiff] = []
    for name, table in left_tables.items():
        if name not in right_tables:
            missing.append(TableMissingDiff(left=TableDdl(table.name, table.raw_sql), right=None))
    for name, table in right_tables.items():
        if name not in left_tables:
            missing.append(TableMissingDiff(left=None, right=TableDdl(table.name, table.raw_sql)))

    details: List[TableDetailDiff] = []
    for name, table in left_tables.items():
        other = right_tables.get(name)
        if other is None:
            continue
        detail = table_detail_diff(table, other, features)
        if detail is not None:
            details.append(detail)

    return SchemaDiff(tables=tuple(missing), inside_tables=tuple(details), timestamp=dt.datetime.now())
