"""
models
======

Immutable value types shared by the parser, the differencing engine and the
snapshot codec.

Sequence fields are always stored as tuples so instances are hashable and
can be compared with ``==`` after normalization.

Entities
--------
- :class:`SchemaDescription`, :class:`TableDescription`,
  :class:`ColumnDescription`, :class:`IndexDescription` (parser output)
- :class:`SchemaDiff`, :class:`TableMissingDiff`, :class:`TableDdl`,
  :class:`TableDetailDiff`, :class:`StringDiff` (engine output)
- :class:`SqlFeature` (ignorable DDL details)
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Tuple, Union

from .errors import MissingRequiredField, UnknownFeature

# A primary key has no name of its own; every primary key is keyed by this one.
PRIMARY_KEY_TYPE = "PRIMARY KEY"
PRIMARY_KEY_NAME = "__PK__"


def _freeze(obj: object, *fields: str) -> None:
    for field in fields:
        object.__setattr__(obj, field, tuple(getattr(obj, field)))


@dataclass(frozen=True)
class ColumnDescription:
    """One column definition.

    Attributes:
        name: Unquoted column name.
        type: Data type as written, e.g. ``varchar(255)`` or ``int(10) unsigned``.
        specs: Remaining tokens in source order (``NOT``, ``NULL``, ``COMMENT``, ``'x'``).
        raw_sql: The definition's original text.
    """

    name: str
    type: str
    specs: Tuple[str, ...]
    raw_sql: str

    def __post_init__(self) -> None:
        _freeze(self, "specs")


@dataclass(frozen=True)
class IndexDescription:
    """One index or constraint definition.

    Attributes:
        name: Unquoted index name, or :data:`PRIMARY_KEY_NAME` for a primary key.
        type: Upper-cased head words, e.g. ``PRIMARY KEY``, ``UNIQUE KEY``, ``KEY``.
        specs: Remaining tokens in source order (column list, ``USING``, ``COMMENT`` ...).
        raw_sql: The definition's original text.
    """

    name: str
    type: str
    specs: Tuple[str, ...]
    raw_sql: str

    def __post_init__(self) -> None:
        _freeze(self, "specs")
        if self.type == PRIMARY_KEY_TYPE and self.name != PRIMARY_KEY_NAME:
            object.__setattr__(self, "name", PRIMARY_KEY_NAME)


@dataclass(frozen=True)
class TableDescription:
    """A parsed ``CREATE TABLE`` statement."""

    name: str
    columns: Tuple[ColumnDescription, ...]
    indexes: Tuple[IndexDescription, ...]
    options: Tuple[str, ...]
    raw_sql: str

    def __post_init__(self) -> None:
        _freeze(self, "columns", "indexes", "options")


@dataclass(frozen=True)
class SchemaDescription:
    """A snapshot: every table of a schema at a point in time."""

    tables: Tuple[TableDescription, ...]
    timestamp: dt.datetime

    def __post_init__(self) -> None:
        _freeze(self, "tables")

    def table_names(self) -> Tuple[str, ...]:
        return tuple(t.name for t in self.tables)


@dataclass(frozen=True)
class TableDdl:
    """Identity and raw text of a table that exists on one side only."""

    name: str
    sql: str


@dataclass(frozen=True)
class TableMissingDiff:
    left: Optional[TableDdl]
    right: Optional[TableDdl]

    def __post_init__(self) -> None:
        if self.left is None and self.right is None:
            raise MissingRequiredField("either `left` or `right` should not be None")


@dataclass(frozen=True)
class StringDiff:
    left: Optional[str]
    right: Optional[str]

    def __post_init__(self) -> None:
        if self.left is None and self.right is None:
            raise MissingRequiredField("at least one of `left` and `right` should be present")


@dataclass(frozen=True)
class TableDetailDiff:
    """Column, index and option differences of a table present on both sides."""

    name: str
    columns: Tuple[StringDiff, ...]
    indexes: Tuple[StringDiff, ...]
    option: Optional[StringDiff]

    def __post_init__(self) -> None:
        _freeze(self, "columns", "indexes")


@dataclass(frozen=True)
class SchemaDiff:
    tables: Tuple[TableMissingDiff, ...]
    inside_tables: Tuple[TableDetailDiff, ...]
    timestamp: dt.datetime

    def __post_init__(self) -> None:
        _freeze(self, "tables", "inside_tables")

    def is_empty(self) -> bool:
        """Return True when neither missing tables nor detail diffs exist."""
        return not self.tables and not self.inside_tables


class SqlFeature(str, Enum):
    """Cosmetic DDL details that can be excluded from comparison."""

    COMMENT = "comment"
    INDEX_STORAGE_TYPE = "index_storage_type"
    AUTO_INCREMENT_ID = "auto_increment_id"
    ROW_FORMAT = "row_format"

    @classmethod
    def choices(cls) -> str:
        return ", ".join(f.value for f in cls)


def parse_features(value: Union[None, str, Iterable[Union[str, SqlFeature]]]) -> FrozenSet[SqlFeature]:
    """Turn ignore-feature input into a frozenset of :class:`SqlFeature`.

    Parameters
    ----------
    value:
        ``None``, a comma-separated string (``"comment,row_format"``), or an
        iterable of names and/or members. Names are matched case-insensitively
        and surrounding blanks are ignored.

    Returns
    -------
    frozenset[SqlFeature]

    Raises
    ------
    UnknownFeature
        If any name is not a recognized feature.

    Examples
    --------
    >>> sorted(f.value for f in parse_features("row_format, comment"))
    ['comment', 'row_format']
    """
    if value is None:
        return frozenset()
    items = value.split(",") if isinstance(value, str) else list(value)

    out = set()
    for item in items:
        if isinstance(item, SqlFeature):
            out.add(item)
            continue
        name = str(item).strip().lower()
        if not name:
            continue
        try:
            out.add(SqlFeature(name))
        except ValueError:
            raise UnknownFeature(str(item), SqlFeature.choices()) from None
    return frozenset(out)
