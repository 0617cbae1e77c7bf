"""
mysqldiff
=========

Describe MySQL table definitions as JSON snapshots and compute structural
differences between two snapshots.

Library entry points:

- :func:`mysqldiff.parser.parse_create_table`
- :func:`mysqldiff.diffing.diff`
- :mod:`mysqldiff.snapshots` (JSON codec)

The command-line tool lives in :mod:`mysqldiff.cli`.
"""

from .diffing import diff
from .errors import (
    MissingRequiredField,
    ParseError,
    SchemaDiffError,
    SnapshotError,
    SourceError,
    UnknownFeature,
    UnsupportedDialect,
)
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
from .parser import parse_create_table, parse_schema

__all__ = [
    "ColumnDescription",
    "IndexDescription",
    "MissingRequiredField",
    "ParseError",
    "SchemaDescription",
    "SchemaDiff",
    "SchemaDiffError",
    "SnapshotError",
    "SourceError",
    "SqlFeature",
    "StringDiff",
    "TableDdl",
    "TableDescription",
    "TableDetailDiff",
    "TableMissingDiff",
    "UnknownFeature",
    "UnsupportedDialect",
    "diff",
    "parse_create_table",
    "parse_features",
    "parse_schema",
]
