"""
errors
======

Exceptions raised by the parser, the differencing engine and the snapshot
codec.

Library code raises these and never prints. The CLI (:mod:`mysqldiff.cli`)
is the only place that turns them into ``SystemExit`` messages.
"""

from __future__ import annotations

from typing import Optional


class SchemaDiffError(Exception):
    """Base class for every error raised by this package."""


class ParseError(SchemaDiffError, ValueError):
    """A ``CREATE TABLE`` statement could not be parsed.

    Attributes
    ----------
    sql:
        The offending statement, verbatim.
    """

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        super().__init__(message)
        self.sql = sql

    def __str__(self) -> str:
        message = super().__str__()
        if self.sql is None:
            return message
        return f"{message}\n--- offending SQL ---\n{_excerpt(self.sql)}"


class UnsupportedDialect(SchemaDiffError, ValueError):
    """The input is not shaped like a MySQL ``CREATE TABLE`` statement."""

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        super().__init__(message)
        self.sql = sql


class UnknownFeature(SchemaDiffError, ValueError):
    """An ignore-feature name outside the recognized set."""

    def __init__(self, value: str, allowed: str) -> None:
        super().__init__(f"unknown sql feature {value!r}, possible values are: {allowed}")
        self.value = value


class MissingRequiredField(SchemaDiffError, ValueError):
    """A two-sided diff entry was built with neither side present."""


class SnapshotError(SchemaDiffError, ValueError):
    """A serialized snapshot or diff is malformed."""


class SourceError(SchemaDiffError):
    """A DDL source (file, directory, live connection) cannot be read at all."""


def _excerpt(sql: str, limit: int = 400) -> str:
    sql = sql.strip()
    if len(sql) <= limit:
        return sql
    return sql[:limit] + " ..."
