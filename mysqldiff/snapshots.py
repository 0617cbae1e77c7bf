"""
snapshots
=========

JSON codec for :class:`~mysqldiff.models.SchemaDescription` and
:class:`~mysqldiff.models.SchemaDiff`.

Field names follow the persisted snapshot format:
camelCase (``rawSql``, ``insideTables``) and the
same nesting as the model classes. Timestamps are ISO-8601 strings.
"""

from __future__ import annotations

import datetime as dt
import json
from typing import Any, Dict, Optional, Tuple, Union

from .errors import SnapshotError
from .models import (
    ColumnDescription,
    IndexDescription,
    SchemaDescription,
    SchemaDiff,
    StringDiff,
    TableDdl,
    TableDescription,
    TableDetailDiff,
    TableMissingDiff,
)


def _timestamp_to_str(value: dt.datetime) -> str:
    return value.isoformat(timespec="seconds")


def _timestamp_from_str(value: Any) -> dt.datetime:
    if not isinstance(value, str):
        raise SnapshotError(f"timestamp must be an ISO-8601 string, got {value!r}")
    try:
        return dt.datetime.fromisoformat(value)
    except ValueError as exc:
        raise SnapshotError(f"invalid timestamp {value!r}") from exc


# ---- SchemaDescription ----
def _snippet_to_dict(s: Union[ColumnDescription, IndexDescription]) -> Dict[str, Any]:
    return {"name": s.name, "type": s.type, "specs": list(s.specs), "rawSql": s.raw_sql}


def table_to_dict(t: TableDescription) -> Dict[str, Any]:
    return {
        "name": t.name,
        "columns": [_snippet_to_dict(c) for c in t.columns],
        "indexes": [_snippet_to_dict(i) for i in t.indexes],
        "options": list(t.options),
        "rawSql": t.raw_sql,
    }


def schema_to_dict(schema: SchemaDescription) -> Dict[str, Any]:
    return {
        "tables": [table_to_dict(t) for t in schema.tables],
        "timestamp": _timestamp_to_str(schema.timestamp),
    }


def _tokens_from_list(value: Any, what: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise SnapshotError(f"{what} must be a list of strings, got {value!r}")
    return tuple(value)


def table_from_dict(d: Dict[str, Any]) -> TableDescription:
    return TableDescription(
        name=d["name"],
        columns=tuple(
            ColumnDescription(c["name"], c["type"], _tokens_from_list(c.get("specs"), "column specs"), c["rawSql"])
            for c in d.get("columns") or ()
        ),
        indexes=tuple(
            IndexDescription(i["name"], i["type"], _tokens_from_list(i.get("specs"), "index specs"), i["rawSql"])
            for i in d.get("indexes") or ()
        ),
        options=_tokens_from_list(d.get("options"), "table options"),
        raw_sql=d["rawSql"],
    )


def schema_from_dict(d: Dict[str, Any]) -> SchemaDescription:
    """Build a snapshot from its dict form.

    Raises
    ------
    SnapshotError
        If a required key is missing or has the wrong shape.
    """
    try:
        return SchemaDescription(
            tables=tuple(table_from_dict(t) for t in d["tables"]),
            timestamp=_timestamp_from_str(d["timestamp"]),
        )
    except (KeyError, TypeError, AttributeError) as exc:
        raise SnapshotError(f"malformed schema snapshot: {exc!r}") from exc


# ---- SchemaDiff ----
def _ddl_to_dict(ddl: Optional[TableDdl]) -> Optional[Dict[str, str]]:
    return None if ddl is None else {"name": ddl.name, "sql": ddl.sql}


def _string_diff_to_dict(sd: Optional[StringDiff]) -> Optional[Dict[str, Optional[str]]]:
    return None if sd is None else {"left": sd.left, "right": sd.right}


def diff_to_dict(schema_diff: SchemaDiff) -> Dict[str, Any]:
    return {
        "tables": [{"left": _ddl_to_dict(m.left), "right": _ddl_to_dict(m.right)} for m in schema_diff.tables],
        "insideTables": [
            {
                "name": d.name,
                "columns": [_string_diff_to_dict(c) for c in d.columns],
                "indexes": [_string_diff_to_dict(i) for i in d.indexes],
                "option": _string_diff_to_dict(d.option),
            }
            for d in schema_diff.inside_tables
        ],
        "timestamp": _timestamp_to_str(schema_diff.timestamp),
    }


def _ddl_from_dict(d: Optional[Dict[str, Any]]) -> Optional[TableDdl]:
    return None if d is None else TableDdl(d["name"], d["sql"])


def _string_diff_from_dict(d: Optional[Dict[str, Any]]) -> Optional[StringDiff]:
    return None if d is None else StringDiff(d.get("left"), d.get("right"))


def diff_from_dict(d: Dict[str, Any]) -> SchemaDiff:
    """Build a :class:`SchemaDiff` from its dict form.

    A diff entry with both sides absent is rejected by the model itself
    (:class:`~mysqldiff.errors.MissingRequiredField`).
    """
    try:
        return SchemaDiff(
            tables=tuple(TableMissingDiff(_ddl_from_dict(m.get("left")), _ddl_from_dict(m.get("right"))) for m in d["tables"]),
            inside_tables=tuple(
                TableDetailDiff(
                    name=t["name"],
                    columns=tuple(_string_diff_from_dict(c) for c in t.get("columns") or ()),
                    indexes=tuple(_string_diff_from_dict(i) for i in t.get("indexes") or ()),
                    option=_string_diff_from_dict(t.get("option")),
                )
                for t in d["insideTables"]
            ),
            timestamp=_timestamp_from_str(d["timestamp"]),
        )
    except (KeyError, TypeError, AttributeError) as exc:
        raise SnapshotError(f"malformed schema diff: {exc!r}") from exc


# ---- text ----
def dumps(obj: Union[SchemaDescription, SchemaDiff], pretty: bool = False) -> str:
    """Serialize a snapshot or a diff to JSON text."""
    if isinstance(obj, SchemaDescription):
        payload = schema_to_dict(obj)
    elif isinstance(obj, SchemaDiff):
        payload = diff_to_dict(obj)
    else:
        raise TypeError(f"cannot serialize {type(obj).__name__}")
    return json.dumps(payload, ensure_ascii=False, indent=2 if pretty else None)


def _loads(text: str) -> Dict[str, Any]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise SnapshotError("expected a JSON object at the top level")
    return payload


def loads_schema(text: str) -> SchemaDescription:
    return schema_from_dict(_loads(text))


def loads_diff(text: str) -> SchemaDiff:
    return diff_from_dict(_loads(text))
