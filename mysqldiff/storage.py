"""
storage
=======

Where snapshots and diffs are read from and written to.

This module contains:
- reading/writing normalized UTF-8 text
- writing to the console or to a file, chosen by a location string
- exporting a snapshot as one ``.sql`` file per table

Locations
---------
- ``console``: print to stdout
- anything else: a file path (parent directories are created)
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Set

from .models import SchemaDescription
from .utils import safe_name

LOCATION_CONSOLE = "console"


def read_text(path: Path) -> str:
    """Read UTF-8 text from *path*.

    Parameters
    ----------
    path:
        File path.

    Returns
    -------
    str
        File contents, or an empty string if the file does not exist.
    """
    if not path.exists():
        return ""
    return path.read_text(encoding="utf-8", errors="replace")


def write_text(path: Path, content: str) -> None:
    """Write UTF-8 text to *path* with normalized newlines.

    Parameters
    ----------
    path:
        File path to write.
    content:
        Text content.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    content = content.replace("\r\n", "\n").replace("\r", "\n")
    path.write_text(content, encoding="utf-8")


def write_output(content: str, to: str) -> str:
    """Write *content* to the console or to a file.

    Parameters
    ----------
    content:
        Text to write (typically JSON).
    to:
        ``"console"`` or a file path.

    Returns
    -------
    str
        A description of where the content went, for progress messages.
    """
    if to == LOCATION_CONSOLE:
        print(content)
        return LOCATION_CONSOLE
    path = Path(to).resolve()
    write_text(path, content if content.endswith("\n") else content + "\n")
    return str(path)


def write_ddl_dir(schema: SchemaDescription, out_dir: Path) -> List[Path]:
    """Write each table's raw DDL to ``<out_dir>/<table>.sql``.

    The directory layout is the one :func:`mysqldiff.collectors.collect_ddl_dir`
    reads back. Names that map to the same file name (``a b`` and ``a_b``,
    or ``T`` and ``t`` on a case-insensitive filesystem) get a ``_2``,
    ``_3`` ... suffix in table order.
    """
    written: List[Path] = []
    used: Set[str] = set()
    for table in schema.tables:
        stem = base = safe_name(table.name)
        n = 1
        while stem.lower() in used:
            n += 1
            stem = f"{base}_{n}"
        used.add(stem.lower())
        path = out_dir / f"{stem}.sql"
        sql = table.raw_sql.rstrip()
        write_text(path, sql + ("\n" if sql.endswith(";") else ";\n"))
        written.append(path)
    return written
