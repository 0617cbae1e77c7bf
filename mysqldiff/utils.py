"""
utils
=====

Identifier helpers shared by the collectors and the DDL export.

Nothing here touches the filesystem, the ``mysql`` client or sqlparse.

Functions
---------
- :func:`safe_name`: table name -> file name component
- :func:`quote_ident`: table name -> backtick-quoted MySQL identifier
"""

from __future__ import annotations

import re

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def safe_name(value: str) -> str:
    """Turn a table name into something usable as a file name.

    Runs of characters outside ``[A-Za-z0-9._-]`` collapse to a single
    underscore and leading/trailing underscores are dropped; an empty result
    becomes ``"unnamed"``.

    Examples
    --------
    >>> safe_name("order items$2025")
    'order_items_2025'
    >>> safe_name("")
    'unnamed'
    """
    return _UNSAFE.sub("_", value).strip("_") or "unnamed"


def quote_ident(name: str) -> str:
    """Quote *name* as a MySQL identifier.

    >>> quote_ident("order`s")
    '`order``s`'
    """
    return "`" + name.replace("`", "``") + "`"
