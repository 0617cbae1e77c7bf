"""
parser
======

Parse one MySQL ``CREATE TABLE`` statement into a
:class:`~mysqldiff.models.TableDescription`.

The statement is tokenized with :mod:`sqlparse`'s lexer and then walked by a
small hand-written grammar::

    CREATE [TEMPORARY] TABLE [IF NOT EXISTS] [db.]name
        ( definition [, definition]* )
        [option-token]* [;]

Column specs, index specs and table options are kept as flat token lists in
source order. The differencing engine strips ignorable clauses from those
lists by position, so tokenization has to be stable: the same text always
yields the same tokens.

Primary API
-----------
- :func:`parse_create_table`
- :func:`split_statements`
- :func:`check_dialect`
"""

from __future__ import annotations

import datetime as dt
import re
from typing import Iterable, List, NamedTuple, Optional, Tuple

import sqlparse
from sqlparse import tokens as T
from sqlparse.exceptions import SQLParseError
from sqlparse.lexer import tokenize

from .errors import ParseError, UnsupportedDialect
from .models import (
    PRIMARY_KEY_NAME,
    PRIMARY_KEY_TYPE,
    ColumnDescription,
    IndexDescription,
    SchemaDescription,
    TableDescription,
)

_LEADING_COMMENTS = r"\A(?:\s|--[^\n]*(?:\n|\Z)|#[^\n]*(?:\n|\Z)|/\*(?!!).*?\*/)*"
_CREATE_TABLE_RE = re.compile(
    _LEADING_COMMENTS + r"CREATE\s+(?:TEMPORARY\s+)?TABLE\b(?:\s+IF\s+NOT\s+EXISTS\b)?",
    re.IGNORECASE | re.DOTALL,
)
# any dialect's CREATE ... TABLE (CREATE OR REPLACE TABLE, CREATE UNLOGGED TABLE, ...)
_ANY_CREATE_TABLE_RE = re.compile(_LEADING_COMMENTS + r"CREATE\b[^(;]*?\bTABLE\b", re.IGNORECASE | re.DOTALL)
_LEADING_COMMENTS_RE = re.compile(_LEADING_COMMENTS, re.DOTALL)

# Words that open an index/constraint definition instead of a column.
_INDEX_HEADS = {"CONSTRAINT", "PRIMARY", "UNIQUE", "KEY", "INDEX", "FULLTEXT", "SPATIAL", "FOREIGN", "CHECK"}
_CONSTRAINT_KINDS = {"PRIMARY", "UNIQUE", "FOREIGN", "CHECK"}
_KEY_WORDS = {"KEY", "INDEX"}

# Data types spelled with two words.
_TWO_WORD_TYPES = {
    "DOUBLE": {"PRECISION"},
    "LONG": {"VARCHAR", "VARBINARY"},
    "NATIONAL": {"CHAR", "VARCHAR", "CHARACTER"},
    "CHARACTER": {"VARYING"},
}
_TYPE_MODIFIERS = {"UNSIGNED", "SIGNED", "ZEROFILL"}


class _Token(NamedTuple):
    value: str
    start: int
    end: int
    quoted: bool  # string literal, quoted identifier or versioned comment

    def word(self) -> Optional[str]:
        """Upper-cased value for bare words; None for quoted tokens."""
        return None if self.quoted else self.value.upper()


def check_dialect(sql: str) -> None:
    """Reject text that is not shaped like a MySQL ``CREATE TABLE``.

    Raises
    ------
    UnsupportedDialect
        If the statement (after leading comments) does not start with
        ``CREATE [TEMPORARY] TABLE`` or names its table with a T-SQL
        ``[bracket]`` identifier.
    """
    m = _CREATE_TABLE_RE.match(sql)
    if m is None or sql[m.end():].lstrip().startswith("["):
        head = sql.strip().splitlines()[0] if sql.strip() else ""
        raise UnsupportedDialect(f"only MySQL CREATE TABLE statements are supported, got: {head[:80]!r}", sql)


def _tokens(sql: str, offset: int = 0) -> List[_Token]:
    """Tokenize ``sql[offset:]``; token offsets stay relative to *sql*."""
    out: List[_Token] = []
    pos = offset
    skip_until = -1
    try:
        stream = list(tokenize(sql[offset:]))
    except SQLParseError as exc:
        raise ParseError(f"cannot tokenize statement: {exc}", sql) from exc

    for ttype, value in stream:
        start, pos = pos, pos + len(value)
        if start < skip_until or ttype in T.Whitespace:
            continue
        if ttype in T.Comment:
            if value.startswith("/*!"):
                out.append(_Token(value, start, pos, True))
            continue
        if ttype in T.String or (ttype in T.Name and value[:1] in "`\""):
            out.append(_Token(value, start, pos, True))
            continue
        if value.startswith("#"):
            # MySQL also reads "#note" (no space) as a comment up to the end of the line
            newline = sql.find("\n", start)
            skip_until = len(sql) if newline < 0 else newline
            continue
        # the lexer fuses some keyword pairs ("NOT NULL", "PRIMARY KEY")
        for m in re.finditer(r"\S+", value):
            out.append(_Token(m.group(0), start + m.start(), start + m.end(), False))
    return out


def unquote(identifier: str) -> str:
    """Strip MySQL identifier quoting.

    >>> unquote("`order``s`")
    'order`s'
    >>> unquote("plain")
    'plain'
    """
    for q in ("`", '"'):
        if len(identifier) >= 2 and identifier[0] == q and identifier[-1] == q:
            return identifier[1:-1].replace(q * 2, q)
    return identifier


class _Cursor:
    """Sequential reader over the statement tokens."""

    def __init__(self, tokens: List[_Token], sql: str) -> None:
        self.tokens = tokens
        self.sql = sql
        self.pos = 0

    def peek(self) -> Optional[_Token]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def next(self, what: str) -> _Token:
        tok = self.peek()
        if tok is None:
            raise ParseError(f"unexpected end of statement, expected {what}", self.sql)
        self.pos += 1
        return tok

    def accept(self, *words: str) -> Optional[_Token]:
        tok = self.peek()
        if tok is not None and tok.word() in words:
            self.pos += 1
            return tok
        return None

    def expect(self, word: str) -> _Token:
        tok = self.next(word)
        if tok.word() != word:
            raise ParseError(f"expected {word!r}, got {tok.value!r}", self.sql)
        return tok


def _matching_paren(tokens: List[_Token], open_idx: int, sql: str) -> int:
    depth = 0
    for i in range(open_idx, len(tokens)):
        if tokens[i].quoted:
            continue
        if tokens[i].value == "(":
            depth += 1
        elif tokens[i].value == ")":
            depth -= 1
            if depth == 0:
                return i
    raise ParseError("unbalanced parentheses", sql)


def _split_definitions(cur: _Cursor) -> List[List[_Token]]:
    """Read ``( ... )`` and return its comma-separated definitions."""
    opening = cur.next("'('")
    if opening.quoted or opening.value != "(":
        raise ParseError(
            f"expected '(' with column definitions, got {opening.value!r} "
            "(CREATE TABLE ... LIKE / AS SELECT is not supported)",
            cur.sql,
        )
    close = _matching_paren(cur.tokens, cur.pos - 1, cur.sql)

    definitions: List[List[_Token]] = []
    current: List[_Token] = []
    depth = 0
    for tok in cur.tokens[cur.pos:close]:
        if not tok.quoted and tok.value == "(":
            depth += 1
        elif not tok.quoted and tok.value == ")":
            depth -= 1
        elif not tok.quoted and tok.value == "," and depth == 0:
            if not current:
                raise ParseError("empty definition in table body", cur.sql)
            definitions.append(current)
            current = []
            continue
        current.append(tok)
    if current:
        definitions.append(current)
    elif definitions:
        raise ParseError("trailing comma in table body", cur.sql)

    cur.pos = close + 1
    return definitions


def _raw(sql: str, defn: List[_Token]) -> str:
    return sql[defn[0].start:defn[-1].end]


def _parse_column(defn: List[_Token], sql: str) -> ColumnDescription:
    name = unquote(defn[0].value)
    if len(defn) < 2:
        raise ParseError(f"column {name!r} has no data type", sql)

    words = [defn[1].value]
    i = 2
    follow = _TWO_WORD_TYPES.get(defn[1].value.upper())
    if follow and i < len(defn) and defn[i].word() in follow:
        words.append(defn[i].value)
        i += 1

    data_type = " ".join(words)
    if i < len(defn) and not defn[i].quoted and defn[i].value == "(":
        close = _matching_paren(defn, i, sql)
        data_type += "(" + "".join(t.value for t in defn[i + 1:close]) + ")"
        i = close + 1

    while i < len(defn) and defn[i].word() in _TYPE_MODIFIERS:
        data_type += " " + defn[i].value
        i += 1

    return ColumnDescription(
        name=name,
        type=data_type,
        specs=tuple(t.value for t in defn[i:]),
        raw_sql=_raw(sql, defn),
    )


def _parse_index(defn: List[_Token], sql: str) -> IndexDescription:
    i = 0
    symbol: Optional[str] = None
    if defn[0].word() == "CONSTRAINT":
        i = 1
        if i < len(defn) and defn[i].word() not in _CONSTRAINT_KINDS:
            symbol = unquote(defn[i].value)
            i += 1
    if i >= len(defn):
        raise ParseError("constraint without a definition", sql)

    head = defn[i].word()
    type_words = [head]
    i += 1

    def take(*words: str, required: bool = False) -> None:
        nonlocal i
        if i < len(defn) and defn[i].word() in words:
            type_words.append(defn[i].word())
            i += 1
        elif required:
            raise ParseError(f"expected {' or '.join(words)} after {head}", sql)

    if head == "PRIMARY" or head == "FOREIGN":
        take("KEY", required=True)
    elif head in ("UNIQUE", "FULLTEXT", "SPATIAL"):
        take(*_KEY_WORDS)
    elif head not in _KEY_WORDS and head != "CHECK":
        raise ParseError(f"unsupported index definition starting with {defn[i - 1].value!r}", sql)

    index_name: Optional[str] = None
    if head not in ("PRIMARY", "CHECK") and i < len(defn):
        tok = defn[i]
        if tok.quoted or (tok.value != "(" and tok.word() != "USING"):
            index_name = unquote(tok.value)
            i += 1

    index_type = " ".join(type_words)
    if index_type == PRIMARY_KEY_TYPE:
        name = PRIMARY_KEY_NAME
    elif head in ("FOREIGN", "CHECK"):
        name = symbol or index_name
    else:
        name = index_name or symbol
    if not name:
        raise ParseError(f"{index_type} definition has no name: {_raw(sql, defn)!r}", sql)

    return IndexDescription(
        name=name,
        type=index_type,
        specs=tuple(t.value for t in defn[i:]),
        raw_sql=_raw(sql, defn),
    )


def _read_table_name(cur: _Cursor) -> str:
    tok = cur.next("table name")
    parts = [tok]
    while cur.peek() is not None and cur.peek().value == "." and not cur.peek().quoted:
        cur.pos += 1
        parts.append(cur.next("table name"))
    name = unquote(parts[-1].value)
    if not name or (not parts[-1].quoted and parts[-1].value == "("):
        raise ParseError("missing table name", cur.sql)
    return name


def _read_options(cur: _Cursor) -> Tuple[str, ...]:
    rest = cur.tokens[cur.pos:]
    for idx, tok in enumerate(rest):
        if not tok.quoted and tok.value == ";":
            if rest[idx + 1:]:
                raise ParseError("expected a single statement, found more after ';'", cur.sql)
            rest = rest[:idx]
            break
    return tuple(t.value for t in rest)


def parse_create_table(sql: str) -> TableDescription:
    """Parse a MySQL ``CREATE TABLE`` statement.

    Parameters
    ----------
    sql:
        A single statement, typically the second column of
        ``SHOW CREATE TABLE``. A trailing ``;`` is allowed.

    Returns
    -------
    TableDescription
        Columns and indexes in source order, flat option tokens, and the
        input kept verbatim as ``raw_sql``.

    Raises
    ------
    ParseError
        Empty input, missing body, unbalanced parentheses, no columns, more
        than one statement, or an unnamed non-primary index.
    UnsupportedDialect
        The text is not a MySQL ``CREATE TABLE`` statement.

    Examples
    --------
    >>> t = parse_create_table("CREATE TABLE t (id INT NOT NULL, PRIMARY KEY (id)) ENGINE=InnoDB")
    >>> t.columns[0].type, t.columns[0].specs
    ('INT', ('NOT', 'NULL'))
    >>> t.indexes[0].name, t.options
    ('__PK__', ('ENGINE', '=', 'InnoDB'))
    """
    if sql is None or not sql.strip():
        raise ParseError("empty DDL statement", sql)
    check_dialect(sql)

    # lexing starts after leading comments so a quote inside one cannot open a string
    cur = _Cursor(_tokens(sql, _LEADING_COMMENTS_RE.match(sql).end()), sql)
    cur.expect("CREATE")
    cur.accept("TEMPORARY")
    cur.expect("TABLE")
    if cur.accept("IF"):
        cur.expect("NOT")
        cur.expect("EXISTS")
    name = _read_table_name(cur)

    columns: List[ColumnDescription] = []
    indexes: List[IndexDescription] = []
    for defn in _split_definitions(cur):
        if defn[0].word() in _INDEX_HEADS:
            indexes.append(_parse_index(defn, sql))
        else:
            columns.append(_parse_column(defn, sql))
    if not columns:
        raise ParseError(f"table {name!r} has no column definitions", sql)

    return TableDescription(
        name=name,
        columns=tuple(columns),
        indexes=tuple(indexes),
        options=_read_options(cur),
        raw_sql=sql,
    )


def split_statements(text: str) -> List[str]:
    """Split a multi-statement SQL text, dropping blank fragments."""
    return [s.strip() for s in sqlparse.split(text) if s.strip()]


def is_table_statement(sql: str) -> bool:
    """Return True if *sql* creates a table, in MySQL or any other dialect.

    Dump files mix ``CREATE TABLE`` with ``SET``, ``DROP TABLE`` and
    ``INSERT`` statements; only the statements this returns True for are
    worth handing to :func:`parse_create_table`.
    """
    return _ANY_CREATE_TABLE_RE.match(sql) is not None


def parse_schema(statements: Iterable[str], timestamp: Optional[dt.datetime] = None) -> SchemaDescription:
    """Parse several ``CREATE TABLE`` statements into one snapshot."""
    tables = tuple(parse_create_table(s) for s in statements)
    return SchemaDescription(tables=tables, timestamp=timestamp or dt.datetime.now())
