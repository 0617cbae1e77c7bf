"""
auth
====

MySQL client execution helpers.

This module is responsible for invoking the MySQL command-line client
(``mysql``) for a configured connection. Credentials never appear on the
command line: the password, when configured, is handed over through the
``MYSQL_PWD`` environment variable of the child process only.

The rest of the codebase treats MySQL access as a pure function:

- input: :class:`~mysqldiff.auth.MysqlTarget` + SQL
- output: tab-separated text (or an ``__ERROR__`` sentinel)

This keeps collection logic testable and centralized.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import Optional

ERROR_SENTINEL = "__ERROR__"


@dataclass(frozen=True)
class MysqlTarget:
    """MySQL connection configuration for the ``mysql`` client.

    Parameters
    ----------
    host:
        Server host name or address.
    port:
        Server port.
    user:
        User name.
    database:
        Schema whose tables are described.
    password:
        Optional password; ``None`` lets the client fall back to its option
        files (``~/.my.cnf``, login paths).
    label:
        Human label for logs and reporting (the connection name).
    """

    host: str
    port: int
    user: str
    database: str
    password: Optional[str] = None
    label: str = "default"

    def describe(self) -> str:
        """Return a human-readable description for logs/reports."""
        return f"connection[name='{self.label}'] {self.user}@{self.host}:{self.port}/{self.database}"


def ensure_mysql_cli() -> None:
    """Ensure the `mysql` executable exists on PATH.

    Raises
    ------
    SystemExit
        If the MySQL client is not found.
    """
    if shutil.which("mysql") is None:
        raise SystemExit(
            "ERROR: `mysql` client not found in PATH. Install the MySQL client and ensure `mysql -e` works."
        )


DEFAULT_TIMEOUT_SECONDS = 300  # 5 minutes


def run_sql(target: MysqlTarget, query: str, timeout: int | None = None) -> str:
    """Run a SQL query via the ``mysql`` client and return TSV output.

    The command is executed with:

    - ``--batch --raw`` for unescaped, tab-separated rows
    - ``--skip-column-names`` for stable parsing

    Parameters
    ----------
    target:
        The MySQL target describing the connection.
    query:
        SQL string to execute.
    timeout:
        Maximum time in seconds to wait for the query. Defaults to 300 seconds.

    Returns
    -------
    str
        TSV output as text with normalized newlines. If the client fails, a
        sentinel string starting with ``__ERROR__`` is returned containing the
        exit code and stderr. If the command times out, an ``__ERROR__``
        sentinel with ``TIMEOUT`` is returned.
    """
    if timeout is None:
        timeout = DEFAULT_TIMEOUT_SECONDS

    cmd = [
        "mysql",
        "--host",
        target.host,
        "--port",
        str(target.port),
        "--user",
        target.user,
        "--database",
        target.database,
        "--batch",
        "--raw",
        "--skip-column-names",
        "--execute",
        query,
    ]

    env = None
    if target.password:
        env = dict(os.environ, MYSQL_PWD=target.password)

    try:
        proc = subprocess.run(
            cmd, check=False, capture_output=True, text=True, timeout=timeout, env=env
        )
    except subprocess.TimeoutExpired:
        return f"{ERROR_SENTINEL}\tTIMEOUT\tQuery timed out after {timeout} seconds\n"

    if proc.returncode != 0:
        return f"{ERROR_SENTINEL}\t{proc.returncode}\t{(proc.stderr or '').strip()}\n"

    return (proc.stdout or "").replace("\r\n", "\n").replace("\r", "\n")


def connection_test(target: MysqlTarget) -> tuple[bool, str]:
    """Perform a lightweight connectivity test.

    Parameters
    ----------
    target:
        Target to test.

    Returns
    -------
    tuple[bool, str]
        ``(ok, message)`` where message is TSV output (or the error sentinel).
    """
    out = run_sql(target, "SELECT VERSION(), CURRENT_USER(), DATABASE();")
    if out.startswith(ERROR_SENTINEL):
        return False, out.strip()
    return True, out.strip()
