"""
reporting
=========

Markdown report generation.

This module renders a :class:`~mysqldiff.models.SchemaDiff` as a readable
summary: which tables exist on one side only, and for every changed table
its column, index and option differences as ``diff`` blocks.

Primary API
-----------
- :func:`generate_summary_md`
- :func:`render_summary_md`

"""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Sequence

from .models import SchemaDiff, StringDiff
from .storage import write_text

SECTION_MISSING = "Missing tables"
SECTION_CHANGED = "Changed tables"


def md_anchor(title: str) -> str:
    """Create an approximate GitHub-style markdown anchor from a section title."""
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")


def _diff_block(diffs: Sequence[StringDiff]) -> List[str]:
    lines = ["```diff\n"]
    for d in diffs:
        if d.left is not None:
            lines.append(f"- {d.left}\n")
        if d.right is not None:
            lines.append(f"+ {d.right}\n")
    lines.append("```\n\n")
    return lines


def render_summary_md(schema_diff: SchemaDiff, header_lines: Optional[List[str]] = None) -> str:
    """Render *schema_diff* as Markdown.

    Parameters
    ----------
    schema_diff:
        Result of :func:`mysqldiff.diffing.diff`.
    header_lines:
        Bullet-style lines to include near the top (sources/ignores).

    Returns
    -------
    str
        Markdown text.
    """
    lines: List[str] = []
    lines.append("# MySQL Schema Diff Summary\n\n")
    lines.append(f"_Generated: {schema_diff.timestamp.strftime('%Y-%m-%d %H:%M:%S')}_\n\n")

    if header_lines:
        for h in header_lines:
            lines.append(h + "\n")
        lines.append("\n")

    lines.append("## Contents\n")
    for title in (SECTION_MISSING, SECTION_CHANGED):
        lines.append(f"- [{title}](#{md_anchor(title)})\n")
    lines.append("\n")

    lines.append(f"## {SECTION_MISSING}\n\n")
    if not schema_diff.tables:
        lines.append("- ✅ No differences\n\n")
    else:
        lines.append("| Table | Left | Right |\n")
        lines.append("|---|---|---|\n")
        for m in schema_diff.tables:
            name = (m.left or m.right).name
            lines.append(f"| `{name}` | {'✓' if m.left else '✗'} | {'✓' if m.right else '✗'} |\n")
        lines.append("\n")

    lines.append(f"## {SECTION_CHANGED}\n\n")
    if not schema_diff.inside_tables:
        lines.append("- ✅ No differences\n\n")
    for detail in schema_diff.inside_tables:
        lines.append(f"### `{detail.name}`\n\n")
        if detail.columns:
            lines.append("#### Columns\n\n")
            lines.extend(_diff_block(detail.columns))
        if detail.indexes:
            lines.append("#### Indexes\n\n")
            lines.extend(_diff_block(detail.indexes))
        if detail.option is not None:
            lines.append("#### Table options\n\n")
            lines.extend(_diff_block([detail.option]))

    return "".join(lines)


def generate_summary_md(summary_path: Path, header_lines: List[str], schema_diff: SchemaDiff) -> Path:
    """Write the Markdown summary of *schema_diff* to *summary_path*.

    Returns
    -------
    pathlib.Path
        The path to the generated summary.
    """
    write_text(summary_path, render_summary_md(schema_diff, header_lines))
    return summary_path


def header_for(left: str, right: str, ignores: Sequence[str]) -> List[str]:
    """Standard header bullets for a diff run."""
    return [
        f"- Left: `{left}`",
        f"- Right: `{right}`",
        f"- Ignored features: {', '.join(sorted(ignores)) if ignores else '(none)'}",
    ]
