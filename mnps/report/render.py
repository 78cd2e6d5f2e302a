"""Markdown table rendering for the MNPS reports.

Numbers are formatted with fixed places and numeric columns are
right-aligned, so a report renders the same way on every run.
"""
from __future__ import annotations

import re
from typing import Any, Sequence

from mnps.constants import POINTS_PLACES, SCORE_PLACES

_NUMERIC = re.compile(r"^-?\d+(\.\d+)?( \*)?$")


def fmt_points(value: float) -> str:
    return f"{value:.{POINTS_PLACES}f}"


def fmt_score(value: float) -> str:
    return f"{value:.{SCORE_PLACES}f}"


def cell(value: Any) -> str:
    """Text of one table cell; pipes and line breaks would split the row."""
    if value is None:
        return "-"
    text = str(value).replace("|", "\\|")
    return " ".join(text.splitlines())


def _is_numeric_column(col: int, rows: Sequence[Sequence[str]]) -> bool:
    values = [r[col] for r in rows if col < len(r) and r[col] != "-"]
    return bool(values) and all(_NUMERIC.match(v) for v in values)


def md_table(headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> list[str]:
    """Header, alignment row and body lines of a Markdown table.

    A column whose cells are all numbers (a trailing `` *`` marker is
    allowed) is right-aligned; the rest are left-aligned.
    """
    body = [[cell(v) for v in r] for r in rows]
    marks = [
        "---:" if _is_numeric_column(i, body) else ":---" for i in range(len(headers))
    ]
    return [
        "| " + " | ".join(cell(h) for h in headers) + " |",
        "| " + " | ".join(marks) + " |",
        *("| " + " | ".join(r) + " |" for r in body),
    ]
