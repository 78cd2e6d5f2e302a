"""Output format helpers for season report contexts.

JSON output:
 - metadata values that look numeric are coerced to numbers
 - MNPS values are rounded to ``SCORE_PLACES`` and points to ``POINTS_PLACES``
 - a ``sections`` index lists which optional sections carry data
"""

from __future__ import annotations
import json
from typing import Any

from mnps.constants import POINTS_PLACES, SCORE_PLACES
from .models import SeasonContext

_SCORE_FIELDS = {"score", "total_score", "average_score"}
_POINTS_FIELDS = {"points", "total_points"}


def format_markdown(ctx: SeasonContext) -> str:
    return "\n".join(ctx.markdown_lines) + "\n"


def _coerce_number(val: Any) -> Any:
    if not isinstance(val, str):
        return val
    s = val.strip()
    if s.isdigit():
        return int(s)
    try:
        return float(s)
    except ValueError:
        return val


def _round_fields(obj: Any) -> Any:
    if isinstance(obj, list):
        return [_round_fields(v) for v in obj]
    if isinstance(obj, dict):
        out = {}
        for k, v in obj.items():
            if k in _SCORE_FIELDS and isinstance(v, float):
                out[k] = round(v, SCORE_PLACES)
            elif k in _POINTS_FIELDS and isinstance(v, float):
                out[k] = round(v, POINTS_PLACES)
            else:
                out[k] = _round_fields(v)
        return out
    return obj


def _normalize_payload(payload: dict[str, Any]) -> dict[str, Any]:
    data = _round_fields(payload)
    meta = data.get("metadata") or {}
    for k, v in list(meta.items()):
        meta[k] = _coerce_number(v)
    optional_keys = ["weeks", "playoff", "qualifier_playoff", "playoff_leaders", "problems"]
    data["sections"] = [k for k in optional_keys if data.get(k)]
    return data


def format_json(
    ctx: SeasonContext,
    schema_version: str,
    *,
    pretty: bool = False,
    normalize: bool = True,
) -> str:
    """Render context to JSON.

    Args:
        schema_version: Written into the payload.
        pretty: Indent output.
        normalize: Round numbers and coerce metadata (recommended for site generation).
    """
    payload = ctx.to_json_payload(schema_version)
    if normalize:
        payload = _normalize_payload(payload)
    if pretty:
        return json.dumps(payload, indent=2)
    return json.dumps(payload, separators=(",", ":"))
