"""Weekly score classification.

Each week is classified on its own: records are ranked by points (stable, so
ties keep feed order), the top ``K`` teams get the flat bonus, and every team
gets ``points * multiplier``.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from mnps.constants import (
    LEAGUE_VARIANTS,
    MULTIPLIER_CHANGE_SEASON,
    MULTIPLIER_CURRENT,
    MULTIPLIER_LEGACY,
    TOP_BONUS,
)
from mnps.errors import InvalidInput, MalformedRecord

from .models import RawMatchupRecord, WeekClassification, _coerce_int, check_week


def multiplier_for_season(season: int | str) -> float:
    year = _coerce_int(season)
    if year is None:
        raise InvalidInput(f"season must be a year, got {season!r}")
    return MULTIPLIER_CURRENT if year >= MULTIPLIER_CHANGE_SEASON else MULTIPLIER_LEGACY


def top_cutoff_for(variant: str) -> int:
    try:
        return LEAGUE_VARIANTS[str(variant).lower()]
    except KeyError:
        raise InvalidInput(
            f"unknown league variant {variant!r}; expected one of {sorted(LEAGUE_VARIANTS)}"
        ) from None


def derived_score(points: float, multiplier: float, is_top: bool) -> float:
    base = points * multiplier
    return TOP_BONUS + base if is_top else base


def _normalize_records(
    week: int,
    records: Iterable[RawMatchupRecord | Mapping[str, Any]],
    problems: list[MalformedRecord] | None,
) -> list[RawMatchupRecord]:
    out: list[RawMatchupRecord] = []
    for idx, rec in enumerate(records or []):
        if isinstance(rec, RawMatchupRecord):
            out.append(rec)
            continue
        try:
            out.append(RawMatchupRecord.from_api(rec, week=week, index=idx))
        except MalformedRecord as exc:
            if problems is not None:
                problems.append(exc)
    return out


def classify_week(
    week: int,
    records: Iterable[RawMatchupRecord | Mapping[str, Any]],
    multiplier: float,
    top_cutoff: int,
    problems: list[MalformedRecord] | None = None,
) -> list[WeekClassification]:
    """Classify one week's matchup records.

    Records may be ``RawMatchupRecord`` instances or raw Sleeper rows. Rows
    without a roster id are dropped before ranking (so they never take a top
    slot) and reported through ``problems`` when a list is supplied.

    Returns one entry per valid record, in feed order. An empty week yields an
    empty list.
    """
    wk = check_week(week)
    if isinstance(top_cutoff, bool) or not isinstance(top_cutoff, int) or top_cutoff < 1:
        raise InvalidInput(f"top_cutoff must be a positive integer, got {top_cutoff!r}")
    if multiplier < 0:
        raise InvalidInput(f"multiplier must be non-negative, got {multiplier!r}")

    valid = _normalize_records(wk, records, problems)
    if not valid:
        return []

    # sorted() is stable: equal points keep feed order
    ranked = sorted(range(len(valid)), key=lambda i: valid[i].normalized_points, reverse=True)
    top_idx = set(ranked[: min(top_cutoff, len(valid))])

    return [
        WeekClassification(
            week=wk,
            roster_id=rec.roster_id,
            points=rec.normalized_points,
            score=derived_score(rec.normalized_points, multiplier, i in top_idx),
            is_top=i in top_idx,
        )
        for i, rec in enumerate(valid)
    ]


def classify_season(
    weeks: Mapping[int, Iterable[RawMatchupRecord | Mapping[str, Any]]],
    multiplier: float,
    top_cutoff: int,
    problems: list[MalformedRecord] | None = None,
) -> dict[int, list[WeekClassification]]:
    """Classify every week in ``weeks``; empty weeks are skipped entirely."""
    out: dict[int, list[WeekClassification]] = {}
    for wk in sorted(weeks):
        entries = classify_week(wk, weeks[wk], multiplier, top_cutoff, problems)
        if entries:
            out[wk] = entries
    return out
