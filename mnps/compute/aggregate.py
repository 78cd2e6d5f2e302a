"""Season aggregation over classified weeks.

Folds are pure: every call takes a snapshot of classified weeks and returns
new records. Entries are keyed by ``(week, roster_id)`` before summing, so
folding overlapping or repeated input never double counts a week.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Sequence

from mnps.constants import (
    FIRST_WEEK,
    MAX_WEEK,
    PLAYOFF_END,
    PLAYOFF_START,
    QUALIFIER_COUNT,
    REGULAR_SEASON_END,
)
from mnps.errors import InvalidInput

from .models import SeasonRecord, SeasonTotals, TeamDirectory, WeekClassification

WeekPredicate = Callable[[int], bool]
ClassifiedWeeks = (
    Mapping[int, Sequence[WeekClassification]]
    | Iterable[tuple[int, Sequence[WeekClassification]]]
)


@dataclass(frozen=True, slots=True)
class Window:
    """Inclusive week range usable as a predicate."""

    low: int
    high: int

    def __post_init__(self) -> None:
        if self.low > self.high:
            raise InvalidInput(f"empty window {self.low}..{self.high}")

    def __call__(self, week: int) -> bool:
        return self.low <= week <= self.high

    def weeks(self) -> range:
        return range(self.low, self.high + 1)


def regular_window(current_week: int | None = None) -> Window:
    """Weeks 1..14, or 1..current_week for an in-progress season."""
    end = REGULAR_SEASON_END
    if current_week is not None:
        end = max(FIRST_WEEK, min(end, int(current_week)))
    return Window(FIRST_WEEK, end)


def playoff_window() -> Window:
    return Window(PLAYOFF_START, PLAYOFF_END)


def season_window(current_week: int | None = None) -> Window:
    end = MAX_WEEK if current_week is None else max(FIRST_WEEK, min(MAX_WEEK, int(current_week)))
    return Window(FIRST_WEEK, end)


def _snapshot(
    classified_weeks: ClassifiedWeeks, window: WeekPredicate
) -> list[WeekClassification]:
    pairs = classified_weeks.items() if isinstance(classified_weeks, Mapping) else classified_weeks
    latest: dict[tuple[int, int], WeekClassification] = {}
    for _, entries in sorted(pairs, key=lambda p: p[0]):
        for e in entries or ():
            if window(e.week):
                # re-inserting keeps first-seen position, last value wins
                latest[(e.week, e.roster_id)] = e
    return list(latest.values())


def fold_weeks(
    classified_weeks: ClassifiedWeeks, window: WeekPredicate
) -> dict[int, SeasonTotals]:
    acc: dict[int, dict] = {}
    for e in _snapshot(classified_weeks, window):
        rec = acc.setdefault(
            e.roster_id,
            {"points": 0.0, "score": 0.0, "top": 0, "games": 0, "wp": [], "ws": []},
        )
        rec["points"] += e.points
        rec["score"] += e.score
        rec["top"] += 1 if e.is_top else 0
        rec["games"] += 1
        rec["wp"].append((e.week, e.points))
        rec["ws"].append((e.week, e.score))
    return {
        rid: SeasonTotals(
            roster_id=rid,
            total_points=rec["points"],
            total_score=rec["score"],
            top_count=rec["top"],
            games=rec["games"],
            weekly_points=tuple(sorted(rec["wp"])),
            weekly_scores=tuple(sorted(rec["ws"])),
        )
        for rid, rec in acc.items()
    }


def aggregate(
    classified_weeks: ClassifiedWeeks,
    window: WeekPredicate,
    directory: TeamDirectory,
) -> dict[int, SeasonRecord]:
    totals = fold_weeks(classified_weeks, window)
    return {rid: SeasonRecord.from_totals(t, directory.name_for(rid)) for rid, t in totals.items()}


def relabel(records: Mapping[int, SeasonRecord], directory: TeamDirectory) -> dict[int, SeasonRecord]:
    """Re-apply names from a rebuilt directory without refolding."""
    return {
        rid: SeasonRecord(
            roster_id=rec.roster_id,
            name=directory.name_for(rid),
            total_points=rec.total_points,
            total_score=rec.total_score,
            top_count=rec.top_count,
            games=rec.games,
            weekly_points=rec.weekly_points,
            weekly_scores=rec.weekly_scores,
        )
        for rid, rec in records.items()
    }


def qualifiers(regular_records: Mapping[int, SeasonRecord], count: int = QUALIFIER_COUNT) -> list[int]:
    """Roster ids of the top ``count`` teams by accumulated regular-season score."""
    ranked = sorted(regular_records.values(), key=lambda r: r.total_score, reverse=True)
    return [r.roster_id for r in ranked[: max(0, count)]]


def aggregate_qualifiers(
    classified_weeks: ClassifiedWeeks,
    regular_records: Mapping[int, SeasonRecord],
    directory: TeamDirectory,
    window: WeekPredicate | None = None,
    count: int = QUALIFIER_COUNT,
) -> dict[int, SeasonRecord]:
    """Playoff aggregation restricted to the regular-season qualifiers."""
    allowed = set(qualifiers(regular_records, count))
    win = window or playoff_window()
    playoff = aggregate(classified_weeks, win, directory)
    out = {rid: rec for rid, rec in playoff.items() if rid in allowed}
    # qualifiers without a playoff week yet still get a (zero) row
    for rid in qualifiers(regular_records, count):
        if rid not in out:
            out[rid] = SeasonRecord(roster_id=rid, name=directory.name_for(rid))
    return out


def week_leaders(classified_weeks: ClassifiedWeeks, window: WeekPredicate) -> dict[int, int]:
    """week -> roster_id with the most raw points; first encountered wins ties."""
    pairs = classified_weeks.items() if isinstance(classified_weeks, Mapping) else classified_weeks
    leaders: dict[int, int] = {}
    for wk, entries in sorted(pairs, key=lambda p: p[0]):
        if not window(wk):
            continue
        best: WeekClassification | None = None
        for e in entries or ():
            if best is None or e.points > best.points:
                best = e
        if best is not None:
            leaders[wk] = best.roster_id
    return leaders


def running_totals(
    classified_weeks: ClassifiedWeeks, window: WeekPredicate | None = None
) -> dict[int, list[tuple[int, float]]]:
    """Per roster cumulative score after each week it played."""
    out: dict[int, list[tuple[int, float]]] = {}
    running: dict[int, float] = {}
    entries = _snapshot(classified_weeks, window or season_window())
    for e in sorted(entries, key=lambda x: x.week):
        running[e.roster_id] = running.get(e.roster_id, 0.0) + e.score
        out.setdefault(e.roster_id, []).append((e.week, running[e.roster_id]))
    return out
