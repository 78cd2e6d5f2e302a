from __future__ import annotations

from typing import Callable, Mapping

from .models import SORT_KEYS, SeasonRecord, SortSpec


def _key_func(spec: SortSpec) -> Callable[[SeasonRecord], object]:
    if spec.key == "name":
        return lambda r: r.name
    if spec.key == "week":
        week = int(spec.week)  # validated by SortSpec
        return lambda r: r.points_for_week(week)
    attr = spec.key
    return lambda r: getattr(r, attr)


def sort_standings(
    records: Mapping[int, SeasonRecord], spec: SortSpec | None = None
) -> list[tuple[int, SeasonRecord]]:
    """Order records by ``spec``.

    Equal keys keep the mapping's iteration order in both directions
    (``sorted(reverse=True)`` is stable).
    """
    spec = spec or SortSpec()
    key = _key_func(spec)
    return sorted(records.items(), key=lambda item: key(item[1]), reverse=spec.descending)


def toggle_sort(current: SortSpec | None, key: str, week: int | None = None) -> SortSpec:
    """Clicking the active column flips direction; a new column starts descending."""
    if current is not None and current.key == key and (key != "week" or current.week == week):
        return SortSpec(key=key, direction="asc" if current.descending else "desc", week=week)
    return SortSpec(key=key, direction="desc", week=week)


def standings_rows(
    records: Mapping[int, SeasonRecord], spec: SortSpec | None = None
) -> list[dict]:
    rows = []
    for rank, (_, rec) in enumerate(sort_standings(records, spec), start=1):
        rows.append({"rank": rank, **rec.to_row()})
    return rows


__all__ = ["SORT_KEYS", "sort_standings", "toggle_sort", "standings_rows"]
