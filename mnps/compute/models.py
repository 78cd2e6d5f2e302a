from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from mnps.constants import FIRST_WEEK, MAX_WEEK
from mnps.errors import InvalidInput, MalformedRecord


def _coerce_int(value: object, default: int | None = None) -> int | None:
    """Best-effort int conversion (int, integral float, str of digits).

    Floats with a fractional part are not truncated; they give ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else default
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def _coerce_points(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def check_week(week: object) -> int:
    """Return ``week`` as an int, raising InvalidInput outside 1..17."""
    wk = _coerce_int(week)
    if wk is None or not FIRST_WEEK <= wk <= MAX_WEEK:
        raise InvalidInput(f"week must be in {FIRST_WEEK}..{MAX_WEEK}, got {week!r}")
    return wk


def synthetic_name(roster_id: int) -> str:
    return f"Team {roster_id}"


class TeamDirectory(Mapping[int, str]):
    """Immutable roster_id -> display name mapping.

    Lookups for unknown rosters through :meth:`name_for` fall back to the
    synthetic ``"Team <id>"`` name, never an empty string.
    """

    __slots__ = ("_names",)

    def __init__(self, names: Mapping[int, str] | None = None) -> None:
        self._names = MappingProxyType(dict(names or {}))

    def __getitem__(self, roster_id: int) -> str:
        return self._names[roster_id]

    def __iter__(self) -> Iterator[int]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"TeamDirectory({dict(self._names)!r})"

    def name_for(self, roster_id: int) -> str:
        return self._names.get(roster_id) or synthetic_name(roster_id)


@dataclass(frozen=True, slots=True)
class RawMatchupRecord:
    """One team's raw points for one week, in feed order."""

    roster_id: int
    points: float | None
    matchup_id: int | None = None

    @classmethod
    def from_api(
        cls, row: Mapping[str, Any], *, week: int | None = None, index: int | None = None
    ) -> RawMatchupRecord:
        """Build from a Sleeper ``/matchups/{week}`` row.

        Raises MalformedRecord when the row carries no usable roster_id.
        """
        if not isinstance(row, Mapping):
            raise MalformedRecord(week, index, row)
        rid = _coerce_int(row.get("roster_id"))
        if rid is None:
            raise MalformedRecord(week, index, row)
        return cls(
            roster_id=rid,
            points=_coerce_points(row.get("points")),
            matchup_id=_coerce_int(row.get("matchup_id")),
        )

    @property
    def normalized_points(self) -> float:
        return self.points if self.points is not None else 0.0


@dataclass(frozen=True, slots=True)
class WeekClassification:
    week: int
    roster_id: int
    points: float
    score: float
    is_top: bool

    def to_row(self) -> dict[str, Any]:
        return {
            "week": self.week,
            "roster_id": self.roster_id,
            "points": self.points,
            "score": self.score,
            "is_top": self.is_top,
        }


@dataclass(frozen=True, slots=True)
class SeasonTotals:
    """Name-less fold result for one roster over a window."""

    roster_id: int
    total_points: float = 0.0
    total_score: float = 0.0
    top_count: int = 0
    games: int = 0
    weekly_points: tuple[tuple[int, float], ...] = ()
    weekly_scores: tuple[tuple[int, float], ...] = ()


@dataclass(frozen=True, slots=True)
class SeasonRecord:
    roster_id: int
    name: str
    total_points: float = 0.0
    total_score: float = 0.0
    top_count: int = 0
    games: int = 0
    weekly_points: tuple[tuple[int, float], ...] = field(default=())
    weekly_scores: tuple[tuple[int, float], ...] = field(default=())

    @classmethod
    def from_totals(cls, totals: SeasonTotals, name: str) -> SeasonRecord:
        return cls(
            roster_id=totals.roster_id,
            name=name,
            total_points=totals.total_points,
            total_score=totals.total_score,
            top_count=totals.top_count,
            games=totals.games,
            weekly_points=totals.weekly_points,
            weekly_scores=totals.weekly_scores,
        )

    @property
    def average_score(self) -> float:
        return self.total_score / self.games if self.games else 0.0

    def points_for_week(self, week: int) -> float:
        for wk, pts in self.weekly_points:
            if wk == week:
                return pts
        return 0.0

    def score_for_week(self, week: int) -> float | None:
        for wk, score in self.weekly_scores:
            if wk == week:
                return score
        return None

    def to_row(self) -> dict[str, Any]:
        return {
            "roster_id": self.roster_id,
            "name": self.name,
            "total_points": self.total_points,
            "total_score": self.total_score,
            "top_count": self.top_count,
            "games": self.games,
            "average_score": self.average_score,
            "weekly_points": {str(wk): pts for wk, pts in self.weekly_points},
        }


SORT_KEYS = ("name", "total_points", "total_score", "top_count", "average_score", "week")
SORT_DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True, slots=True)
class SortSpec:
    key: str = "total_score"
    direction: str = "desc"
    week: int | None = None

    def __post_init__(self) -> None:
        if self.key not in SORT_KEYS:
            raise InvalidInput(f"unknown sort key {self.key!r}; expected one of {SORT_KEYS}")
        if self.direction not in SORT_DIRECTIONS:
            raise InvalidInput(f"unknown sort direction {self.direction!r}")
        if self.key == "week":
            check_week(self.week)

    @property
    def descending(self) -> bool:
        return self.direction == "desc"
