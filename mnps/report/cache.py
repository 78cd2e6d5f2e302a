"""Season cache port and its implementations.

The core never touches persistence; the orchestrator loads a cached season
before fetching and saves it after each batch.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

CACHE_FORMAT = 2


@dataclass(slots=True)
class CachedSeason:
    """Raw inputs for one league season, keyed by week.

    ``live_week`` is the week that was still being played when the season
    was saved. Weeks below it (or every week, once ``complete``) are final
    and safe to reuse.
    """

    league_id: str
    season: str
    rosters: list[dict] = field(default_factory=list)
    users: list[dict] = field(default_factory=list)
    weeks: dict[int, list[dict]] = field(default_factory=dict)
    current_week: int | None = None
    live_week: int | None = None
    complete: bool = False

    def to_json(self) -> dict[str, Any]:
        return {
            "format": CACHE_FORMAT,
            "league_id": self.league_id,
            "season": self.season,
            "rosters": self.rosters,
            "users": self.users,
            "weeks": {str(wk): rows for wk, rows in sorted(self.weeks.items())},
            "current_week": self.current_week,
            "live_week": self.live_week,
            "complete": self.complete,
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> CachedSeason:
        return cls(
            league_id=str(data["league_id"]),
            season=str(data["season"]),
            rosters=list(data.get("rosters") or []),
            users=list(data.get("users") or []),
            weeks={int(k): list(v or []) for k, v in (data.get("weeks") or {}).items()},
            current_week=data.get("current_week"),
            live_week=data.get("live_week"),
            complete=bool(data.get("complete", False)),
        )

    def is_final(self, week: int) -> bool:
        if self.complete:
            return True
        return self.live_week is not None and week < self.live_week

    def drop_unfinished(self) -> None:
        """Forget weeks that were still in progress when this was saved."""
        self.weeks = {wk: rows for wk, rows in self.weeks.items() if self.is_final(wk)}


def season_key(league_id: str, season: str | int) -> str:
    return f"{league_id}-{season}"


class SeasonCache(Protocol):
    def load(self, season_key: str) -> CachedSeason | None: ...
    def save(self, season_key: str, data: CachedSeason) -> None: ...


class MemoryCache:
    def __init__(self) -> None:
        self._store: dict[str, dict[str, Any]] = {}

    def load(self, season_key: str) -> CachedSeason | None:
        raw = self._store.get(season_key)
        return CachedSeason.from_json(raw) if raw is not None else None

    def save(self, season_key: str, data: CachedSeason) -> None:
        # store a serialized copy so later mutation of ``data`` is not visible
        self._store[season_key] = json.loads(json.dumps(data.to_json()))


class JsonFileCache:
    """One JSON file per season key under ``directory``.

    Unreadable or foreign-format files are treated as a cache miss.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, season_key: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", season_key)
        return self.directory / f"season-{safe}.json"

    def load(self, season_key: str) -> CachedSeason | None:
        path = self._path(season_key)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        if not isinstance(data, dict) or data.get("format") != CACHE_FORMAT:
            return None
        try:
            return CachedSeason.from_json(data)
        except (KeyError, TypeError, ValueError):
            return None

    def save(self, season_key: str, data: CachedSeason) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(season_key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data.to_json(), separators=(",", ":")), encoding="utf-8")
        tmp.replace(path)
