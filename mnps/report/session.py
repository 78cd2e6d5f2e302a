"""Season selection state with stale-result rejection.

The orchestrator owns one ``SeasonSession``. Selecting a season hands out a
ticket; week results carry the ticket they were fetched under and are only
folded while that ticket is still current.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Sequence

from mnps.compute.models import WeekClassification, check_week


@dataclass(frozen=True, slots=True)
class SeasonTicket:
    season_key: str
    generation: int


class SeasonSession:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generation = 0
        self._season_key: str | None = None
        self._weeks: dict[int, tuple[WeekClassification, ...]] = {}
        self.rejected = 0

    @property
    def season_key(self) -> str | None:
        return self._season_key

    def select(self, season_key: str) -> SeasonTicket:
        """Switch to ``season_key``; results for earlier tickets become stale."""
        with self._lock:
            self._generation += 1
            self._season_key = season_key
            self._weeks = {}
            return SeasonTicket(season_key, self._generation)

    def is_current(self, ticket: SeasonTicket) -> bool:
        with self._lock:
            return ticket.generation == self._generation and ticket.season_key == self._season_key

    def accept(self, ticket: SeasonTicket, week: int, entries: Sequence[WeekClassification]) -> bool:
        """Store a week's classifications; returns False for stale tickets.

        Storing the same week again replaces it.
        """
        wk = check_week(week)
        with self._lock:
            if ticket.generation != self._generation or ticket.season_key != self._season_key:
                self.rejected += 1
                return False
            if entries:
                self._weeks[wk] = tuple(entries)
            else:
                self._weeks.pop(wk, None)
            return True

    def snapshot(self) -> Mapping[int, tuple[WeekClassification, ...]]:
        with self._lock:
            return MappingProxyType(dict(sorted(self._weeks.items())))
