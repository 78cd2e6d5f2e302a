"""Error kinds raised by the MNPS pipeline.

Core functions only validate their own inputs; anything raised by a data
source is wrapped into :class:`SourceUnavailable` by the orchestrator.
"""

from __future__ import annotations

from typing import Any


class MnpsError(Exception):
    """Base class for all pipeline errors."""


class InvalidInput(MnpsError, ValueError):
    """A core function received an argument outside its accepted domain."""


class SourceUnavailable(MnpsError):
    """A directory or week fetch failed; no partial result is produced."""

    def __init__(self, source: str, detail: str = "") -> None:
        self.source = source
        self.detail = detail
        msg = f"source unavailable: {source}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class MalformedRecord(MnpsError, ValueError):
    """A matchup record has no usable roster id (missing or fractional).

    The record is dropped from classification; the rest of the week is kept.
    """

    def __init__(self, week: int | None, index: int | None, record: Any) -> None:
        self.week = week
        self.index = index
        self.record = record
        where = f"week {week}" if week is not None else "unknown week"
        if index is not None:
            where += f", feed position {index}"
        super().__init__(f"matchup record without a usable roster_id ({where}): {record!r}")


class SeasonSuperseded(MnpsError):
    """The season selection changed while its weeks were still loading."""

    def __init__(self, season_key: str) -> None:
        self.season_key = season_key
        super().__init__(f"season {season_key} was superseded; results discarded")
