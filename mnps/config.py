"""Runtime settings from environment variables and an optional leagues file.

Environment:
  SLEEPER_BASE_URL, SLEEPER_LEAGUE_ID, SLEEPER_SPORT, SLEEPER_RPM_LIMIT,
  SLEEPER_MIN_INTERVAL_MS, MNPS_LEAGUE_VARIANT, MNPS_CACHE_DIR,
  MNPS_BATCH_SIZE, MNPS_LEAGUES_FILE

Leagues file (YAML)::

  leagues:
    redraft:
      league_id: "1243379119207497728"
      variant: standard
    dynasty:
      league_id: "1094759154738130944"
      variant: dynasty
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping

import yaml

from mnps.api.client import DEFAULT_BASE_URL
from mnps.constants import DEFAULT_BATCH_SIZE, DEFAULT_VARIANT, LEAGUE_VARIANTS

DEFAULT_LEAGUE_ID = "1243379119207497728"


@dataclass(frozen=True, slots=True)
class LeagueConfig:
    name: str
    league_id: str
    variant: str = DEFAULT_VARIANT


@dataclass(frozen=True, slots=True)
class Settings:
    base_url: str = DEFAULT_BASE_URL
    league_id: str = DEFAULT_LEAGUE_ID
    sport: str = "nfl"
    variant: str = DEFAULT_VARIANT
    rpm_limit: float | None = None
    min_interval_ms: float | None = None
    cache_dir: str | None = None
    batch_size: int = DEFAULT_BATCH_SIZE
    leagues: dict[str, LeagueConfig] = field(default_factory=dict)

    def for_league(self, name: str) -> Settings:
        """Settings pointed at a named league from the leagues file."""
        try:
            lg = self.leagues[name]
        except KeyError:
            raise ValueError(f"Unknown league {name!r}; configured: {sorted(self.leagues)}") from None
        return replace(self, league_id=lg.league_id, variant=lg.variant)


def _float_or_none(raw: str | None) -> float | None:
    try:
        return float(raw) if raw else None
    except ValueError:
        return None


def _int_or_default(raw: str | None, default: int) -> int:
    try:
        val = int(raw) if raw else default
    except ValueError:
        return default
    return val if val > 0 else default


def _variant(raw: str | None) -> str:
    v = (raw or DEFAULT_VARIANT).strip().lower()
    if v not in LEAGUE_VARIANTS:
        raise ValueError(f"Unknown league variant {raw!r}; expected one of {sorted(LEAGUE_VARIANTS)}")
    return v


def load_leagues(path: str | os.PathLike[str]) -> dict[str, LeagueConfig]:
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    leagues = data.get("leagues") or {}
    if not isinstance(leagues, dict):
        raise ValueError(f"{path}: 'leagues' must be a mapping")
    out: dict[str, LeagueConfig] = {}
    for name, entry in leagues.items():
        if not isinstance(entry, dict) or not entry.get("league_id"):
            raise ValueError(f"{path}: league {name!r} needs a league_id")
        out[str(name)] = LeagueConfig(
            name=str(name),
            league_id=str(entry["league_id"]),
            variant=_variant(entry.get("variant")),
        )
    return out


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if env is None else env
    leagues_file = env.get("MNPS_LEAGUES_FILE")
    return Settings(
        base_url=env.get("SLEEPER_BASE_URL", DEFAULT_BASE_URL),
        league_id=env.get("SLEEPER_LEAGUE_ID", DEFAULT_LEAGUE_ID),
        sport=env.get("SLEEPER_SPORT", "nfl"),
        variant=_variant(env.get("MNPS_LEAGUE_VARIANT")),
        rpm_limit=_float_or_none(env.get("SLEEPER_RPM_LIMIT")),
        min_interval_ms=_float_or_none(env.get("SLEEPER_MIN_INTERVAL_MS")),
        cache_dir=env.get("MNPS_CACHE_DIR") or None,
        batch_size=_int_or_default(env.get("MNPS_BATCH_SIZE"), DEFAULT_BATCH_SIZE),
        leagues=load_leagues(leagues_file) if leagues_file else {},
    )
