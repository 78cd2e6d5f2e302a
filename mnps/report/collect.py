"""Collection & assembly for the MNPS season report.

``SeasonLoader`` is the orchestrator: it resolves the requested season,
builds the team directory, fetches weeks in batches, feeds them through the
pure compute pipeline and assembles a ``SeasonContext``. Everything it
fetches goes through an optional cache port, and every week result is
checked against the active ``SeasonSession`` ticket before it is folded.
"""

from __future__ import annotations

import datetime
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Mapping, Sequence

import requests

from mnps.api.client import SleeperClient
from mnps.compute import (
    SortSpec,
    TeamDirectory,
    WeekClassification,
    aggregate,
    aggregate_qualifiers,
    build_directory,
    classify_week,
    ensure_teams,
    multiplier_for_season,
    playoff_window,
    qualifiers,
    regular_window,
    running_totals,
    standings_rows,
    top_cutoff_for,
    week_leaders,
)
from mnps.constants import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_VARIANT,
    MAX_WEEK,
    PLAYOFF_END,
    PLAYOFF_START,
    SCHEMA_VERSION,
)
from mnps.errors import MalformedRecord, SeasonSuperseded, SourceUnavailable
from .cache import CachedSeason, SeasonCache, season_key
from .models import SeasonContext
from .render import fmt_points, fmt_score, md_table
from .session import SeasonSession

MAX_PREVIOUS_HOPS = 12


def resolve_league_for_season(
    client: SleeperClient, base_league_id: str, season: str | int | None
) -> dict:
    """Walk ``previous_league_id`` links back to the league for ``season``."""
    league = client.league(base_league_id)
    if not league:
        raise ValueError(f"League {base_league_id} not found")
    if season is None:
        return league
    target = str(season)
    guard = 0
    while guard < MAX_PREVIOUS_HOPS and league and str(league.get("season")) != target:
        prev_id = league.get("previous_league_id")
        if not prev_id or str(prev_id) == "0":
            break
        league = client.league(str(prev_id))
        guard += 1
    if not league or str(league.get("season")) != target:
        raise ValueError(
            f"Could not resolve league for season={season} starting from {base_league_id}"
        )
    return league


def has_scores(rows: Sequence[Mapping[str, Any]] | None) -> bool:
    """True when any team in the week has a positive score (week has been played)."""
    for r in rows or []:
        pts = r.get("points") if isinstance(r, Mapping) else None
        if isinstance(pts, int | float) and not isinstance(pts, bool) and pts > 0:
            return True
    return False


def plan_weeks(league: Mapping[str, Any], state: Mapping[str, Any]) -> tuple[int, bool]:
    """Return (last week worth fetching, season complete?) for a league season."""
    league_season = str(league.get("season") or "")
    state_season = str(state.get("season") or "")
    if league.get("status") == "complete":
        return MAX_WEEK, True
    if league_season.isdigit() and state_season.isdigit() and int(state_season) > int(league_season):
        return MAX_WEEK, True
    if league_season == state_season:
        try:
            state_week = int(state.get("week") or 0)
        except (TypeError, ValueError):
            state_week = 0
        return max(0, min(MAX_WEEK, state_week)), False
    return 0, False


def _batches(weeks: list[int], size: int) -> list[list[int]]:
    size = max(1, size)
    return [weeks[i : i + size] for i in range(0, len(weeks), size)]


def assemble_context(
    *,
    league_id: str,
    season: str,
    league_name: str,
    variant: str,
    directory: TeamDirectory,
    classified: Mapping[int, Sequence[WeekClassification]],
    current_week: int | None,
    complete: bool,
    sort_spec: SortSpec | None = None,
    problems: list[str] | None = None,
) -> SeasonContext:
    """Pure assembly of a report context from already-classified weeks."""
    spec = sort_spec or SortSpec()
    seen = {e.roster_id for entries in classified.values() for e in entries}
    directory = ensure_teams(directory, sorted(seen))
    multiplier = multiplier_for_season(season)
    top_cutoff = top_cutoff_for(variant)

    regular = aggregate(classified, regular_window(None if complete else current_week), directory)
    playoff = aggregate(classified, playoff_window(), directory)
    qualifier_ids = qualifiers(regular)
    qualifier_playoff = aggregate_qualifiers(classified, regular, directory)
    leaders = week_leaders(classified, playoff_window())
    standings = standings_rows(regular, spec)

    meta_rows = [
        ["schema_version", SCHEMA_VERSION],
        ["generated_at", datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="seconds")],
        ["league_id", league_id],
        ["league_name", league_name],
        ["season", season],
        ["variant", variant],
        ["multiplier", str(multiplier)],
        ["top_cutoff", str(top_cutoff)],
        ["current_week", str(current_week) if current_week is not None else "-"],
        ["season_complete", "yes" if complete else "no"],
        ["weeks_loaded", ",".join(str(w) for w in sorted(classified)) or "-"],
        ["num_teams", str(len(directory))],
        ["sort", f"{spec.key}{'' if spec.week is None else spec.week}:{spec.direction}"],
    ]

    md: list[str] = [f"# MNPS Dashboard: {league_name} ({season})", ""]
    md.append("## Regular Season Standings")
    md.extend(
        md_table(
            ["rank", "roster_id", "team", "points", "mnps", "top_weeks", "games", "avg_mnps"],
            [
                [
                    r["rank"],
                    r["roster_id"],
                    r["name"],
                    fmt_points(r["total_points"]),
                    fmt_score(r["total_score"]),
                    r["top_count"],
                    r["games"],
                    fmt_score(r["average_score"]),
                ]
                for r in standings
            ],
        )
    )
    md.append("")

    totals = running_totals(classified)
    weekly_rows = []
    for wk, entries in sorted(classified.items()):
        for e in entries:
            running = next(t for w, t in totals[e.roster_id] if w == wk)
            weekly_rows.append(
                [
                    wk,
                    directory.name_for(e.roster_id),
                    fmt_points(e.points),
                    fmt_score(e.score),
                    fmt_score(running),
                    "yes" if e.is_top else "no",
                ]
            )
    md.append("## Weekly MNPS")
    md.extend(md_table(["week", "team", "points", "mnps", "running_total", "top"], weekly_rows))
    md.append("")

    playoff_weeks = [wk for wk in range(PLAYOFF_START, PLAYOFF_END + 1) if wk in classified]
    if qualifier_ids:
        md.append("## Playoff Qualifiers")
        q_rows = []
        for rid in qualifier_ids:
            rec = qualifier_playoff[rid]
            cells: list[Any] = [rid, rec.name]
            for wk in playoff_weeks:
                pts = fmt_points(rec.points_for_week(wk))
                cells.append(f"{pts} *" if leaders.get(wk) == rid else pts)
            cells.extend([fmt_points(rec.total_points), fmt_score(rec.total_score)])
            q_rows.append(cells)
        md.extend(
            md_table(
                ["roster_id", "team", *[f"w{wk}" for wk in playoff_weeks], "points", "mnps"],
                q_rows,
            )
        )
        md.append("")

    if problems:
        md.append("## Data Problems")
        md.extend(f"- {p}" for p in problems)
        md.append("")

    md.append("## Metadata")
    md.extend(md_table(["key", "value"], meta_rows))

    return SeasonContext(
        league_id=league_id,
        season=season,
        league_name=league_name,
        variant=variant,
        multiplier=multiplier,
        top_cutoff=top_cutoff,
        current_week=current_week,
        complete=complete,
        directory=directory,
        classified={wk: tuple(v) for wk, v in sorted(classified.items())},
        regular=regular,
        playoff=playoff,
        qualifier_ids=qualifier_ids,
        qualifier_playoff=qualifier_playoff,
        playoff_leaders=leaders,
        sort_spec=spec,
        standings=standings,
        meta_rows=meta_rows,
        markdown_lines=md,
        problems=list(problems or []),
    )


class SeasonLoader:
    """Loads one league season from the Sleeper API into a SeasonContext."""

    def __init__(
        self,
        client: SleeperClient,
        *,
        cache: SeasonCache | None = None,
        session: SeasonSession | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        verbose: bool = False,
    ) -> None:
        self.client = client
        self.cache = cache
        self.session = session or SeasonSession()
        self.batch_size = max(1, int(batch_size))
        self.verbose = verbose

    def _log(self, msg: str) -> None:
        if self.verbose:
            print(f"[mnps] {msg}")

    def _call(self, source: str, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return fn(*args)
        except requests.RequestException as e:
            raise SourceUnavailable(source, str(e)) from e

    def _fetch_week(self, league_id: str, week: int) -> list[dict]:
        rows = self._call(f"week {week}", self.client.matchups, league_id, week)
        return list(rows or [])

    def load(
        self,
        league_id: str,
        season: str | int | None = None,
        *,
        variant: str = DEFAULT_VARIANT,
        sport: str = "nfl",
        sort_spec: SortSpec | None = None,
        on_progress: Callable[[SeasonContext], None] | None = None,
    ) -> SeasonContext:
        """Fetch, classify and aggregate a season.

        Raises SourceUnavailable when the league, directory or a week cannot
        be fetched, and SeasonSuperseded when another season was selected on
        the shared session while this one was loading.
        """
        top_cutoff = top_cutoff_for(variant)
        league = self._call("league", resolve_league_for_season, self.client, league_id, season)
        resolved_id = str(league.get("league_id") or league_id)
        resolved_season = str(league.get("season") or season or "")
        league_name = str(league.get("name") or resolved_id)
        multiplier = multiplier_for_season(resolved_season)
        key = season_key(resolved_id, resolved_season)
        ticket = self.session.select(key)

        cached = self.cache.load(key) if self.cache else None
        if cached is None:
            cached = CachedSeason(league_id=resolved_id, season=resolved_season)
        cached.drop_unfinished()

        if cached.complete and cached.rosters:
            rosters, users = cached.rosters, cached.users
            self._log(f"{key}: directory from cache")
        else:
            rosters = self._call("rosters", self.client.rosters, resolved_id)
            users = self._call("users", self.client.users, resolved_id)
        directory = build_directory(rosters, users)
        cached.rosters, cached.users = list(rosters), list(users)

        state = self._call("state", self.client.state, sport) or {}
        last_week, complete = plan_weeks(league, state)
        weeks = list(range(1, last_week + 1))
        self._log(f"{key}: weeks 1-{last_week} ({'complete' if complete else 'in progress'})")
        cached.complete = complete
        cached.live_week = None if complete else last_week

        problems: list[str] = []
        accepted: dict[int, tuple[WeekClassification, ...]] = {}
        current_week: int | None = None

        def context() -> SeasonContext:
            if not self.session.is_current(ticket):
                raise SeasonSuperseded(key)
            return assemble_context(
                league_id=resolved_id,
                season=resolved_season,
                league_name=league_name,
                variant=variant,
                directory=directory,
                classified=dict(sorted(accepted.items())),
                current_week=current_week,
                complete=complete,
                sort_spec=sort_spec,
                problems=problems,
            )

        with ThreadPoolExecutor(max_workers=self.batch_size) as pool:
            for batch in _batches(weeks, self.batch_size):
                # the live week is always refetched
                reuse = {
                    wk for wk in batch if wk in cached.weeks and (complete or wk < last_week)
                }
                to_fetch = [wk for wk in batch if wk not in reuse]
                fetched = dict(
                    zip(to_fetch, pool.map(lambda wk: self._fetch_week(resolved_id, wk), to_fetch))
                )
                if not self.session.is_current(ticket):
                    raise SeasonSuperseded(key)
                for wk in batch:
                    rows = cached.weeks[wk] if wk in reuse else fetched[wk]
                    cached.weeks[wk] = rows
                    if not complete and not has_scores(rows):
                        rows = []
                    malformed: list[MalformedRecord] = []
                    entries = classify_week(wk, rows, multiplier, top_cutoff, malformed)
                    problems.extend(str(p) for p in malformed)
                    if not self.session.accept(ticket, wk, entries):
                        raise SeasonSuperseded(key)
                    if entries:
                        accepted[wk] = tuple(entries)
                        if not complete:
                            current_week = wk
                    else:
                        accepted.pop(wk, None)
                self._log(f"{key}: loaded weeks {batch[0]}-{batch[-1]} ({len(to_fetch)} fetched)")
                cached.current_week = current_week
                if self.cache:
                    self.cache.save(key, cached)
                if on_progress:
                    on_progress(context())

        return context()


def build_season_context(
    *,
    league_id: str,
    season: str | int | None = None,
    variant: str = DEFAULT_VARIANT,
    sport: str = "nfl",
    client: SleeperClient | None = None,
    cache: SeasonCache | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    sort_spec: SortSpec | None = None,
    verbose: bool = False,
) -> SeasonContext:
    loader = SeasonLoader(
        client or SleeperClient(), cache=cache, batch_size=batch_size, verbose=verbose
    )
    return loader.load(league_id, season, variant=variant, sport=sport, sort_spec=sort_spec)
