import json
import re

import pytest
import responses

from mnps.api.client import SleeperClient
from mnps.compute import SortSpec, TeamDirectory, classify_week
from mnps.constants import SCHEMA_VERSION
from mnps.errors import SeasonSuperseded, SourceUnavailable
from mnps.report.cache import MemoryCache
from mnps.report.collect import (
    SeasonLoader,
    assemble_context,
    has_scores,
    plan_weeks,
    resolve_league_for_season,
)
from mnps.report.formatters import format_json, format_markdown

BASE = "https://api.test.local/v1"
NUM_TEAMS = 8

LEAGUES = {
    "L24": {"league_id": "L24", "season": "2024", "status": "in_season", "name": "Test League", "previous_league_id": "L23"},
    "L23": {"league_id": "L23", "season": "2023", "status": "complete", "name": "Test League", "previous_league_id": None},
}


def _week_rows(week, played=True):
    return [
        {"roster_id": r, "matchup_id": (r + 1) // 2, "points": (100.0 + r * (week % 3 + 1)) if played else 0.0}
        for r in range(1, NUM_TEAMS + 1)
    ]


def _install(state_week=5, scored_through=4, rosters_status=200):
    calls = {"matchups": []}
    for lid, league in LEAGUES.items():
        responses.add(responses.GET, f"{BASE}/league/{lid}", json=league)
        responses.add(
            responses.GET,
            f"{BASE}/league/{lid}/rosters",
            json=[{"roster_id": r, "owner_id": f"u{r}"} for r in range(1, NUM_TEAMS + 1)],
            status=rosters_status,
        )
        responses.add(
            responses.GET,
            f"{BASE}/league/{lid}/users",
            json=[{"user_id": f"u{r}", "display_name": f"owner{r}"} for r in range(1, NUM_TEAMS)],
        )
    responses.add(responses.GET, f"{BASE}/state/nfl", json={"season": "2024", "week": state_week})

    def matchups(request):
        lid, week = re.search(r"/league/(\w+)/matchups/(\d+)$", request.url).groups()
        week = int(week)
        calls["matchups"].append((lid, week))
        played = lid == "L23" or week <= scored_through
        return 200, {}, json.dumps(_week_rows(week, played))

    responses.add_callback(
        responses.GET, re.compile(BASE + r"/league/\w+/matchups/\d+"), callback=matchups
    )
    return calls


def _loader(**kwargs):
    return SeasonLoader(SleeperClient(BASE, min_interval_ms=1), **kwargs)


@responses.activate
def test_completed_season_via_previous_league():
    calls = _install()
    ctx = _loader().load("L24", 2023)
    assert ctx.league_id == "L23" and ctx.season == "2023"
    assert ctx.complete and ctx.current_week is None
    assert ctx.multiplier == 0.082 and ctx.top_cutoff == 6
    assert ctx.weeks_loaded == list(range(1, 18))
    assert sorted(wk for _, wk in calls["matchups"]) == list(range(1, 18))
    assert all(rec.games == 14 for rec in ctx.regular.values())
    assert ctx.qualifier_ids == [8, 7, 6, 5, 4]
    assert set(ctx.qualifier_playoff) == {8, 7, 6, 5, 4}
    assert ctx.playoff_leaders == {15: 8, 16: 8, 17: 8}
    assert ctx.standings[0]["roster_id"] == 8
    # roster 8 has no user record, so it gets the synthetic name
    assert ctx.standings[0]["name"] == "Team 8"


@responses.activate
def test_in_progress_season_hides_unplayed_weeks():
    _install(state_week=5, scored_through=4)
    ctx = _loader(batch_size=2).load("L24", variant="dynasty")
    assert ctx.season == "2024" and not ctx.complete
    assert ctx.current_week == 4
    assert ctx.weeks_loaded == [1, 2, 3, 4]
    assert ctx.multiplier == 0.0653 and ctx.top_cutoff == 5
    assert all(rec.games == 4 for rec in ctx.regular.values())
    assert all(sum(e.is_top for e in entries) == 5 for entries in ctx.classified.values())
    assert ctx.playoff == {}


@responses.activate
def test_progress_reports_partial_aggregates():
    _install()
    seen = []
    _loader(batch_size=4).load("L24", 2023, on_progress=lambda c: seen.append(c.weeks_loaded))
    assert seen[0] == [1, 2, 3, 4]
    assert seen[-1] == list(range(1, 18))
    assert len(seen) == 5


@responses.activate
def test_cache_serves_completed_season():
    calls = _install()
    cache = MemoryCache()
    first = _loader(cache=cache).load("L24", 2023)
    fetched = len(calls["matchups"])
    second = _loader(cache=cache).load("L24", 2023)
    assert len(calls["matchups"]) == fetched
    assert second.standings == first.standings


@responses.activate
def test_cache_refetches_live_week():
    calls = _install(state_week=5, scored_through=4)
    cache = MemoryCache()
    _loader(cache=cache).load("L24")
    calls["matchups"].clear()
    _loader(cache=cache).load("L24")
    assert calls["matchups"] == [("L24", 5)]


def _install_live(feed):
    """Two-team live league whose state week and week rows are read from ``feed``."""
    league = dict(LEAGUES["L24"], previous_league_id=None)
    responses.add(responses.GET, f"{BASE}/league/L24", json=league)
    responses.add(responses.GET, f"{BASE}/league/L24/rosters", json=[{"roster_id": 1}, {"roster_id": 2}])
    responses.add(responses.GET, f"{BASE}/league/L24/users", json=[])
    responses.add_callback(
        responses.GET,
        f"{BASE}/state/nfl",
        callback=lambda request: (200, {}, json.dumps({"season": "2024", "week": feed["week"]})),
    )

    def matchups(request):
        week = int(request.url.rsplit("/", 1)[1])
        feed["calls"].append(week)
        points = feed["points"].get(week, {})
        return 200, {}, json.dumps([{"roster_id": r, "points": p} for r, p in points.items()])

    responses.add_callback(responses.GET, re.compile(BASE + r"/league/L24/matchups/\d+"), callback=matchups)


@responses.activate
def test_cache_refreshes_week_that_was_live_when_saved():
    feed = {"week": 2, "calls": [], "points": {1: {1: 100.0, 2: 80.0}, 2: {1: 10.0, 2: 5.0}}}
    _install_live(feed)
    cache = MemoryCache()
    first = _loader(cache=cache).load("L24")
    assert {e.roster_id: e.points for e in first.classified[2]} == {1: 10.0, 2: 5.0}

    # week 2 finished with its final scores and week 3 is now live
    feed.update(week=3, calls=[])
    feed["points"][2] = {1: 120.0, 2: 90.0}
    second = _loader(cache=cache).load("L24")
    assert {e.roster_id: e.points for e in second.classified[2]} == {1: 120.0, 2: 90.0}
    assert sorted(feed["calls"]) == [2, 3]
    assert second.regular[1].total_points == pytest.approx(220.0)

    # week 2 was final at the last save, so it now comes from the cache
    feed["calls"].clear()
    feed["points"][2] = {1: 0.0, 2: 0.0}
    third = _loader(cache=cache).load("L24")
    assert feed["calls"] == [3]
    assert {e.roster_id: e.points for e in third.classified[2]} == {1: 120.0, 2: 90.0}


@responses.activate
def test_reselect_after_last_week_does_not_leak_other_season():
    _install()
    loader = _loader(batch_size=4)
    foreign = classify_week(1, [{"roster_id": 99, "points": 999.0}], 0.082, 6)

    def switch_on_last_batch(ctx):
        if ctx.weeks_loaded[-1] == 17:
            other = loader.session.select("OTHER-2022")
            assert loader.session.accept(other, 1, foreign)

    with pytest.raises(SeasonSuperseded):
        loader.load("L24", 2023, on_progress=switch_on_last_batch)
    assert loader.session.season_key == "OTHER-2022"


@responses.activate
def test_switching_season_discards_in_flight_weeks():
    _install()
    loader = _loader(batch_size=4)

    def switch(ctx):
        loader.session.select("L24-2024")

    with pytest.raises(SeasonSuperseded):
        loader.load("L24", 2023, on_progress=switch)
    assert dict(loader.session.snapshot()) == {}
    assert loader.session.season_key == "L24-2024"


@responses.activate
def test_directory_failure_is_source_unavailable():
    _install(rosters_status=404)
    with pytest.raises(SourceUnavailable) as exc:
        _loader().load("L24", 2023)
    assert exc.value.source == "rosters"


@responses.activate
def test_unknown_season_is_rejected():
    _install()
    client = SleeperClient(BASE, min_interval_ms=1)
    with pytest.raises(ValueError):
        resolve_league_for_season(client, "L24", 2019)


def test_plan_weeks():
    assert plan_weeks({"season": "2023", "status": "complete"}, {"season": "2024", "week": 3}) == (17, True)
    assert plan_weeks({"season": "2023"}, {"season": "2024", "week": 3}) == (17, True)
    assert plan_weeks({"season": "2024"}, {"season": "2024", "week": 6}) == (6, False)
    assert plan_weeks({"season": "2024"}, {"season": "2024", "week": 19}) == (17, False)
    assert plan_weeks({"season": "2025"}, {"season": "2024", "week": 18}) == (0, False)


def test_has_scores():
    assert has_scores([{"points": 0.0}, {"points": 1.5}])
    assert not has_scores([{"points": 0}, {"points": None}, {}])
    assert not has_scores(None)


def _context(problems=None):
    classified = {
        wk: classify_week(wk, _week_rows(wk), 0.0653, 6) for wk in range(1, 18)
    }
    return assemble_context(
        league_id="L24",
        season="2024",
        league_name="Test | League",
        variant="standard",
        directory=TeamDirectory({1: "owner1", 2: "owner2"}),
        classified=classified,
        current_week=None,
        complete=True,
        sort_spec=SortSpec("name", "asc"),
        problems=problems,
    )


def test_markdown_sections():
    md = format_markdown(_context(problems=["matchup record without roster_id (week 3)"]))
    lines = md.splitlines()
    assert lines[0] == "# MNPS Dashboard: Test | League (2024)"
    idx = lines.index("## Regular Season Standings")
    assert lines[idx + 1] == "| rank | roster_id | team | points | mnps | top_weeks | games | avg_mnps |"
    # name sort ascending: "Team 3".. before "owner1"
    assert lines[idx + 3].startswith("| 1 | 3 | Team 3 |")
    assert "## Weekly MNPS" in lines
    assert "## Playoff Qualifiers" in lines
    q = lines.index("## Playoff Qualifiers")
    assert lines[q + 1] == "| roster_id | team | w15 | w16 | w17 | points | mnps |"
    assert " *" in lines[q + 3]
    assert "## Data Problems" in lines
    assert md.endswith("\n")


def test_json_payload():
    payload = json.loads(format_json(_context(), SCHEMA_VERSION, pretty=True))
    assert payload["schema_version"] == SCHEMA_VERSION
    assert payload["metadata"]["season"] == 2024
    assert payload["metadata"]["top_cutoff"] == 6
    assert payload["sort"] == {"key": "name", "direction": "asc", "week": None}
    assert len(payload["weeks"]["1"]) == NUM_TEAMS
    assert payload["qualifiers"] == [8, 7, 6, 5, 4]
    assert payload["playoff_leaders"] == {"15": 8, "16": 8, "17": 8}
    assert "weeks" in payload["sections"] and "problems" not in payload["sections"]
    top = next(r for r in payload["standings"] if r["roster_id"] == 8)
    assert top["total_score"] == round(top["total_score"], 3)
