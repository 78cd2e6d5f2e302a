from . import aggregate as _aggregate
from . import classify as _classify
from . import directory as _directory
from . import standings as _standings
from .models import (
    RawMatchupRecord,
    SeasonRecord,
    SeasonTotals,
    SortSpec,
    TeamDirectory,
    WeekClassification,
)

build_directory = _directory.build_directory
ensure_teams = _directory.ensure_teams
classify_week = _classify.classify_week
classify_season = _classify.classify_season
multiplier_for_season = _classify.multiplier_for_season
top_cutoff_for = _classify.top_cutoff_for
Window = _aggregate.Window
regular_window = _aggregate.regular_window
playoff_window = _aggregate.playoff_window
season_window = _aggregate.season_window
fold_weeks = _aggregate.fold_weeks
aggregate = _aggregate.aggregate
relabel = _aggregate.relabel
qualifiers = _aggregate.qualifiers
aggregate_qualifiers = _aggregate.aggregate_qualifiers
week_leaders = _aggregate.week_leaders
running_totals = _aggregate.running_totals
sort_standings = _standings.sort_standings
toggle_sort = _standings.toggle_sort
standings_rows = _standings.standings_rows

__all__ = [
    "RawMatchupRecord",
    "SeasonRecord",
    "SeasonTotals",
    "SortSpec",
    "TeamDirectory",
    "WeekClassification",
    "build_directory",
    "ensure_teams",
    "classify_week",
    "classify_season",
    "multiplier_for_season",
    "top_cutoff_for",
    "Window",
    "regular_window",
    "playoff_window",
    "season_window",
    "fold_weeks",
    "aggregate",
    "relabel",
    "qualifiers",
    "aggregate_qualifiers",
    "week_leaders",
    "running_totals",
    "sort_standings",
    "toggle_sort",
    "standings_rows",
]
