import pytest

from mnps.compute import (
    RawMatchupRecord,
    classify_season,
    classify_week,
    multiplier_for_season,
    top_cutoff_for,
)
from mnps.errors import InvalidInput, MalformedRecord


def _week(points):
    return [{"roster_id": i + 1, "points": p, "matchup_id": i // 2 + 1} for i, p in enumerate(points)]


TWELVE = [120, 110, 100, 90, 80, 70, 60, 50, 40, 30, 20, 10]


def test_twelve_team_week_flags_top_six():
    entries = classify_week(1, _week(TWELVE), 0.0653, 6)
    tops = [e.roster_id for e in entries if e.is_top]
    assert tops == [1, 2, 3, 4, 5, 6]
    by_id = {e.roster_id: e for e in entries}
    assert by_id[1].score == pytest.approx(12.836)
    assert by_id[7].score == pytest.approx(3.918)
    assert by_id[7].is_top is False


@pytest.mark.parametrize("n,cutoff", [(1, 6), (4, 6), (6, 6), (12, 6), (12, 5), (3, 5), (10, 1)])
def test_exactly_min_cutoff_flagged(n, cutoff):
    entries = classify_week(3, _week([float(100 - i) for i in range(n)]), 0.082, cutoff)
    assert len(entries) == n
    assert sum(e.is_top for e in entries) == min(cutoff, n)


def test_score_formula_holds_for_every_entry():
    entries = classify_week(5, _week([133.4, 98.2, 101.7, 87.0, 150.1, 64.3, 110.0]), 0.082, 5)
    for e in entries:
        assert e.score == (5 if e.is_top else 0) + e.points * 0.082


def test_ties_keep_feed_order():
    rows = [
        {"roster_id": 9, "points": 100},
        {"roster_id": 3, "points": 120},
        {"roster_id": 4, "points": 100},
        {"roster_id": 1, "points": 100},
    ]
    entries = classify_week(2, rows, 0.0653, 2)
    # roster 9 appears before 4 and 1 in the feed, so it takes the last slot
    assert [e.roster_id for e in entries if e.is_top] == [9, 3]


def test_output_keeps_feed_order():
    rows = _week([10, 50, 30])
    entries = classify_week(4, rows, 0.0653, 1)
    assert [e.roster_id for e in entries] == [1, 2, 3]
    assert [e.is_top for e in entries] == [False, True, False]


def test_null_points_count_as_zero():
    rows = [
        {"roster_id": 1, "points": None},
        {"roster_id": 2, "points": 12.5},
        {"roster_id": 3},
    ]
    entries = classify_week(1, rows, 0.0653, 2)
    by_id = {e.roster_id: e for e in entries}
    assert by_id[1].points == 0.0
    assert by_id[3].points == 0.0
    assert by_id[2].is_top
    # first zero in feed order wins the second slot
    assert by_id[1].is_top and not by_id[3].is_top
    assert by_id[1].score == 5.0


def test_empty_week_yields_nothing():
    assert classify_week(8, [], 0.0653, 6) == []
    assert classify_week(8, None, 0.0653, 6) == []


def test_malformed_record_dropped_and_reported():
    rows = [
        {"points": 200.0},
        {"roster_id": 1, "points": 90},
        {"roster_id": 2, "points": 80},
        {"roster_id": 3, "points": 70},
    ]
    problems = []
    entries = classify_week(6, rows, 0.0653, 2, problems)
    assert [e.roster_id for e in entries] == [1, 2, 3]
    assert [e.roster_id for e in entries if e.is_top] == [1, 2]
    assert len(problems) == 1
    assert isinstance(problems[0], MalformedRecord)
    assert problems[0].week == 6 and problems[0].index == 0


def test_malformed_record_without_problem_list_is_still_dropped():
    entries = classify_week(6, [{"roster_id": None, "points": 1}, {"roster_id": 2, "points": 3}], 0.0653, 6)
    assert [e.roster_id for e in entries] == [2]


def test_accepts_raw_matchup_records():
    recs = [RawMatchupRecord(1, 100.0), RawMatchupRecord(2, None), RawMatchupRecord(3, 50.0)]
    entries = classify_week(1, recs, 0.082, 1)
    assert [e.is_top for e in entries] == [True, False, False]
    assert entries[1].score == 0.0


def test_from_api_rejects_missing_roster_id():
    with pytest.raises(MalformedRecord):
        RawMatchupRecord.from_api({"points": 1.0}, week=2, index=4)


def test_from_api_rejects_fractional_roster_id():
    with pytest.raises(MalformedRecord) as exc:
        RawMatchupRecord.from_api({"roster_id": 1.5, "points": 10.0}, week=2, index=0)
    assert "1.5" in str(exc.value)
    assert RawMatchupRecord.from_api({"roster_id": 4.0, "points": 10.0}).roster_id == 4


@pytest.mark.parametrize("week", [0, 18, -1, "x", None, 3.7, 14.5])
def test_invalid_week_rejected(week):
    with pytest.raises(InvalidInput):
        classify_week(week, _week([1, 2]), 0.0653, 6)


def test_integral_float_week_accepted():
    entries = classify_week(3.0, _week([1, 2]), 0.0653, 6)
    assert {e.week for e in entries} == {3}


@pytest.mark.parametrize("cutoff", [0, -3, 2.5, True])
def test_invalid_cutoff_rejected(cutoff):
    with pytest.raises(InvalidInput):
        classify_week(1, _week([1, 2]), 0.0653, cutoff)


def test_multiplier_policy():
    assert multiplier_for_season(2024) == 0.0653
    assert multiplier_for_season("2025") == 0.0653
    assert multiplier_for_season(2023) == 0.082
    assert multiplier_for_season("2022") == 0.082
    with pytest.raises(InvalidInput):
        multiplier_for_season("next year")


def test_same_points_score_differently_across_seasons():
    rows = _week([100.0, 50.0])
    old = classify_week(1, rows, multiplier_for_season(2022), 6)
    new = classify_week(1, rows, multiplier_for_season(2024), 6)
    assert old[0].score == pytest.approx(5 + 8.2)
    assert new[0].score == pytest.approx(5 + 6.53)
    assert old[1].score != new[1].score


def test_top_cutoff_policy():
    assert top_cutoff_for("standard") == 6
    assert top_cutoff_for("Dynasty") == 5
    with pytest.raises(InvalidInput):
        top_cutoff_for("keeper")


def test_classify_season_skips_empty_weeks():
    weeks = {1: _week([10, 20]), 2: [], 3: _week([5, 1])}
    out = classify_season(weeks, 0.0653, 6)
    assert sorted(out) == [1, 3]
