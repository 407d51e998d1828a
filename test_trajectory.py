"""Tests for the progress and trajectory calculations."""
import doctest
from datetime import date, datetime, timedelta

import numpy as np
import pandas as pd
import pytest

import trajectory
from trajectory import (
    LogEntry,
    UserProfile,
    build_series,
    compute_summary,
    delete_log,
    entry_progress,
    recompute_entries,
    upsert_log,
)


@pytest.fixture
def profile():
    return UserProfile(
        start_weight=116.4,
        goal_weight=100.0,
        start_date=date(2025, 5, 4),
        goal_date=date(2025, 9, 27),
    )


def test_doctests():
    result = doctest.testmod(trajectory)
    assert result.failed == 0


# -------------------------------
# compute_summary
# -------------------------------

def test_summary_without_logs_uses_start_weight(profile):
    s = compute_summary(profile, date(2025, 5, 14))
    assert s.current_weight == 116.4
    assert s.weight_progress_pct == 0
    assert s.days_elapsed == 10
    assert s.total_days == 146
    assert s.days_remaining == 136
    assert s.change_since_last == 0


def test_summary_progress_example(profile):
    p = upsert_log(profile, date(2025, 6, 1), 110)
    s = compute_summary(p, date(2025, 6, 1))
    assert s.days_elapsed == 28
    assert s.current_weight == 110
    assert s.weight_progress_pct == pytest.approx(39.0)


@pytest.mark.parametrize("weight", [130.0, 116.4, 108.2, 100.0, 90.0])
def test_summary_progress_is_clamped(profile, weight):
    p = upsert_log(profile, "2025-06-01", weight)
    pct = compute_summary(p, date(2025, 6, 1)).weight_progress_pct
    assert 0.0 <= pct <= 100.0


def test_summary_progress_for_overshoot_and_gain(profile):
    over = upsert_log(profile, "2025-06-01", 95.0)
    gain = upsert_log(profile, "2025-06-01", 120.0)
    assert compute_summary(over, date(2025, 6, 1)).weight_progress_pct == 100.0
    assert compute_summary(gain, date(2025, 6, 1)).weight_progress_pct == 0.0


def test_summary_days_are_clamped(profile):
    before = compute_summary(profile, date(2025, 1, 1))
    after = compute_summary(profile, date(2026, 1, 1))
    assert (before.days_elapsed, before.days_remaining) == (0, 146)
    assert (after.days_elapsed, after.days_remaining) == (146, 0)


def test_summary_equal_start_and_goal_weight(profile):
    flat = UserProfile(100.0, 100.0, profile.start_date, profile.goal_date)
    flat = upsert_log(flat, "2025-06-01", 98.0)
    s = compute_summary(flat, date(2025, 6, 1))
    assert s.weight_progress_pct == 0.0
    assert flat.logs[0].progress == 0.0


def test_summary_goal_before_start(profile):
    backwards = UserProfile(116.4, 100.0, date(2025, 9, 27), date(2025, 5, 4))
    s = compute_summary(backwards, date(2025, 6, 1))
    assert (s.total_days, s.days_elapsed, s.days_remaining) == (0, 0, 0)
    assert s.target_today == 116.4


def test_summary_target_today_follows_plan(profile):
    s = compute_summary(profile, date(2025, 9, 27))
    assert s.target_today == pytest.approx(100.0)


# -------------------------------
# build_series
# -------------------------------

def test_daily_series_covers_every_day(profile):
    points = list(build_series(profile))
    assert len(points) == 147
    dates = [p.date for p in points]
    assert dates[0] == profile.start_date
    assert dates[-1] == profile.goal_date
    assert all(b - a == timedelta(days=1) for a, b in zip(dates, dates[1:]))


def test_series_endpoints(profile):
    points = list(build_series(profile))
    assert points[0].target == pytest.approx(116.4)
    assert points[-1].target == pytest.approx(100.0, abs=0.05)


def test_series_targets_are_one_decimal_and_monotonic(profile):
    targets = [p.target for p in build_series(profile)]
    assert all(round(t, 1) == t for t in targets)
    assert all(b <= a for a, b in zip(targets, targets[1:]))


def test_series_merges_logs_by_exact_date(profile):
    p = upsert_log(profile, "2025-05-06", 115.2)
    p = upsert_log(p, "2025-05-08", 114.9)
    by_date = {pt.date: pt.actual for pt in build_series(p)}
    assert by_date[date(2025, 5, 6)] == 115.2
    assert by_date[date(2025, 5, 8)] == 114.9
    assert by_date[date(2025, 5, 7)] is None


def test_series_ignores_logs_outside_window(profile):
    p = upsert_log(profile, "2025-04-01", 118.0)
    assert all(pt.actual is None for pt in build_series(p))


def test_series_is_restartable(profile):
    series = build_series(upsert_log(profile, "2025-05-05", 116.0))
    assert list(series) == list(series)
    assert len(series) == len(list(series))


def test_weekly_series_ends_on_goal(profile):
    series = build_series(profile, "weekly")
    points = list(series)
    # 146 days: 21 whole weeks plus the goal date
    assert len(series) == len(points) == 22
    assert points[0].date == profile.start_date
    assert points[-2].date == profile.start_date + timedelta(days=140)
    assert points[-1].date == profile.goal_date
    assert points[-1].target == pytest.approx(100.0)


def test_weekly_series_exact_weeks():
    p = UserProfile(100.0, 92.0, date(2025, 1, 1), date(2025, 1, 29))
    points = list(build_series(p, "weekly"))
    assert [pt.date.day for pt in points] == [1, 8, 15, 22, 29]
    assert [pt.target for pt in points] == [100.0, 98.0, 96.0, 94.0, 92.0]


def test_degenerate_series_is_single_point():
    for goal in (date(2025, 5, 4), date(2025, 5, 1)):
        p = UserProfile(116.4, 100.0, date(2025, 5, 4), goal)
        points = list(build_series(p))
        assert len(points) == 1
        assert points[0].target == 116.4
        assert points[0].date == date(2025, 5, 4)


def test_unknown_granularity(profile):
    with pytest.raises(ValueError):
        build_series(profile, "monthly")


def test_series_frame_uses_nan_for_missing(profile):
    p = upsert_log(profile, "2025-05-05", 116.0)
    df = build_series(p).to_frame()
    assert list(df.columns) == ["Date", "Target", "Actual"]
    assert len(df) == 147
    assert df["Actual"].dtype == np.float64
    assert df["Actual"].notna().sum() == 1
    assert df.loc[1, "Actual"] == 116.0
    assert pd.isna(df.loc[0, "Actual"])


def test_series_frame_all_missing(profile):
    df = build_series(profile, "weekly").to_frame()
    assert df["Actual"].isna().all()
    assert (df["Actual"] != 0).all()


# -------------------------------
# upsert_log / delete_log
# -------------------------------

def test_upsert_same_date_keeps_latest(profile):
    p = upsert_log(profile, "2025-06-01", 110)
    p = upsert_log(p, "2025-06-01", 109.5)
    assert len(p.logs) == 1
    assert p.logs[0].weight == 109.5


def test_upsert_entry_fields(profile):
    p = upsert_log(profile, "2025-06-01", "110")
    entry = p.logs[0]
    assert entry == LogEntry(date=date(2025, 6, 1), weight=110.0, change=0.0, progress=39.0)


def test_upsert_accepts_datetime_and_timestamp(profile):
    p = upsert_log(profile, datetime(2025, 6, 1, 7, 30), 110)
    p = upsert_log(p, pd.Timestamp("2025-06-02"), 109.6)
    assert [e.date for e in p.logs] == [date(2025, 6, 1), date(2025, 6, 2)]
    assert p.logs[1].change == pytest.approx(-0.4)


def test_upsert_keeps_logs_sorted(profile):
    p = profile
    for day, w in [("2025-05-20", 111), ("2025-05-10", 112), ("2025-05-15", 113.5)]:
        p = upsert_log(p, day, w)
    assert [e.date.day for e in p.logs] == [10, 15, 20]
    assert [e.change for e in p.logs] == [0.0, 1.5, -2.5]


def test_overwriting_middle_entry_refreshes_successor(profile):
    p = profile
    for day, w in [("2025-05-10", 112), ("2025-05-15", 113.5), ("2025-05-20", 113)]:
        p = upsert_log(p, day, w)
    p = upsert_log(p, "2025-05-15", 115)
    assert [e.weight for e in p.logs] == [112.0, 115.0, 113.0]
    assert [e.change for e in p.logs] == [0.0, 3.0, -2.0]
    assert p.logs[1].progress == entry_progress(profile, 115)


def test_full_non_iso_dates_are_accepted(profile):
    p = upsert_log(profile, "June 1, 2025", 110)
    assert [e.date for e in p.logs] == [date(2025, 6, 1)]


@pytest.mark.parametrize("text", ["10", "June", "2025-06", "2025"])
def test_partial_dates_are_rejected(text):
    assert trajectory.parse_date(text) is None


def test_upsert_recomputes_successor_when_prepending(profile):
    p = upsert_log(profile, "2025-05-20", 111)
    p = upsert_log(p, "2025-05-10", 112)
    assert [e.change for e in p.logs] == [0.0, -1.0]


def test_upsert_entry_progress_is_unclamped(profile):
    p = upsert_log(profile, "2025-06-01", 98.0)
    assert p.logs[0].progress == pytest.approx(112.2)
    p = upsert_log(profile, "2025-06-01", 118.0)
    assert p.logs[0].progress < 0


@pytest.mark.parametrize("entry_date, weight", [
    (None, 110),
    ("", 110),
    ("not-a-date", 110),
    ("2025-06-01", None),
    ("2025-06-01", ""),
    ("2025-06-01", "abc"),
    ("2025-06-01", float("nan")),
    ("2025-06-01", float("inf")),
    ("10", 110),
    ("June", 110),
    ("2025-06", 110),
])
def test_upsert_invalid_input_is_noop(profile, entry_date, weight):
    assert upsert_log(profile, entry_date, weight) is profile


def test_upsert_does_not_mutate_input(profile):
    p = upsert_log(profile, "2025-06-01", 110)
    upsert_log(p, "2025-06-02", 109)
    assert len(p.logs) == 1
    assert profile.logs == ()


def test_delete_only_entry():
    p = UserProfile(116.4, 100.0, date(2025, 5, 4), date(2025, 9, 27))
    p = upsert_log(p, "2025-05-10", 112)
    assert delete_log(p, "2025-05-10").logs == ()


def test_delete_missing_date_is_identity(profile):
    p = upsert_log(profile, "2025-05-10", 112)
    assert delete_log(p, "2025-05-11") is p
    assert delete_log(p, None) is p
    assert delete_log(profile, date(2025, 5, 10)) is profile


def test_delete_refreshes_successor_change(profile):
    p = profile
    for day, w in [("2025-05-10", 112), ("2025-05-15", 113.5), ("2025-05-20", 111)]:
        p = upsert_log(p, day, w)
    p = delete_log(p, "2025-05-15")
    assert [(e.date.day, e.change) for e in p.logs] == [(10, 0.0), (20, -1.0)]


def test_recompute_entries_after_goal_change(profile):
    p = upsert_log(profile, "2025-06-01", 110)
    moved = recompute_entries(UserProfile(116.4, 108.4, p.start_date, p.goal_date, p.logs))
    assert moved.logs[0].progress == pytest.approx(80.0)


def test_entry_progress_matches_formula(profile):
    assert entry_progress(profile, 116.4) == 0.0
    assert entry_progress(profile, 100.0) == 100.0
