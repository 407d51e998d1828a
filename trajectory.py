"""
Progress and trajectory computations for a single user profile.

Everything here is a pure function over immutable values: callers pass a
UserProfile in and get a new one (or a derived summary/series) back. Storing
the result is the caller's job, see store.py.

Run the doctests with:
    RUN_DOCTESTS=1 python trajectory.py
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import pandas as pd
from dateutil import parser as dateparser

log = logging.getLogger(__name__)

GRANULARITY_STEPS: Dict[str, int] = {"daily": 1, "weekly": 7}

_DEFAULT_A = datetime(2000, 1, 1)
_DEFAULT_B = datetime(2001, 2, 2)


# -------------------------------
# Data model
# -------------------------------

@dataclass(frozen=True)
class LogEntry:
    date: date
    weight: float
    change: float = 0.0
    progress: float = 0.0


@dataclass(frozen=True)
class UserProfile:
    start_weight: float
    goal_weight: float
    start_date: date
    goal_date: date
    logs: Tuple[LogEntry, ...] = ()


@dataclass(frozen=True)
class Summary:
    total_days: int
    days_elapsed: int
    days_remaining: int
    current_weight: float
    weight_progress_pct: float
    change_since_last: float
    target_today: float


@dataclass(frozen=True)
class SeriesPoint:
    date: date
    target: float
    actual: Optional[float] = None


# -------------------------------
# Input parsing
# -------------------------------

def parse_date(value) -> Optional[date]:
    """
    Coerce user input into a calendar date, or None when it cannot be read.

    >>> parse_date("2025-06-01")
    datetime.date(2025, 6, 1)
    >>> parse_date(datetime(2025, 6, 1, 22, 15))
    datetime.date(2025, 6, 1)
    >>> parse_date("") is None and parse_date("banana") is None
    True
    >>> [parse_date(v) for v in ("10", "June", "2025-06")]
    [None, None, None]
    """
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    # dateutil fills missing fields from `default`; two different defaults
    # only agree when the text names year, month and day itself
    try:
        first = dateparser.parse(text, default=_DEFAULT_A).date()
        second = dateparser.parse(text, default=_DEFAULT_B).date()
    except (ValueError, OverflowError):
        return None
    if first != second:
        return None
    return first


def parse_weight(value) -> Optional[float]:
    """
    >>> parse_weight(" 110.5 ")
    110.5
    >>> [parse_weight(v) for v in (None, "", "abc", float("nan"))]
    [None, None, None, None]
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        weight = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(weight):
        return None
    return weight


# -------------------------------
# Core calculations
# -------------------------------

def total_days(profile: UserProfile) -> int:
    return max(0, (profile.goal_date - profile.start_date).days)


def entry_progress(profile: UserProfile, weight: float) -> float:
    """
    Percent of the planned change achieved at `weight`, one decimal, unclamped.

    Overshooting the goal gives values above 100 and gaining past the start
    weight gives negative values. A profile whose start and goal weights are
    equal has no planned change and always reports 0.

    >>> p = UserProfile(116.4, 100.0, date(2025, 5, 4), date(2025, 9, 27))
    >>> entry_progress(p, 110)
    39.0
    >>> entry_progress(p, 98.0)
    112.2
    """
    span = profile.start_weight - profile.goal_weight
    if span == 0:
        return 0.0
    return round((profile.start_weight - weight) / span * 100, 1)


def target_weight(profile: UserProfile, offset_days: int) -> float:
    """Expected weight `offset_days` after the start date on the linear plan."""
    n = total_days(profile)
    if n == 0:
        return round(profile.start_weight, 1)
    offset_days = min(max(offset_days, 0), n)
    delta = profile.start_weight - profile.goal_weight
    return round(profile.start_weight - (delta / n) * offset_days, 1)


def compute_summary(profile: UserProfile, today: date) -> Summary:
    """
    Derive the headline numbers shown above the charts.

    - days are counted from start_date; elapsed is clamped to [0, total_days]
    - current weight is the latest logged weight, or the start weight
    - progress is clamped to [0, 100] and rounded to one decimal

    >>> p = UserProfile(116.4, 100.0, date(2025, 5, 4), date(2025, 9, 27))
    >>> s = compute_summary(p, date(2025, 6, 1))
    >>> (s.total_days, s.days_elapsed, s.days_remaining, s.current_weight, s.weight_progress_pct)
    (146, 28, 118, 116.4, 0.0)
    >>> s = compute_summary(upsert_log(p, "2025-06-01", 110), date(2025, 6, 1))
    >>> s.weight_progress_pct
    39.0
    """
    n = total_days(profile)
    elapsed = min(max((today - profile.start_date).days, 0), n)
    remaining = max(0, n - elapsed)

    if profile.logs:
        latest = profile.logs[-1]
        current = latest.weight
        change_since_last = latest.change
    else:
        current = profile.start_weight
        change_since_last = 0.0

    span = profile.start_weight - profile.goal_weight
    if span == 0:
        pct = 0.0
    else:
        pct = (profile.start_weight - current) / span * 100
        pct = round(min(max(pct, 0.0), 100.0), 1)

    return Summary(
        total_days=n,
        days_elapsed=elapsed,
        days_remaining=remaining,
        current_weight=current,
        weight_progress_pct=pct,
        change_since_last=change_since_last,
        target_today=target_weight(profile, elapsed),
    )


class TrajectorySeries:
    """
    The plan line merged with logged weights, one point per step.

    Iterating yields SeriesPoint records from start_date to goal_date
    inclusive. Points are generated on demand, so the series can be walked
    any number of times. For weekly steps the goal date is appended when it
    does not land on a step, so the last point always carries the goal weight.

    >>> p = UserProfile(116.4, 100.0, date(2025, 5, 4), date(2025, 9, 27))
    >>> s = build_series(upsert_log(p, "2025-05-05", 116.0))
    >>> len(s)
    147
    >>> pts = list(s)
    >>> pts[0].target, pts[1].actual, pts[2].actual, pts[-1].target
    (116.4, 116.0, None, 100.0)
    """

    def __init__(self, profile: UserProfile, granularity: str = "daily"):
        if granularity not in GRANULARITY_STEPS:
            raise ValueError(f"Unknown granularity {granularity!r}; expected one of {sorted(GRANULARITY_STEPS)}")
        self.profile = profile
        self.granularity = granularity
        self.step_days = GRANULARITY_STEPS[granularity]
        self.total_days = total_days(profile)
        self._actuals = {entry.date: entry.weight for entry in profile.logs}

    def _offsets(self) -> Iterator[int]:
        yield from range(0, self.total_days + 1, self.step_days)
        if self.total_days % self.step_days:
            yield self.total_days

    def __iter__(self) -> Iterator[SeriesPoint]:
        start = self.profile.start_date
        for offset in self._offsets():
            day = start + timedelta(days=offset)
            yield SeriesPoint(date=day, target=target_weight(self.profile, offset), actual=self._actuals.get(day))

    def __len__(self) -> int:
        steps = self.total_days // self.step_days + 1
        return steps + (1 if self.total_days % self.step_days else 0)

    def to_frame(self) -> pd.DataFrame:
        """Columns Date, Target, Actual; days without a log have Actual = NaN."""
        df = pd.DataFrame(
            [{"Date": p.date, "Target": p.target, "Actual": p.actual} for p in self],
            columns=["Date", "Target", "Actual"],
        )
        df["Actual"] = pd.to_numeric(df["Actual"], errors="coerce").astype(float)
        return df


def build_series(profile: UserProfile, granularity: str = "daily") -> TrajectorySeries:
    return TrajectorySeries(profile, granularity)


# -------------------------------
# Log mutations
# -------------------------------

def _change_at(entries: Sequence[LogEntry], idx: int) -> float:
    if idx == 0:
        return 0.0
    return round(entries[idx].weight - entries[idx - 1].weight, 1)


def upsert_log(profile: UserProfile, entry_date, weight) -> UserProfile:
    """
    Add or replace the entry for `entry_date` and return the updated profile.

    Input that cannot be read as a date and a finite weight leaves the profile
    untouched. The written entry gets a fresh change and progress, and the
    entry after it gets its change recomputed against the new predecessor.

    >>> p = UserProfile(116.4, 100.0, date(2025, 5, 4), date(2025, 9, 27))
    >>> p = upsert_log(p, "2025-05-10", 112)
    >>> p = upsert_log(p, "2025-05-20", 111)
    >>> p = upsert_log(p, "2025-05-15", 113.5)
    >>> [(str(e.date), e.change) for e in p.logs]
    [('2025-05-10', 0.0), ('2025-05-15', 1.5), ('2025-05-20', -2.5)]
    >>> upsert_log(p, "", 110) is p
    True
    """
    day = parse_date(entry_date)
    kg = parse_weight(weight)
    if day is None or kg is None:
        log.debug("Ignoring log write with date=%r weight=%r", entry_date, weight)
        return profile

    entries: List[LogEntry] = [e for e in profile.logs if e.date != day]
    entries.append(LogEntry(date=day, weight=kg))
    entries.sort(key=lambda e: e.date)

    idx = next(i for i, e in enumerate(entries) if e.date == day)
    entries[idx] = replace(entries[idx], change=_change_at(entries, idx), progress=entry_progress(profile, kg))
    if idx + 1 < len(entries):
        entries[idx + 1] = replace(entries[idx + 1], change=_change_at(entries, idx + 1))

    return replace(profile, logs=tuple(entries))


def delete_log(profile: UserProfile, entry_date) -> UserProfile:
    """
    Remove the entry for `entry_date`. Deleting a date that has no entry
    returns the very same profile.

    >>> p = upsert_log(UserProfile(116.4, 100.0, date(2025, 5, 4), date(2025, 9, 27)), "2025-05-10", 112)
    >>> delete_log(p, "2025-05-10").logs
    ()
    >>> delete_log(p, "2025-05-11") is p
    True
    """
    day = parse_date(entry_date)
    if day is None or all(e.date != day for e in profile.logs):
        return profile

    entries = [e for e in profile.logs if e.date != day]
    successor = sum(1 for e in entries if e.date < day)
    if successor < len(entries):
        entries[successor] = replace(entries[successor], change=_change_at(entries, successor))

    return replace(profile, logs=tuple(entries))


def recompute_entries(profile: UserProfile) -> UserProfile:
    """Recalculate change and progress for every entry, e.g. after the goal moved."""
    entries = sorted(profile.logs, key=lambda e: e.date)
    fresh = [
        replace(e, change=_change_at(entries, i), progress=entry_progress(profile, e.weight))
        for i, e in enumerate(entries)
    ]
    return replace(profile, logs=tuple(fresh))


# -------------------------------
# Lightweight tests (doctests)
# -------------------------------

def _run_doctests_if_requested():
    import os as _os
    if _os.environ.get("RUN_DOCTESTS", "0") == "1":
        import doctest as _doctest
        _doctest.testmod(verbose=True)


if __name__ == "__main__":
    _run_doctests_if_requested()
