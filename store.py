"""
Persistence for the per-user progress store.

The store is one JSON object mapping user name -> profile, read in full and
rewritten in full on every change. Key names follow the camelCase layout of
the browser local-storage blob the tracker originally used, so an exported
blob can be dropped in as the store file unchanged:

    {"Damo": {"startWeight": 116.4, "goalWeight": 100, "startDate": "2025-05-04",
              "goalDate": "2025-09-27",
              "logs": [{"date": "2025-06-01", "weight": 110, "change": 0, "progress": 39.0}]}}
"""
from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
import threading
from dataclasses import replace
from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

import config
from trajectory import (
    LogEntry,
    UserProfile,
    parse_date,
    parse_weight,
    recompute_entries,
)

log = logging.getLogger(__name__)

ProgressStore = Dict[str, UserProfile]

# mode for a store file that does not exist yet (mkstemp alone would give 0600)
STORE_FILE_MODE = 0o644

DEFAULT_PROFILE = UserProfile(
    start_weight=config.DEFAULT_START_WEIGHT,
    goal_weight=config.DEFAULT_GOAL_WEIGHT,
    start_date=parse_date(config.DEFAULT_START_DATE),
    goal_date=parse_date(config.DEFAULT_GOAL_DATE),
    logs=(),
)


# -------------------------------
# JSON codec
# -------------------------------

def _entries_from_rows(rows) -> Tuple[List[LogEntry], bool]:
    """Readable entries, oldest first, and whether any of them lacks change/progress."""
    by_date: Dict[date, dict] = {}
    for row in rows if isinstance(rows, list) else []:
        if not isinstance(row, dict):
            continue
        day = parse_date(row.get("date"))
        weight = parse_weight(row.get("weight"))
        if day is None or weight is None:
            log.warning("Dropping unreadable log row %r", row)
            continue
        # later rows for the same date win
        by_date[day] = dict(row, weight=weight)
    entries = []
    legacy = False
    for day in sorted(by_date):
        row = by_date[day]
        legacy = legacy or "change" not in row or "progress" not in row
        change = parse_weight(row.get("change"))
        progress = parse_weight(row.get("progress"))
        entries.append(LogEntry(
            date=day,
            weight=row["weight"],
            change=0.0 if change is None else change,
            progress=0.0 if progress is None else progress,
        ))
    return entries, legacy


def profile_from_dict(obj) -> UserProfile:
    """
    Build a profile from its stored form, falling back to defaults field by field.

    Kept rows written by older versions without change/progress have both
    recomputed; rows that carry them keep the stored values.
    """
    if not isinstance(obj, dict):
        return DEFAULT_PROFILE

    start_weight = parse_weight(obj.get("startWeight"))
    goal_weight = parse_weight(obj.get("goalWeight"))
    entries, legacy = _entries_from_rows(obj.get("logs"))
    profile = UserProfile(
        start_weight=start_weight if start_weight is not None else DEFAULT_PROFILE.start_weight,
        goal_weight=goal_weight if goal_weight is not None else DEFAULT_PROFILE.goal_weight,
        start_date=parse_date(obj.get("startDate")) or DEFAULT_PROFILE.start_date,
        goal_date=parse_date(obj.get("goalDate")) or DEFAULT_PROFILE.goal_date,
        logs=tuple(entries),
    )
    if legacy:
        profile = recompute_entries(profile)
    return profile


def profile_to_dict(profile: UserProfile) -> Dict[str, object]:
    return {
        "startWeight": profile.start_weight,
        "goalWeight": profile.goal_weight,
        "startDate": profile.start_date.isoformat(),
        "goalDate": profile.goal_date.isoformat(),
        "logs": [
            {
                "date": e.date.isoformat(),
                "weight": e.weight,
                "change": e.change,
                "progress": e.progress,
            }
            for e in profile.logs
        ],
    }


def store_from_json(text: str) -> ProgressStore:
    """
    Decode a whole store. Empty or malformed text yields an empty store.

    >>> store_from_json("")
    {}
    >>> store_from_json('{"Ana": {"goalWeight": 90}}')["Ana"].goal_weight
    90.0
    """
    if not text or not text.strip():
        return {}
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as e:
        log.warning("Progress store is not valid JSON, starting empty: %s", e)
        return {}
    if not isinstance(obj, dict):
        log.warning("Progress store has unexpected top-level type %s, starting empty", type(obj).__name__)
        return {}
    return {str(name): profile_from_dict(profile) for name, profile in obj.items()}


def store_to_json(store: ProgressStore) -> str:
    return json.dumps({name: profile_to_dict(p) for name, p in store.items()}, indent=2)


# -------------------------------
# File persistence
# -------------------------------

def load_store(path: str = config.STORE_PATH) -> ProgressStore:
    if not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    store = store_from_json(text)
    log.debug("Loaded %d profile(s) from %s", len(store), path)
    return store


def save_store(store: ProgressStore, path: str = config.STORE_PATH) -> None:
    """
    Write the whole store, replacing the file only once the new copy is complete.

    The replacement keeps the permissions of the file it replaces; a new
    store file is created with STORE_FILE_MODE.
    """
    directory = os.path.dirname(os.path.abspath(path))
    mode = stat.S_IMODE(os.stat(path).st_mode) if os.path.exists(path) else STORE_FILE_MODE
    fd, tmp_path = tempfile.mkstemp(prefix=".weight_store.", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(store_to_json(store))
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
    log.debug("Saved %d profile(s) to %s", len(store), path)


# -------------------------------
# Store operations
# -------------------------------

def get_profile(store: ProgressStore, name: str) -> UserProfile:
    return store.get(name, DEFAULT_PROFILE)


def put_profile(store: ProgressStore, name: str, profile: UserProfile) -> ProgressStore:
    updated = dict(store)
    updated[name] = profile
    return updated


def user_names(store: ProgressStore, default_user: str = config.DEFAULT_USER) -> List[str]:
    """
    >>> user_names({}, "Damo")
    ['Damo']
    """
    names = set(store)
    names.add(default_user)
    return sorted(names)


def add_user(store: ProgressStore, name: Optional[str], default_user: str = config.DEFAULT_USER) -> Tuple[ProgressStore, bool]:
    """
    Register a new user under `name` with the default profile.

    Returns (store, created). Blank names and names already in use leave the
    store as it was.
    """
    name = (name or "").strip()
    if not name or name in user_names(store, default_user):
        return store, False
    return put_profile(store, name, DEFAULT_PROFILE), True


def update_settings(
    profile: UserProfile,
    start_weight=None,
    goal_weight=None,
    start_date=None,
    goal_date=None,
) -> UserProfile:
    """
    Apply the settings that parse and ignore the rest.

    Moving either weight rescales every stored entry's progress.
    """
    changes = {}
    for field, value, parse in (
        ("start_weight", start_weight, parse_weight),
        ("goal_weight", goal_weight, parse_weight),
        ("start_date", start_date, parse_date),
        ("goal_date", goal_date, parse_date),
    ):
        parsed = parse(value)
        if parsed is not None and parsed != getattr(profile, field):
            changes[field] = parsed
    if not changes:
        return profile

    updated = replace(profile, **changes)
    if "start_weight" in changes or "goal_weight" in changes:
        updated = recompute_entries(updated)
    return updated


_LOCKS: Dict[str, threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: str) -> threading.Lock:
    key = os.path.realpath(path)
    with _LOCKS_GUARD:
        return _LOCKS.setdefault(key, threading.Lock())


class ProgressStoreFile:
    """
    A store file with serialized read-modify-write cycles.

    Streamlit serves every browser session from its own thread, so two
    sessions saving at once would otherwise overwrite each other's writes.
    All instances pointing at the same file share one lock.
    """

    def __init__(self, path: str = config.STORE_PATH):
        self.path = path
        self._lock = _lock_for(path)

    def read(self) -> ProgressStore:
        with self._lock:
            return load_store(self.path)

    def profile(self, name: str) -> UserProfile:
        return get_profile(self.read(), name)

    def update(self, name: str, fn: Callable[[UserProfile], UserProfile]) -> UserProfile:
        """Apply `fn` to the stored profile for `name` and persist the result."""
        with self._lock:
            store = load_store(self.path)
            current = get_profile(store, name)
            updated = fn(current)
            if updated is current and name in store:
                return current
            save_store(put_profile(store, name, updated), self.path)
            log.info("Saved profile for %s (%d log entries)", name, len(updated.logs))
            return updated

    def add_user(self, name: Optional[str]) -> bool:
        with self._lock:
            store, created = add_user(load_store(self.path), name)
            if created:
                save_store(store, self.path)
                log.info("Created user %s", name.strip())
            return created
