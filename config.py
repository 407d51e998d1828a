"""
Runtime configuration for the weight tracker.

All values come from environment variables so the Streamlit app, the sample
data generator and the tests can point at different store files.
"""
from __future__ import annotations

import os

import pytz

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

STORE_PATH: str = os.getenv("WEIGHT_TRACKER_STORE_PATH", os.path.join(BASE_DIR, "weight_store.json"))
LOCAL_TZ = pytz.timezone(os.getenv("WEIGHT_TRACKER_TZ", "UTC"))
DEFAULT_USER: str = os.getenv("WEIGHT_TRACKER_DEFAULT_USER", "Damo")
DEFAULT_GRANULARITY: str = os.getenv("WEIGHT_TRACKER_GRANULARITY", "daily").lower()
LOG_LEVEL: str = os.getenv("WEIGHT_TRACKER_LOG_LEVEL", "INFO").upper()

# Literal defaults for a profile that has never been edited
DEFAULT_START_WEIGHT = 116.4
DEFAULT_GOAL_WEIGHT = 100.0
DEFAULT_START_DATE = "2025-05-04"
DEFAULT_GOAL_DATE = "2025-09-27"
