"""Write a demo user with a noisy downward weight history into the store file.

Usage: python generatedata.py [USER] [SEED]
"""
import sys

import numpy as np
import pandas as pd

import config
from store import DEFAULT_PROFILE, load_store, put_profile, save_store
from trajectory import upsert_log

# Parameters
user = sys.argv[1] if len(sys.argv) > 1 else "Demo"
seed = int(sys.argv[2]) if len(sys.argv) > 2 else None
rng = np.random.default_rng(seed)
days = 120
profile = DEFAULT_PROFILE
dates = pd.date_range(profile.start_date, periods=days, freq="D").date

# Pick some gap start indices
gap_starts = set(rng.choice(days - 15, size=4, replace=False).tolist())

# General downward trend, ~0.09 kg/day, with daily noise
trend = profile.start_weight - 0.09 * np.arange(days)
noise = rng.uniform(-0.8, 0.8, size=days)

i = 0
while i < days:
    if i in gap_starts:
        i += int(rng.integers(3, 8))  # skip 3-7 days for a gap
        continue
    profile = upsert_log(profile, dates[i], round(float(trend[i] + noise[i]), 1))
    i += 1

store = put_profile(load_store(config.STORE_PATH), user, profile)
save_store(store, config.STORE_PATH)
print(f"Wrote {len(profile.logs)} entries for {user} to {config.STORE_PATH}")
