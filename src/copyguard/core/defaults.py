"""Centralized configurable defaults for copyguard.

All tunable parameters in one place. Values that deployments tune are
read from the environment at import time.
"""

from __future__ import annotations

import os

# Safety threshold domain (perplexity score at or above which the gate warns)
THRESHOLD_MIN = 140
THRESHOLD_MAX = 220
THRESHOLD_STEP = 10
THRESHOLD_DEFAULT = 180

# Settings keys
SAFETY_THRESHOLD_KEY = "safety_threshold"
SUGGESTION_DISMISSED_AT_KEY = "threshold_suggestion_dismissed_at"
SUGGESTION_LAST_DISMISSAL_KEY = "threshold_suggestion_last_dismissal"

# Regeneration ladder
MAX_REGENERATION_ATTEMPTS = 3

# Threshold learning
LEARNING_WINDOW_DAYS = 30
INACTIVITY_WINDOW_DAYS = 60
THRESHOLD_PROXIMITY = 10  # overrides in [threshold, threshold + 10) qualify
MIN_QUALIFYING_OVERRIDES = 3
SUGGESTION_COOLDOWN_SECONDS = float(
    os.environ.get("COPYGUARD_SUGGESTION_COOLDOWN_SECONDS", str(7 * 24 * 3600))
)

# Override lifecycle
OVERRIDE_CONFIRM_DAYS = 7

# Backend
BACKEND_URL = os.environ.get("COPYGUARD_BACKEND_URL", "http://127.0.0.1:8470")
REQUEST_TIMEOUT_SECONDS = float(os.environ.get("COPYGUARD_REQUEST_TIMEOUT", "10.0"))

# Local persistence
DB_PATH = os.environ.get("COPYGUARD_DB_PATH", "copyguard.sqlite")

SECONDS_PER_DAY = 24 * 60 * 60
