#!/usr/bin/env python3
"""
Single source of truth for constants used across the workout engine.

All shared constants should be defined here to avoid duplication.
"""

from pathlib import Path
from typing import List, Tuple


# === PATHS ===

# lifting/ directory (scripts/../)
LIFTING_BASE_DIR: Path = Path(__file__).parent.parent.resolve()

DEFAULT_DATA_DIR: Path = LIFTING_BASE_DIR / "data"
DEFAULT_WORKOUT_CONFIG_PATH: Path = LIFTING_BASE_DIR / "workout_config.yaml"


# === STORAGE ===
# Mirrors the browser storage layout so exports stay interchangeable

APP_NAME: str = "LifeOS"
SCHEMA_VERSION: int = 1
KEY_PREFIX: str = "lifeos."

SESSIONS_COLLECTION: str = "workoutSessions"
WORKOUT_META_COLLECTION: str = "workoutMeta"
APP_META_COLLECTION: str = "appMeta"

COLLECTIONS: Tuple[str, ...] = (
    SESSIONS_COLLECTION,
    WORKOUT_META_COLLECTION,
    APP_META_COLLECTION,
)

# workoutMeta record holding the latest declined bonus offer
BONUS_DECISION_ID: str = "bonusDecision"


# === CYCLE DEFAULTS ===

DEFAULT_BONUS_ANCHOR: str = "lower_b"
DEFAULT_BONUS_TEMPLATE: str = "upper_c"
DEFAULT_REST_THRESHOLD: int = 4


# === PROGRESSION DEFAULTS ===
# Starting points only; every one of these can be overridden in workout_config.yaml

DEFAULT_WEIGHT_INCREMENT: float = 2.5
DEFAULT_DELOAD_FRACTION: float = 0.10
DEFAULT_FAILED_SESSIONS_BEFORE_DELOAD: int = 2

# Epley divisor for estimated one-rep max
EPLEY_DIVISOR: float = 30.0


# === PROGRESSION ACTIONS ===

ACTION_START: str = "start"
ACTION_INCREASE_WEIGHT: str = "increase_weight"
ACTION_ADD_REPS: str = "add_reps"
ACTION_REPEAT: str = "repeat"
ACTION_DELOAD: str = "deload"


# === ENVIRONMENTS ===

ENVIRONMENT_TAGS: List[str] = ['home', 'apartment', 'commercial']
