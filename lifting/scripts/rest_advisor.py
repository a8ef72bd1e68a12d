#!/usr/bin/env python3
"""
Rest advisor: recommend (never require) a rest day after a run of sessions.
"""

import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

sys.path.insert(0, str(Path(__file__).parent))
from history import SessionRecord


@dataclass(frozen=True)
class RestAdvice:
    recommend: bool
    consecutive_count: int
    last_rest_date: Optional[datetime] = None


def should_recommend_rest(history: Sequence[SessionRecord], consecutive_threshold: int) -> RestAdvice:
    """
    Count sessions since the most recent rest day.

    Walks history from the newest record back until a rest-day record (or
    the start of history). recommend is True once the count reaches the
    threshold. The result is advisory; scheduling does not depend on it.
    """
    if consecutive_threshold < 1:
        raise ValueError(f"consecutive_threshold must be at least 1, got {consecutive_threshold}")

    count = 0
    last_rest_date = None
    for record in reversed(history):
        if record.rest_day:
            last_rest_date = record.date
            break
        count += 1

    return RestAdvice(
        recommend=count >= consecutive_threshold,
        consecutive_count=count,
        last_rest_date=last_rest_date,
    )
