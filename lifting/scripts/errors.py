#!/usr/bin/env python3
"""
Exception types raised by the workout engine.
"""

from typing import Iterable, List, Optional


class WorkoutEngineError(Exception):
    """Base class for workout engine errors."""
    pass


class ConfigurationError(WorkoutEngineError):
    """Malformed or missing template, pattern or exerciseId reference."""

    def __init__(self, message: str, problems: Optional[Iterable[str]] = None):
        self.problems: List[str] = list(problems or [])
        if self.problems:
            message = f"{message}:\n" + "\n".join(f"  - {p}" for p in self.problems)
        super().__init__(message)


class InvalidTarget(ConfigurationError):
    """A slot has repMin > repMax or a non-positive set count."""
    pass


class HistoryInconsistency(WorkoutEngineError):
    """A session record that cannot be used as-is for scheduling or progression."""

    def __init__(self, message: str, record_id: Optional[str] = None):
        self.record_id = record_id
        if record_id:
            message = f"{message} (record {record_id})"
        super().__init__(message)


class ImportPayloadError(ValueError):
    """Rejected import payload."""
    pass
