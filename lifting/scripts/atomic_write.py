#!/usr/bin/env python3
"""
Atomic file operations for the collection store.

Ensures files are written completely or not at all, preventing partial state.
"""

import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path


@contextmanager
def atomic_write(target_path: Path, mode: str = 'w'):
    """
    Context manager for atomic file writes.

    Writes to a temp file first, then atomically moves to target.
    If an exception occurs, the temp file is cleaned up and target is unchanged.

    Usage:
        with atomic_write(Path('lifeos.workoutSessions.json')) as f:
            json.dump(records, f)

    Args:
        target_path: Final destination path
        mode: File mode ('w' for text, 'wb' for binary)
    """
    target_path = Path(target_path)
    target_dir = target_path.parent

    target_dir.mkdir(parents=True, exist_ok=True)

    # Temp file in the same directory so the rename stays on one filesystem
    fd, temp_path = tempfile.mkstemp(
        dir=target_dir,
        prefix=f'.{target_path.name}.',
        suffix='.tmp'
    )

    try:
        encoding = None if 'b' in mode else 'utf-8'
        with os.fdopen(fd, mode, encoding=encoding) as f:
            yield f
            f.flush()
            os.fsync(f.fileno())

        os.replace(temp_path, target_path)

    except BaseException:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


def safe_write_json(path: Path, data, indent: int = 2):
    """Safely write JSON data atomically."""
    with atomic_write(path) as f:
        json.dump(data, f, indent=indent, ensure_ascii=False)
