#!/usr/bin/env python3
"""
File-backed collection store.

Each named collection is a JSON array in <data_dir>/lifeos.<name>.json,
written atomically. Exports use the browser app's envelope:

    {"app": "LifeOS", "schemaVersion": 1, "exportedAt": "...",
     "collections": {"workoutSessions": [...], ...}}

Imports merge by record id unless overwrite is requested; for a repeated id
the last record in import order wins.
"""

import fcntl
import json
import random
import string
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

sys.path.insert(0, str(Path(__file__).parent))
from atomic_write import safe_write_json
from constants import (
    APP_META_COLLECTION,
    APP_NAME,
    COLLECTIONS,
    KEY_PREFIX,
    SCHEMA_VERSION,
)
from errors import ImportPayloadError
from logger import get_logger

logger = get_logger()

_BASE36 = string.digits + string.ascii_lowercase


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def _base36(number: int) -> str:
    if number == 0:
        return '0'
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return ''.join(reversed(digits))


def make_id(prefix: str) -> str:
    """prefix + base36 millisecond timestamp + random suffix, e.g. wor_lq3k2a_x8f1k2."""
    suffix = ''.join(random.choice(_BASE36) for _ in range(6))
    return f"{prefix}_{_base36(int(time.time() * 1000))}_{suffix}"


class CollectionStore:
    """Named record collections persisted as JSON files.

    Read-modify-write sequences hold an exclusive flock on a per-collection
    lock file, so concurrent requests in one service (or several processes
    sharing a data dir) do not overwrite each other.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def _path(self, name: str) -> Path:
        if name not in COLLECTIONS:
            raise ValueError(f"Unknown collection: {name}")
        return self.data_dir / f"{KEY_PREFIX}{name}.json"

    @contextmanager
    def _lock(self, name: str):
        """Exclusive lock on <data_dir>/.lifeos.<name>.lock for one read-modify-write."""
        self._path(name)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        lock_path = self.data_dir / f".{KEY_PREFIX}{name}.lock"
        with open(lock_path, 'a') as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    # flock does not nest across file descriptors: inside _lock only the
    # unlocked _read/_write helpers may touch the collection.

    def _read(self, name: str) -> List[Dict[str, Any]]:
        path = self._path(name)
        if not path.exists():
            return []

        try:
            with open(path, 'r', encoding='utf-8') as f:
                records = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Collection {name} is not valid JSON; resetting", error=str(e))
            self._write(name, [])
            return []

        if isinstance(records, list):
            return records

        logger.warning(f"Collection {name} was not an array; resetting")
        self._write(name, [])
        return []

    def _write(self, name: str, records: List[Dict[str, Any]]):
        path = self._path(name)
        if not isinstance(records, list):
            raise ValueError(f"set_collection expects a list for {name}")

        try:
            safe_write_json(path, records)
        except OSError as e:
            logger.error(f"Failed to write {name}", path=str(path), error=str(e))
            raise

    def get_collection(self, name: str) -> List[Dict[str, Any]]:
        if not self._path(name).exists():
            return []
        with self._lock(name):
            return self._read(name)

    def set_collection(self, name: str, records: List[Dict[str, Any]]):
        with self._lock(name):
            self._write(name, records)

    def upsert(self, name: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a record, or replace the one with the same id. Assigns an id if missing."""
        if not isinstance(record, dict):
            raise ValueError("upsert expects a mapping")

        with self._lock(name):
            records = self._read(name)
            record_id = record.get('id') or make_id(name[:3])
            stored = {**record, 'id': record_id}

            for idx, existing in enumerate(records):
                if isinstance(existing, dict) and existing.get('id') == record_id:
                    records[idx] = stored
                    break
            else:
                records.append(stored)

            self._write(name, records)
        return stored

    def get(self, name: str, record_id: str) -> Optional[Dict[str, Any]]:
        for record in self.get_collection(name):
            if isinstance(record, dict) and record.get('id') == record_id:
                return record
        return None

    def remove(self, name: str, record_id: str) -> bool:
        """Delete a record by id. Returns True if something was removed."""
        with self._lock(name):
            records = self._read(name)
            kept = [r for r in records if not (isinstance(r, dict) and r.get('id') == record_id)]
            if len(kept) == len(records):
                return False
            self._write(name, kept)
        return True

    # === App meta ===

    def touch_meta(self):
        with self._lock(APP_META_COLLECTION):
            meta_records = self._read(APP_META_COLLECTION)
            meta = meta_records[0] if meta_records else {'id': 'meta', 'createdAt': now_iso()}
            self._write(APP_META_COLLECTION, [{
                **meta,
                'schemaVersion': SCHEMA_VERSION,
                'updatedAt': now_iso(),
            }])

    # === Export / import ===

    def export_all(self) -> Dict[str, Any]:
        return {
            'app': APP_NAME,
            'schemaVersion': SCHEMA_VERSION,
            'exportedAt': now_iso(),
            'collections': {name: self.get_collection(name) for name in COLLECTIONS},
        }

    def import_all(self, payload: Any, overwrite: bool = False) -> bool:
        """
        Import an export payload.

        Collections missing from the payload are left alone. Without
        overwrite, records are merged by id (import order wins).
        """
        validate_import_payload(payload)

        for name in COLLECTIONS:
            incoming = payload['collections'].get(name)
            if not isinstance(incoming, list):
                continue

            with self._lock(name):
                if overwrite:
                    self._write(name, incoming)
                    continue

                merged: Dict[Any, Dict[str, Any]] = {}
                for record in self._read(name) + incoming:
                    if isinstance(record, dict) and record.get('id'):
                        merged[record['id']] = record
                self._write(name, list(merged.values()))

        self.touch_meta()
        logger.info("Import complete", overwrite=overwrite)
        return True


def validate_import_payload(payload: Any):
    """Raise ImportPayloadError unless payload is a current-schema LifeOS export."""
    if not isinstance(payload, dict):
        raise ImportPayloadError("Invalid import payload (not an object).")
    if payload.get('app') != APP_NAME:
        raise ImportPayloadError(f"Invalid import payload (app must be '{APP_NAME}').")
    schema = payload.get('schemaVersion')
    if not isinstance(schema, int) or isinstance(schema, bool):
        raise ImportPayloadError("Invalid import payload (missing schemaVersion).")
    if not isinstance(payload.get('collections'), dict):
        raise ImportPayloadError("Invalid import payload (missing collections).")
    if schema != SCHEMA_VERSION:
        raise ImportPayloadError(
            f"Schema mismatch. App expects v{SCHEMA_VERSION} but file is v{schema}."
        )
