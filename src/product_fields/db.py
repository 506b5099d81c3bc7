from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

SNAPSHOT_KEY = "productDemo"

SCHEMA = """
CREATE TABLE IF NOT EXISTS snapshots (
    key TEXT PRIMARY KEY,
    payload TEXT NOT NULL,
    saved_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""

logger = logging.getLogger(__name__)


class SnapshotStoreError(RuntimeError):
    """Raised when the local snapshot store cannot be written."""


def connect(db_path: str | Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str | Path) -> None:
    conn = connect(db_path)
    try:
        with conn:
            conn.executescript(SCHEMA)
    finally:
        conn.close()


def write_snapshot(db_path: str | Path, payload: dict[str, Any], key: str = SNAPSHOT_KEY) -> str:
    """Serialise ``payload`` and store it under ``key``, replacing any previous value."""
    text = json_dumps(payload)
    try:
        conn = connect(db_path)
        try:
            with conn:
                conn.executescript(SCHEMA)
                conn.execute(
                    """
                    INSERT INTO snapshots(key, payload) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        payload = excluded.payload,
                        saved_at = CURRENT_TIMESTAMP
                    """,
                    (key, text),
                )
        finally:
            conn.close()
    except sqlite3.Error as error:
        raise SnapshotStoreError(f"could not write snapshot '{key}': {error}") from error
    logger.info("snapshot_written", extra={"key": key, "size": len(text)})
    return text


def json_dumps(payload: dict[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"), sort_keys=True)
