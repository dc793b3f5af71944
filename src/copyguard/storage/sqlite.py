"""SQLite persistence for settings and the override audit trail."""

from __future__ import annotations

import asyncio
import sqlite3
import threading
import time
from pathlib import Path
from typing import Any, Callable, List, Optional, Union

from ..core.defaults import DB_PATH
from ..safety.types import OverrideRecord, OverrideStatus

SCHEMA = """
CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS proposals (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    created_at REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS safety_overrides (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    proposal_id INTEGER NOT NULL,
    timestamp REAL NOT NULL,
    ai_score REAL NOT NULL,
    threshold_at_override INTEGER NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    user_feedback TEXT
);

CREATE INDEX IF NOT EXISTS idx_overrides_status_timestamp ON safety_overrides(status, timestamp);
CREATE INDEX IF NOT EXISTS idx_overrides_proposal_id ON safety_overrides(proposal_id);
"""

_OVERRIDE_COLUMNS = "id, proposal_id, timestamp, ai_score, threshold_at_override, status, user_feedback"


def _row_to_override(row: sqlite3.Row) -> OverrideRecord:
    return OverrideRecord(
        id=row["id"],
        proposal_id=row["proposal_id"],
        timestamp=row["timestamp"],
        ai_score=row["ai_score"],
        threshold=row["threshold_at_override"],
        status=OverrideStatus(row["status"]),
        user_feedback=row["user_feedback"],
    )


class SQLiteStore:
    """Settings and override store on a single SQLite connection.

    Satisfies SettingsStoreProtocol and OverrideStoreProtocol. Queries run
    in the default executor so the event loop never blocks on disk I/O;
    a lock serializes access to the shared connection.
    """

    def __init__(self, path: Union[str, Path] = DB_PATH):
        self.path = str(path)
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self.conn.executescript(SCHEMA)
        self.conn.commit()

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    async def _run(self, fn: Callable[..., Any], *args: Any) -> Any:
        def locked() -> Any:
            with self._lock:
                return fn(*args)

        return await asyncio.get_running_loop().run_in_executor(None, locked)

    def _write(self, sql: str, params: tuple = ()) -> Optional[int]:
        cursor = self.conn.execute(sql, params)
        self.conn.commit()
        return cursor.lastrowid

    def _fetchone(self, sql: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        return self.conn.execute(sql, params).fetchone()

    def _fetchall(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        return self.conn.execute(sql, params).fetchall()

    # -------------------------------------------------------------------------
    # SETTINGS
    # -------------------------------------------------------------------------

    async def get_setting(self, key: str) -> Optional[str]:
        row = await self._run(self._fetchone, "SELECT value FROM settings WHERE key = ?", (key,))
        return row["value"] if row else None

    async def set_setting(self, key: str, value: str) -> None:
        await self._run(
            self._write,
            "INSERT OR REPLACE INTO settings (key, value, updated_at) VALUES (?, ?, ?)",
            (key, value, time.time()),
        )

    async def delete_setting(self, key: str) -> None:
        await self._run(self._write, "DELETE FROM settings WHERE key = ?", (key,))

    # -------------------------------------------------------------------------
    # PROPOSALS
    # -------------------------------------------------------------------------

    async def create_proposal(self) -> int:
        return await self._run(
            self._write, "INSERT INTO proposals (created_at) VALUES (?)", (time.time(),)
        )

    async def delete_proposal(self, proposal_id: int) -> None:
        await self._run(self._write, "DELETE FROM proposals WHERE id = ?", (proposal_id,))

    async def proposal_exists(self, proposal_id: int) -> bool:
        row = await self._run(
            self._fetchone, "SELECT COUNT(*) AS n FROM proposals WHERE id = ?", (proposal_id,)
        )
        return row["n"] > 0

    # -------------------------------------------------------------------------
    # OVERRIDES
    # -------------------------------------------------------------------------

    async def insert_override(self, record: OverrideRecord) -> int:
        return await self._run(
            self._write,
            "INSERT INTO safety_overrides "
            "(proposal_id, timestamp, ai_score, threshold_at_override, status, user_feedback) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                record.proposal_id,
                record.timestamp,
                record.ai_score,
                record.threshold,
                record.status.value,
                record.user_feedback,
            ),
        )

    async def get_override(self, override_id: int) -> Optional[OverrideRecord]:
        row = await self._run(
            self._fetchone,
            f"SELECT {_OVERRIDE_COLUMNS} FROM safety_overrides WHERE id = ?",
            (override_id,),
        )
        return _row_to_override(row) if row else None

    async def update_override_status(
        self,
        override_id: int,
        status: OverrideStatus,
        user_feedback: Optional[str] = None,
    ) -> None:
        if user_feedback is None:
            await self._run(
                self._write,
                "UPDATE safety_overrides SET status = ? WHERE id = ?",
                (status.value, override_id),
            )
        else:
            await self._run(
                self._write,
                "UPDATE safety_overrides SET status = ?, user_feedback = ? WHERE id = ?",
                (status.value, user_feedback, override_id),
            )

    async def list_overrides(
        self,
        since: Optional[float] = None,
        status: Optional[OverrideStatus] = None,
    ) -> List[OverrideRecord]:
        query = f"SELECT {_OVERRIDE_COLUMNS} FROM safety_overrides"
        clauses = []
        params: list = []
        if since is not None:
            clauses.append("timestamp >= ?")
            params.append(since)
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY timestamp DESC"

        rows = await self._run(self._fetchall, query, tuple(params))
        return [_row_to_override(row) for row in rows]
