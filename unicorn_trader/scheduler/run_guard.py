"""
Run Guard: at most one execution batch per trading slot.

A slot is claimed by inserting its (run_date, session) row under the
database write lock; UNIQUE(run_date, session) makes a second claim fail no
matter how many triggers fire at once.
"""

import logging
import sqlite3
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    DONE = "DONE"
    FAILED = "FAILED"


class RunRecord(BaseModel):
    id: int
    run_date: date
    session: str
    status: RunStatus
    trade_count: int = 0
    attempts: int = 1
    triggered_by: Optional[str] = None
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class RunSlotGuard:
    """Claims and completes run slots in the cron_runs table"""

    def __init__(self, db_path: str, retry_failed_slots: bool = False, busy_timeout: float = 10.0):
        """
        Args:
            db_path: Path to SQLite database file
            retry_failed_slots: Let a FAILED slot (zero trades) be claimed again
            busy_timeout: Seconds to wait for the write lock
        """
        self.db_path = db_path
        self.retry_failed_slots = retry_failed_slots
        self.busy_timeout = busy_timeout
        self._ensure_database()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_database(self):
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS cron_runs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    run_date TEXT NOT NULL,
                    session TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'PENDING'
                        CHECK(status IN ('PENDING', 'RUNNING', 'DONE', 'FAILED')),
                    trade_count INTEGER NOT NULL DEFAULT 0,
                    attempts INTEGER NOT NULL DEFAULT 1,
                    triggered_by TEXT,
                    error_message TEXT,
                    started_at TEXT,
                    completed_at TEXT,
                    UNIQUE(run_date, session)
                )
            """)
            conn.commit()
        finally:
            conn.close()

    def begin_slot(self, run_date: date, session: str, triggered_by: str = "cron") -> Optional[int]:
        """
        Atomically claim a slot.

        Returns:
            Run id when claimed, None when the slot is already taken
        """
        now = datetime.now().isoformat()
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            existing = conn.execute(
                "SELECT id, status FROM cron_runs WHERE run_date = ? AND session = ?",
                (run_date.isoformat(), session)
            ).fetchone()

            if existing is None:
                try:
                    cursor = conn.execute("""
                        INSERT INTO cron_runs (run_date, session, status, triggered_by, started_at)
                        VALUES (?, ?, ?, ?, ?)
                    """, (run_date.isoformat(), session, RunStatus.RUNNING.value, triggered_by, now))
                except sqlite3.IntegrityError:
                    conn.rollback()
                    return None
                conn.commit()
                logger.info(f"Claimed slot {run_date} {session} (run {cursor.lastrowid}, {triggered_by})")
                return cursor.lastrowid

            if existing['status'] == RunStatus.FAILED.value and self.retry_failed_slots:
                conn.execute("""
                    UPDATE cron_runs
                    SET status = ?, trade_count = 0, attempts = attempts + 1, triggered_by = ?,
                        error_message = NULL, started_at = ?, completed_at = NULL
                    WHERE id = ?
                """, (RunStatus.RUNNING.value, triggered_by, now, existing['id']))
                conn.commit()
                logger.info(f"Re-claimed failed slot {run_date} {session} (run {existing['id']})")
                return existing['id']

            conn.rollback()
            logger.info(f"Slot {run_date} {session} already {existing['status']} (run {existing['id']}); skipping")
            return None
        finally:
            conn.close()

    def complete_slot(self, run_id: int, trade_count: int, error: Optional[str] = None) -> RunStatus:
        """
        Mark a claimed slot finished.

        FAILED only when an error occurred and no trade went through; any
        completed trade makes the slot DONE so it is never re-run.
        """
        status = RunStatus.FAILED if error and trade_count == 0 else RunStatus.DONE

        conn = self._connect()
        try:
            cursor = conn.execute("""
                UPDATE cron_runs
                SET status = ?, trade_count = ?, error_message = ?, completed_at = ?
                WHERE id = ? AND status = ?
            """, (status.value, trade_count, error, datetime.now().isoformat(), run_id, RunStatus.RUNNING.value))
            conn.commit()
        finally:
            conn.close()

        if cursor.rowcount == 0:
            logger.warning(f"Run {run_id} was not RUNNING; completion ignored")
        else:
            logger.info(f"Run {run_id} completed: {status.value} with {trade_count} trades")
        return status

    def get_run(self, run_id: int) -> Optional[RunRecord]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT * FROM cron_runs WHERE id = ?", (run_id,)).fetchone()
        finally:
            conn.close()
        return self._row_to_run(row) if row else None

    def get_slot(self, run_date: date, session: str) -> Optional[RunRecord]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT * FROM cron_runs WHERE run_date = ? AND session = ?",
                (run_date.isoformat(), session)
            ).fetchone()
        finally:
            conn.close()
        return self._row_to_run(row) if row else None

    def list_runs(self, limit: int = 20) -> List[RunRecord]:
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT * FROM cron_runs ORDER BY run_date DESC, started_at DESC LIMIT ?", (limit,)
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_run(row) for row in rows]

    def _row_to_run(self, row: sqlite3.Row) -> RunRecord:
        return RunRecord(
            id=row['id'],
            run_date=row['run_date'],
            session=row['session'],
            status=row['status'],
            trade_count=row['trade_count'],
            attempts=row['attempts'],
            triggered_by=row['triggered_by'],
            error_message=row['error_message'],
            started_at=row['started_at'],
            completed_at=row['completed_at'],
        )
