"""
Audit Logger: durable record of every persona decision and its execution.

Entries are queued and written by a background thread, so a slow or broken
audit table never delays or fails a trade that already executed. When the
bounded queue is full the entry is dropped with a warning.
"""

import logging
import queue
import sqlite3
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel

from unicorn_trader.execution.trade_executor import ExecutionResult
from unicorn_trader.ledger.models import Account

logger = logging.getLogger(__name__)

_STOP = object()


class AuditEntry(BaseModel):
    id: Optional[int] = None
    user_id: str
    display_name: Optional[str] = None
    ai_strategy: Optional[str] = None
    cash_before: Optional[float] = None
    portfolio_value_before: Optional[float] = None
    prompt: Optional[str] = None
    raw_response: Optional[str] = None
    decision_action: Optional[str] = None
    decision_pitch_id: Optional[int] = None
    decision_shares: Optional[float] = None
    decision_reasoning: Optional[str] = None
    execution_success: bool = False
    execution_outcome: Optional[str] = None
    execution_error: Optional[str] = None
    execution_message: Optional[str] = None
    triggered_by: Optional[str] = None
    created_at: datetime


class AuditLogger:
    """
    Best-effort audit trail in the ai_trading_logs table.

    record() never blocks and never raises.
    """

    def __init__(self, db_path: str, queue_size: int = 256, enabled: bool = True, busy_timeout: float = 10.0):
        self.db_path = db_path
        self.enabled = enabled
        self.busy_timeout = busy_timeout
        self._queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._worker: Optional[threading.Thread] = None
        self.dropped = 0

        self._ensure_database()
        if enabled:
            self._worker = threading.Thread(target=self._run, name="audit-logger", daemon=True)
            self._worker.start()
        logger.info(f"AuditLogger initialized with database: {db_path} (enabled={enabled})")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_database(self):
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS ai_trading_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    display_name TEXT,
                    ai_strategy TEXT,
                    cash_before REAL,
                    portfolio_value_before REAL,
                    openai_prompt TEXT,
                    openai_response_raw TEXT,
                    decision_action TEXT,
                    decision_pitch_id INTEGER,
                    decision_shares REAL,
                    decision_reasoning TEXT,
                    execution_success INTEGER NOT NULL DEFAULT 0,
                    execution_outcome TEXT,
                    execution_error TEXT,
                    execution_message TEXT,
                    triggered_by TEXT,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_ai_logs_user_time ON ai_trading_logs(user_id, created_at DESC)"
            )
            conn.commit()
        finally:
            conn.close()

    def record(
        self,
        account: Account,
        prompt: Optional[str],
        raw_response: Optional[str],
        decision,
        result: Optional[ExecutionResult],
        triggered_by: str = "cron",
        portfolio_value_before: Optional[float] = None,
        error: Optional[str] = None
    ) -> bool:
        """
        Queue one decision+execution record.

        Returns:
            True if queued, False if disabled, dropped or malformed
        """
        if not self.enabled:
            return False

        try:
            entry = AuditEntry(
                user_id=account.user_id,
                display_name=account.display_name,
                ai_strategy=account.ai_strategy,
                cash_before=account.available_cash,
                portfolio_value_before=portfolio_value_before,
                prompt=prompt,
                raw_response=raw_response,
                decision_action=getattr(decision, 'action', None),
                decision_pitch_id=getattr(decision, 'instrument_id', None),
                decision_shares=getattr(decision, 'shares', None),
                decision_reasoning=getattr(decision, 'rationale', None),
                execution_success=bool(result and result.success),
                execution_outcome=result.outcome.value if result else None,
                execution_error=error or (None if result is None or result.success else result.message),
                execution_message=result.message if result else None,
                triggered_by=triggered_by,
                created_at=datetime.now(),
            )
            self._queue.put_nowait(entry)
            return True
        except queue.Full:
            self.dropped += 1
            logger.warning(f"Audit queue full; dropped entry for {account.user_id}")
            return False
        except Exception as e:
            logger.error(f"Could not build audit entry for {account.user_id}: {e}")
            return False

    def flush(self, timeout: float = 5.0) -> bool:
        """Wait until every queued entry has been handled; False on timeout"""
        deadline = time.monotonic() + timeout
        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._queue.all_tasks_done.wait(remaining)
        return True

    def close(self, timeout: float = 5.0):
        """Drain the queue and stop the worker"""
        if self._worker is None:
            return
        self.flush(timeout)
        try:
            self._queue.put(_STOP, timeout=timeout)
        except queue.Full:
            logger.warning("Audit queue still full at shutdown")
        self._worker.join(timeout)
        self._worker = None

    def _run(self):
        while True:
            entry = self._queue.get()
            try:
                if entry is _STOP:
                    return
                self._write_entry(entry)
            except Exception as e:
                logger.error(f"Failed to write audit entry for {getattr(entry, 'user_id', '?')}: {e}")
            finally:
                self._queue.task_done()

    def _write_entry(self, entry: AuditEntry):
        conn = self._connect()
        try:
            conn.execute("""
                INSERT INTO ai_trading_logs (
                    user_id, display_name, ai_strategy, cash_before, portfolio_value_before,
                    openai_prompt, openai_response_raw, decision_action, decision_pitch_id,
                    decision_shares, decision_reasoning, execution_success, execution_outcome,
                    execution_error, execution_message, triggered_by, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                entry.user_id, entry.display_name, entry.ai_strategy, entry.cash_before,
                entry.portfolio_value_before, entry.prompt, entry.raw_response, entry.decision_action,
                entry.decision_pitch_id, entry.decision_shares, entry.decision_reasoning,
                int(entry.execution_success), entry.execution_outcome, entry.execution_error,
                entry.execution_message, entry.triggered_by, entry.created_at.isoformat()
            ))
            conn.commit()
        finally:
            conn.close()

    def get_entries(self, user_id: Optional[str] = None, limit: int = 50) -> List[AuditEntry]:
        conn = self._connect()
        try:
            if user_id:
                rows = conn.execute(
                    "SELECT * FROM ai_trading_logs WHERE user_id = ? ORDER BY id DESC LIMIT ?",
                    (user_id, limit)
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM ai_trading_logs ORDER BY id DESC LIMIT ?", (limit,)
                ).fetchall()
        finally:
            conn.close()
        return [self._row_to_entry(row) for row in rows]

    def delete_entries(self, user_id: str) -> int:
        """Remove an account's audit history (part of an account reset)"""
        conn = self._connect()
        try:
            deleted = conn.execute("DELETE FROM ai_trading_logs WHERE user_id = ?", (user_id,)).rowcount
            conn.commit()
        finally:
            conn.close()
        return deleted

    def _row_to_entry(self, row: sqlite3.Row) -> AuditEntry:
        return AuditEntry(
            id=row['id'],
            user_id=row['user_id'],
            display_name=row['display_name'],
            ai_strategy=row['ai_strategy'],
            cash_before=row['cash_before'],
            portfolio_value_before=row['portfolio_value_before'],
            prompt=row['openai_prompt'],
            raw_response=row['openai_response_raw'],
            decision_action=row['decision_action'],
            decision_pitch_id=row['decision_pitch_id'],
            decision_shares=row['decision_shares'],
            decision_reasoning=row['decision_reasoning'],
            execution_success=bool(row['execution_success']),
            execution_outcome=row['execution_outcome'],
            execution_error=row['execution_error'],
            execution_message=row['execution_message'],
            triggered_by=row['triggered_by'],
            created_at=row['created_at'],
        )
