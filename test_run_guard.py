"""
Unit tests for slot idempotency.
"""

import threading
from datetime import date

import pytest

from unicorn_trader.scheduler.run_guard import RunSlotGuard, RunStatus

SLOT_DATE = date(2025, 7, 7)


@pytest.fixture
def guard(db_path):
    return RunSlotGuard(db_path)


class TestBeginSlot:

    def test_first_claim_wins(self, guard):
        run_id = guard.begin_slot(SLOT_DATE, "morning", "cron")
        assert run_id is not None
        assert guard.begin_slot(SLOT_DATE, "morning", "manual") is None

        record = guard.get_run(run_id)
        assert record.status == RunStatus.RUNNING
        assert record.triggered_by == "cron"

    def test_sessions_are_independent(self, guard):
        assert guard.begin_slot(SLOT_DATE, "morning") is not None
        assert guard.begin_slot(SLOT_DATE, "afternoon") is not None
        assert guard.begin_slot(date(2025, 7, 8), "morning") is not None

    def test_concurrent_claims(self, guard):
        claimed = []
        lock = threading.Lock()

        def claim():
            run_id = guard.begin_slot(SLOT_DATE, "afternoon")
            with lock:
                claimed.append(run_id)

        threads = [threading.Thread(target=claim) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len([c for c in claimed if c is not None]) == 1

    def test_done_slot_never_reclaimed(self, db_path):
        guard = RunSlotGuard(db_path, retry_failed_slots=True)
        run_id = guard.begin_slot(SLOT_DATE, "morning")
        guard.complete_slot(run_id, trade_count=3)
        assert guard.begin_slot(SLOT_DATE, "morning") is None

    def test_failed_slot_stays_closed_by_default(self, guard):
        run_id = guard.begin_slot(SLOT_DATE, "morning")
        guard.complete_slot(run_id, trade_count=0, error="provider down")
        assert guard.begin_slot(SLOT_DATE, "morning") is None

    def test_failed_slot_retry(self, db_path):
        guard = RunSlotGuard(db_path, retry_failed_slots=True)
        run_id = guard.begin_slot(SLOT_DATE, "morning")
        guard.complete_slot(run_id, trade_count=0, error="provider down")

        again = guard.begin_slot(SLOT_DATE, "morning", "manual")
        assert again == run_id
        record = guard.get_run(run_id)
        assert record.status == RunStatus.RUNNING
        assert record.attempts == 2
        assert record.error_message is None


class TestCompleteSlot:

    def test_error_with_trades_is_done(self, guard):
        run_id = guard.begin_slot(SLOT_DATE, "morning")
        status = guard.complete_slot(run_id, trade_count=2, error="budget exceeded")

        assert status == RunStatus.DONE
        record = guard.get_slot(SLOT_DATE, "morning")
        assert record.trade_count == 2
        assert record.error_message == "budget exceeded"
        assert record.completed_at is not None

    def test_error_without_trades_is_failed(self, guard):
        run_id = guard.begin_slot(SLOT_DATE, "morning")
        assert guard.complete_slot(run_id, trade_count=0, error="boom") == RunStatus.FAILED

    def test_clean_run_without_trades_is_done(self, guard):
        run_id = guard.begin_slot(SLOT_DATE, "morning")
        assert guard.complete_slot(run_id, trade_count=0) == RunStatus.DONE

    def test_second_completion_ignored(self, guard):
        run_id = guard.begin_slot(SLOT_DATE, "morning")
        guard.complete_slot(run_id, trade_count=1)
        guard.complete_slot(run_id, trade_count=0, error="late")

        record = guard.get_run(run_id)
        assert record.status == RunStatus.DONE
        assert record.trade_count == 1

    def test_list_runs(self, guard):
        guard.begin_slot(date(2025, 7, 7), "morning")
        guard.begin_slot(date(2025, 7, 8), "morning")
        runs = guard.list_runs()
        assert [r.run_date for r in runs] == [date(2025, 7, 8), date(2025, 7, 7)]
