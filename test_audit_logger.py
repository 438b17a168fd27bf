"""
Unit tests for the background audit logger.
"""

import sqlite3
import threading
from unittest.mock import patch

import pytest

from unicorn_trader.audit.audit_logger import AuditLogger
from unicorn_trader.execution.trade_executor import ExecutionResult, TradeOutcome
from unicorn_trader.trader.decision import BuyDecision, failed_hold


@pytest.fixture
def audit(db_path):
    audit_logger = AuditLogger(db_path, queue_size=16)
    yield audit_logger
    audit_logger.close()


def _executed(user_id):
    return ExecutionResult(
        success=True, outcome=TradeOutcome.EXECUTED, action='BUY', user_id=user_id,
        instrument_id=2, shares=10, price_used=400.0, amount=4000.0,
        message="FOMO Master bought 10.00 shares of Microsoft (MSFT) for $4,000.00 MTK",
    )


class TestAuditLogger:

    def test_record_and_read_back(self, audit, persona):
        decision = BuyDecision(instrument_id=2, shares=10, rationale="Cloud is king")
        queued = audit.record(
            persona, prompt="PROMPT", raw_response='{"action": "BUY"}', decision=decision,
            result=_executed(persona.user_id), portfolio_value_before=0.0,
        )
        assert queued is True
        assert audit.flush(timeout=5.0) is True

        [entry] = audit.get_entries(persona.user_id)
        assert entry.display_name == "FOMO Master"
        assert entry.ai_strategy == "MOMENTUM"
        assert entry.cash_before == pytest.approx(1_000_000.0)
        assert entry.prompt == "PROMPT"
        assert entry.decision_action == "BUY"
        assert entry.decision_pitch_id == 2
        assert entry.decision_shares == 10
        assert entry.decision_reasoning == "Cloud is king"
        assert entry.execution_success is True
        assert entry.execution_outcome == "EXECUTED"
        assert entry.execution_error is None
        assert entry.triggered_by == "cron"

    def test_failed_decision_recorded_as_failure(self, audit, persona):
        decision = failed_hold("timeout")
        result = ExecutionResult(
            success=False, outcome=TradeOutcome.FAILED, action='HOLD', user_id=persona.user_id,
            error_code='DECISION_FAILED', message=decision.rationale,
        )
        audit.record(persona, "p", '{"error": "timeout"}', decision, result, triggered_by="manual")
        audit.flush()

        [entry] = audit.get_entries(persona.user_id)
        assert entry.execution_success is False
        assert entry.execution_outcome == "FAILED"
        assert entry.execution_error == "Technical difficulties: timeout"
        assert entry.triggered_by == "manual"

    def test_error_without_result(self, audit, persona):
        audit.record(persona, None, None, None, None, error="snapshot exploded")
        audit.flush()

        [entry] = audit.get_entries()
        assert entry.execution_success is False
        assert entry.execution_error == "snapshot exploded"
        assert entry.decision_action is None

    def test_write_failure_never_raises(self, audit, persona):
        with patch.object(audit, '_write_entry', side_effect=sqlite3.OperationalError("disk I/O error")):
            assert audit.record(persona, "p", "r", None, _executed(persona.user_id)) is True
            assert audit.flush(timeout=5.0) is True
        assert audit.get_entries() == []

        # The worker survives a failed write
        audit.record(persona, "p", "r", None, _executed(persona.user_id))
        audit.flush()
        assert len(audit.get_entries()) == 1

    def test_full_queue_drops_entry(self, db_path, persona):
        audit = AuditLogger(db_path, queue_size=1)
        started = threading.Event()
        release = threading.Event()
        original_write = audit._write_entry

        def slow_write(entry):
            started.set()
            release.wait(5.0)
            original_write(entry)

        try:
            with patch.object(audit, '_write_entry', side_effect=slow_write):
                assert audit.record(persona, "1", None, None, None) is True
                assert started.wait(5.0)
                assert audit.record(persona, "2", None, None, None) is True
                assert audit.record(persona, "3", None, None, None) is False
                assert audit.dropped == 1
                release.set()
                assert audit.flush(timeout=5.0) is True
        finally:
            release.set()
            audit.close()

        assert sorted(e.prompt for e in audit.get_entries()) == ["1", "2"]

    def test_disabled_logger(self, db_path, persona):
        audit = AuditLogger(db_path, enabled=False)
        assert audit.record(persona, "p", "r", None, None) is False
        assert audit.flush(timeout=0.1) is True
        audit.close()

    def test_delete_entries(self, audit, persona, store):
        other = store.provision_persona(user_id='ai_oracle', display_name='The Oracle', strategy='PERFECT_TIMING')
        audit.record(persona, "p", "r", None, None)
        audit.record(other, "p", "r", None, None)
        audit.flush()

        assert audit.delete_entries(persona.user_id) == 1
        assert [e.user_id for e in audit.get_entries()] == ['ai_oracle']
