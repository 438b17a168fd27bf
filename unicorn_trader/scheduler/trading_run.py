"""
Trading Run Coordinator: drives persona turns for one slot.

Workflow for a batch (run_all):
1. Refuse on market-closed days (weekends, holidays)
2. Claim the slot; skip if it was already claimed
3. For each active persona: fresh balance -> snapshot -> decision -> execution -> audit
4. Stop starting new personas once the wall-clock budget is spent
5. Mark the slot DONE, or FAILED when an error left zero trades
"""

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

from unicorn_trader.audit.audit_logger import AuditLogger
from unicorn_trader.execution.trade_executor import ExecutionResult, TradeExecutionEngine
from unicorn_trader.ledger.ledger_store import AccountNotFoundError, LedgerStore
from unicorn_trader.ledger.models import Account
from unicorn_trader.market.snapshot_builder import MarketSnapshotBuilder
from unicorn_trader.scheduler.market_calendar import MarketCalendar, RunSlot
from unicorn_trader.scheduler.run_guard import RunSlotGuard, RunStatus
from unicorn_trader.trader.persona_agent import PersonaDecisionEngine
from unicorn_trader.trader.personas import resolve_persona

logger = logging.getLogger(__name__)


class PersonaRunResult(BaseModel):
    """Outcome of one persona's turn"""
    user_id: str
    display_name: Optional[str] = None
    strategy: Optional[str] = None
    decision: Optional[Dict[str, Any]] = None
    result: Optional[ExecutionResult] = None
    error: Optional[str] = None
    processed: bool = True

    @property
    def traded(self) -> bool:
        return self.result is not None and self.result.traded


class BatchRunResult(BaseModel):
    """Outcome of one run_all invocation"""
    skipped: bool = False
    reason: Optional[str] = None
    run_id: Optional[int] = None
    slot: Optional[RunSlot] = None
    status: Optional[RunStatus] = None
    results: List[PersonaRunResult] = []
    trade_count: int = 0
    timed_out: bool = False
    error: Optional[str] = None
    started_at: datetime
    finished_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> float:
        end = self.finished_at or datetime.now()
        return (end - self.started_at).total_seconds()


class TradingRunCoordinator:
    """
    Runs the decide -> execute pipeline for AI personas.

    Personas are processed one after another; a failure in one persona is
    logged and recorded, and the batch moves on to the next.
    """

    def __init__(
        self,
        store: LedgerStore,
        snapshot_builder: MarketSnapshotBuilder,
        decision_engine: PersonaDecisionEngine,
        executor: TradeExecutionEngine,
        audit_logger: AuditLogger,
        run_guard: RunSlotGuard,
        calendar: MarketCalendar,
        wall_clock_budget_seconds: float = 55.0,
        inter_persona_delay_seconds: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.store = store
        self.snapshot_builder = snapshot_builder
        self.decision_engine = decision_engine
        self.executor = executor
        self.audit_logger = audit_logger
        self.run_guard = run_guard
        self.calendar = calendar
        self.wall_clock_budget_seconds = wall_clock_budget_seconds
        self.inter_persona_delay_seconds = inter_persona_delay_seconds
        self._clock = clock
        self._sleep = sleep

    def run_one(self, account_id: str, triggered_by: str = "manual", check_market: bool = True,
                now: Optional[datetime] = None) -> PersonaRunResult:
        """
        Run a single persona's turn without claiming a slot.

        Raises:
            AccountNotFoundError: Unknown account id
            ValueError: Account is not an active AI persona
        """
        account = self.store.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account not found: {account_id}")
        if not account.is_ai_investor:
            raise ValueError(f"Account {account_id} is not an AI persona")
        if not account.is_active:
            raise ValueError(f"Persona {account_id} is inactive")

        if check_market:
            reason = self.calendar.closed_reason(now)
            if reason:
                logger.info(f"Market closed ({reason}); not running {account.label}")
                return PersonaRunResult(
                    user_id=account.user_id, display_name=account.display_name,
                    strategy=account.ai_strategy, processed=False, error=f"Market closed: {reason}",
                )

        return self._safe_process(account, triggered_by)

    def run_all(self, now: Optional[datetime] = None, triggered_by: str = "cron") -> BatchRunResult:
        """Run every active persona once for the slot containing `now`"""
        batch = BatchRunResult(started_at=datetime.now())
        started = self._clock()

        logger.info(f"\n{'=' * 80}")
        logger.info(f"TRADING RUN START: {batch.started_at} (triggered by {triggered_by})")
        logger.info(f"{'=' * 80}")

        reason = self.calendar.closed_reason(now)
        if reason:
            logger.info(f"US market closed today ({reason}); skipping run")
            return self._finish(batch, skipped=True, reason=f"Market closed: {reason}")

        slot = self.calendar.slot_for(now)
        batch.slot = slot
        run_id = self.run_guard.begin_slot(slot.run_date, slot.session, triggered_by)
        if run_id is None:
            return self._finish(batch, skipped=True, reason=f"Slot {slot.key} already run")
        batch.run_id = run_id

        error: Optional[str] = None
        try:
            personas = self.store.list_personas(active_only=True)
            logger.info(f"Processing {len(personas)} active personas for slot {slot.key}")

            for index, persona in enumerate(personas):
                if index > 0 and self.inter_persona_delay_seconds > 0:
                    self._sleep(self.inter_persona_delay_seconds)

                elapsed = self._clock() - started
                if elapsed >= self.wall_clock_budget_seconds:
                    batch.timed_out = True
                    error = (
                        f"Wall-clock budget of {self.wall_clock_budget_seconds:.0f}s exceeded "
                        f"after {index} of {len(personas)} personas"
                    )
                    logger.warning(error)
                    for remaining in personas[index:]:
                        batch.results.append(PersonaRunResult(
                            user_id=remaining.user_id, display_name=remaining.display_name,
                            strategy=remaining.ai_strategy, processed=False, error="Not reached before budget ran out",
                        ))
                    break

                outcome = self._safe_process(persona, triggered_by)
                batch.results.append(outcome)
                if outcome.traded:
                    batch.trade_count += 1

        except Exception as e:
            error = f"Batch aborted: {e}"
            logger.error(error, exc_info=True)
        finally:
            batch.error = error
            batch.status = self.run_guard.complete_slot(run_id, batch.trade_count, error)

        return self._finish(batch)

    def _safe_process(self, account: Account, triggered_by: str) -> PersonaRunResult:
        """Run one persona, converting any failure into an error result"""
        try:
            return self._process_persona(account, triggered_by)
        except Exception as e:
            logger.error(f"Persona {account.label} failed: {e}", exc_info=True)
            self.audit_logger.record(
                account, prompt=None, raw_response=None, decision=None, result=None,
                triggered_by=triggered_by, error=str(e),
            )
            return PersonaRunResult(
                user_id=account.user_id, display_name=account.display_name,
                strategy=account.ai_strategy, error=str(e),
            )

    def _process_persona(self, account: Account, triggered_by: str) -> PersonaRunResult:
        # Balance may have moved since the persona list was read
        fresh = self.store.require_account(account.user_id)
        snapshot = self.snapshot_builder.build_snapshot(fresh)
        persona = resolve_persona(fresh)

        decided = self.decision_engine.decide(fresh, snapshot, persona)
        result = self.executor.execute(fresh, decided.decision, snapshot)

        self.audit_logger.record(
            fresh,
            prompt=decided.prompt,
            raw_response=decided.raw_response,
            decision=decided.decision,
            result=result,
            triggered_by=triggered_by,
            portfolio_value_before=snapshot.holdings_value,
        )

        logger.info(f"{fresh.label}: {result.outcome.value} - {result.message}")
        return PersonaRunResult(
            user_id=fresh.user_id,
            display_name=fresh.display_name,
            strategy=fresh.ai_strategy,
            decision=decided.decision.model_dump(),
            result=result,
        )

    def _finish(self, batch: BatchRunResult, skipped: bool = False, reason: Optional[str] = None) -> BatchRunResult:
        batch.skipped = skipped
        batch.reason = reason
        batch.finished_at = datetime.now()

        if not skipped:
            failures = sum(1 for r in batch.results if r.error or (r.result and not r.result.success))
            logger.info(f"\nRun summary for slot {batch.slot.key if batch.slot else '-'}:")
            logger.info(f"  Personas: {len(batch.results)}")
            logger.info(f"  Trades executed: {batch.trade_count}")
            logger.info(f"  Failed or rejected: {failures}")
            logger.info(f"  Status: {batch.status.value if batch.status else '-'}")
            logger.info(f"  Duration: {batch.duration_seconds:.2f}s")

        logger.info(f"{'=' * 80}")
        logger.info(f"TRADING RUN END{' (skipped: ' + reason + ')' if skipped else ''}")
        logger.info(f"{'=' * 80}\n")
        return batch
