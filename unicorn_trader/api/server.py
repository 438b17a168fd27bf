"""
FastAPI surface over the trading core.

Admin routes trigger persona runs and maintain accounts; user routes place
human trades on behalf of the SSO-verified caller.
"""

import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from unicorn_trader.api.sso import SSOClient, SSOUser, SSOVerificationError
from unicorn_trader.execution.trade_executor import ExecutionResult, TradeOutcome
from unicorn_trader.ledger.ledger_store import AccountNotFoundError
from unicorn_trader.market.quote_cache import PriceUnavailableError
from unicorn_trader.services import TradingServices
from unicorn_trader.trader.decision import BuyDecision, SellDecision

logger = logging.getLogger(__name__)


class TriggerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(default=None, alias="userId")
    source: Optional[str] = None


class TradeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pitch_id: int = Field(alias="pitchId")
    shares: float = Field(gt=0)


class AccountRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")


class PersonaUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    is_active: Optional[bool] = Field(default=None, alias="isActive")
    strategy: Optional[str] = None
    personality_prompt: Optional[str] = Field(default=None, alias="personalityPrompt")
    catchphrase: Optional[str] = None


def _http_status_for(result: ExecutionResult) -> int:
    if result.outcome == TradeOutcome.ABORTED:
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if result.outcome == TradeOutcome.FAILED:
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    return status.HTTP_400_BAD_REQUEST


def create_app(services: TradingServices, allowed_origins: Optional[list] = None) -> FastAPI:
    """Build the FastAPI app around an already-wired service graph"""
    app = FastAPI(title="Unicorn Trading API", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins or ["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_config = services.config.api
    sso = SSOClient(api_config.sso_verify_url, timeout=api_config.sso_timeout_seconds)

    def current_user(request: Request) -> SSOUser:
        token = request.cookies.get(api_config.sso_cookie_name)
        try:
            return sso.verify(token)
        except SSOVerificationError as e:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))

    def require_cron_secret(authorization: Optional[str] = Header(default=None)):
        if not api_config.cron_secret:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="CRON_SECRET not configured")
        if authorization != f"Bearer {api_config.cron_secret}":
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    def trade(user: SSOUser, decision) -> dict:
        account = services.store.get_or_create_account(user.id, email=user.email)
        result = services.executor.execute(account, decision)
        if not result.success:
            raise HTTPException(status_code=_http_status_for(result), detail=result.message)
        return {"success": True, "message": result.message, "result": result.model_dump(mode="json")}

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/api/admin/ai-trading/trigger")
    def trigger(body: TriggerRequest):
        triggered_by = "cron" if body.source == "cron" else "manual"
        if body.user_id:
            try:
                outcome = services.coordinator.run_one(body.user_id, triggered_by=triggered_by)
            except AccountNotFoundError as e:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
            except ValueError as e:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
            return {"success": outcome.error is None, "results": [outcome.model_dump(mode="json")]}

        batch = services.coordinator.run_all(triggered_by=triggered_by)
        return batch.model_dump(mode="json")

    @app.get("/api/cron/ai-trading", dependencies=[Depends(require_cron_secret)])
    def cron():
        batch = services.coordinator.run_all(triggered_by="cron")
        return batch.model_dump(mode="json")

    @app.get("/api/admin/ai-trading/runs")
    def runs(limit: int = 20):
        return {"runs": [r.model_dump(mode="json") for r in services.run_guard.list_runs(limit)]}

    @app.get("/api/admin/ai-trading/logs")
    def logs(userId: Optional[str] = None, limit: int = 50):
        services.audit_logger.flush(timeout=1.0)
        entries = services.audit_logger.get_entries(user_id=userId, limit=limit)
        return {"logs": [e.model_dump(mode="json") for e in entries]}

    @app.post("/api/admin/ai-reset")
    def ai_reset(body: AccountRequest):
        try:
            account = services.reset_account(body.user_id)
        except AccountNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        return {"success": True, "account": account.model_dump(mode="json")}

    @app.post("/api/admin/ai-clone")
    def ai_clone(body: AccountRequest):
        try:
            clone = services.store.clone_persona(body.user_id)
        except AccountNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        return {"success": True, "account": clone.model_dump(mode="json")}

    @app.patch("/api/admin/ai-investors")
    def update_ai_investor(body: PersonaUpdateRequest):
        try:
            account = services.update_persona(
                body.user_id,
                is_active=body.is_active,
                strategy=body.strategy,
                personality_prompt=body.personality_prompt,
                catchphrase=body.catchphrase,
            )
        except AccountNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        return {"success": True, "account": account.model_dump(mode="json")}

    @app.post("/api/admin/sync-prices")
    def sync_prices():
        results = services.sync_reference_prices()
        return {"success": all(r['success'] for r in results.values()), "results": results}

    @app.get("/api/stock/{ticker}")
    def stock(ticker: str):
        try:
            quote = services.quote_cache.get_quote(ticker)
        except PriceUnavailableError as e:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
        return quote.model_dump(mode="json")

    @app.post("/api/invest")
    def invest(body: TradeRequest, user: SSOUser = Depends(current_user)):
        return trade(user, BuyDecision(instrument_id=body.pitch_id, shares=body.shares, rationale="Manual buy"))

    @app.post("/api/sell")
    def sell(body: TradeRequest, user: SSOUser = Depends(current_user)):
        return trade(user, SellDecision(instrument_id=body.pitch_id, shares=body.shares, rationale="Manual sell"))

    @app.get("/api/portfolio")
    def portfolio(user: SSOUser = Depends(current_user)):
        account = services.store.get_or_create_account(user.id, email=user.email)
        snapshot = services.snapshot_builder.build_snapshot(account)
        return {
            "account": account.model_dump(mode="json"),
            "holdings": [h.model_dump(mode="json") for h in snapshot.holdings],
            "holdings_value": snapshot.holdings_value,
            "total_value": snapshot.total_value,
            "unresolved_tickers": snapshot.unresolved_tickers,
        }

    return app
