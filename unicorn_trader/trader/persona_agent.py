"""
Persona Decision Engine: one text-generation call per persona turn.

The prompt encodes the persona's strategy, budget band and sell triggers
together with the account state and a shuffled market snapshot. The answer
is sanitized into a typed decision; provider failures become a failed HOLD.
"""

import json
import logging
from typing import Optional, Union

from pydantic import BaseModel

from unicorn_trader.ledger.models import Account
from unicorn_trader.llm import LLMClient, LLMError, LLMMessage
from unicorn_trader.market.snapshot_builder import MarketSnapshot
from unicorn_trader.trader.decision import (
    BuyDecision,
    DecisionParseError,
    HoldDecision,
    SellDecision,
    failed_hold,
    parse_decision_text,
)
from unicorn_trader.trader.personas import PersonaProfile, resolve_persona

logger = logging.getLogger(__name__)

# Holdings outside this gain/loss band are called out as sell candidates
SELL_CANDIDATE_GAIN_PCT = 3.0
SELL_CANDIDATE_LOSS_PCT = -2.0


class PersonaDecision(BaseModel):
    """A sanitized decision plus the exchange that produced it"""
    decision: Union[BuyDecision, SellDecision, HoldDecision]
    prompt: str
    raw_response: str
    persona_name: str
    strategy: str

    @property
    def failed(self) -> bool:
        return isinstance(self.decision, HoldDecision) and self.decision.failed


class PersonaDecisionEngine:
    """
    Asks the text-generation provider for one trade decision per call.

    There is no retry loop here; a failed call yields a failed HOLD and the
    caller decides what to do next.
    """

    SYSTEM_PROMPT = (
        "You are an AI investor analyzing both business fundamentals and market data. "
        "Always respond with valid JSON only."
    )

    RESPONSE_SCHEMA = {
        "type": "object",
        "properties": {
            "action": {"type": "string", "enum": ["BUY", "SELL", "HOLD"]},
            "pitch_id": {"type": "integer"},
            "shares": {"type": "number", "exclusiveMinimum": 0},
            "reasoning": {"type": "string"},
        },
        "required": ["action", "pitch_id", "reasoning"],
    }

    def __init__(self, client: LLMClient, temperature: float = 0.8, max_tokens: Optional[int] = 800):
        self.client = client
        self.temperature = temperature
        self.max_tokens = max_tokens

    def decide(self, account: Account, snapshot: MarketSnapshot,
               persona: Optional[PersonaProfile] = None) -> PersonaDecision:
        """
        Produce a sanitized decision for one persona.

        Args:
            account: Fresh account row (balance read just before this call)
            snapshot: Market snapshot built for this account
            persona: Profile override; defaults to the account's strategy

        Returns:
            PersonaDecision; decision is a failed HoldDecision when the provider fails
        """
        persona = persona or resolve_persona(account)
        prompt = self._build_decision_prompt(account, snapshot, persona)
        messages = [
            LLMMessage(role="system", content=self.SYSTEM_PROMPT),
            LLMMessage(role="user", content=prompt),
        ]

        def result(decision, raw_response: str) -> PersonaDecision:
            return PersonaDecision(
                decision=decision,
                prompt=prompt,
                raw_response=raw_response,
                persona_name=persona.persona_name,
                strategy=persona.strategy,
            )

        try:
            response = self.client.generate_structured(
                messages=messages,
                response_schema=self.RESPONSE_SCHEMA,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except LLMError as e:
            logger.error(f"Decision request failed for {account.label}: {e}")
            return result(failed_hold(str(e)), json.dumps({"error": str(e)}))

        try:
            decision = parse_decision_text(response.content)
        except DecisionParseError as e:
            logger.error(f"Unparseable decision for {account.label}: {e}")
            return result(failed_hold(str(e)), response.content)

        logger.info(
            f"{account.label} decided {decision.action}"
            + (f" {decision.shares:.2f} x pitch {decision.instrument_id}" if decision.action != "HOLD" else "")
        )
        return result(decision, response.content)

    def _build_decision_prompt(self, account: Account, snapshot: MarketSnapshot,
                               persona: PersonaProfile) -> str:
        cash = snapshot.available_cash
        budget_min, budget_max = persona.budget_range(cash)

        if snapshot.holdings:
            portfolio_lines = []
            for h in snapshot.holdings:
                if h.price_resolved:
                    sign = '+' if h.gain_loss_pct >= 0 else ''
                    portfolio_lines.append(
                        f"{h.company_name} (pitch {h.instrument_id}, {h.ticker}): {h.shares_owned:.2f} shares "
                        f"@ ${h.current_price:.2f}\n"
                        f"    Cost basis: ${h.cost_basis:,.2f} MTK | Current value: ${h.current_value:,.2f} MTK "
                        f"| {sign}{h.gain_loss_pct:.1f}% ({sign}${h.gain_loss:,.2f})"
                    )
                else:
                    portfolio_lines.append(
                        f"{h.company_name} (pitch {h.instrument_id}, {h.ticker}): {h.shares_owned:.2f} shares "
                        f"| Cost basis: ${h.cost_basis:,.2f} MTK | PRICE UNAVAILABLE - value unknown"
                    )
            portfolio_summary = "\n".join(portfolio_lines)
        else:
            portfolio_summary = "No current holdings - 100% cash!"

        sell_candidates = [
            h for h in snapshot.holdings
            if h.price_resolved and (
                h.gain_loss_pct > SELL_CANDIDATE_GAIN_PCT or h.gain_loss_pct < SELL_CANDIDATE_LOSS_PCT
            )
        ]
        sell_section = ""
        if sell_candidates:
            lines = [
                f"- {h.ticker} (pitch {h.instrument_id}): {'+' if h.gain_loss_pct >= 0 else ''}{h.gain_loss_pct:.1f}% "
                f"| {h.shares_owned:.2f} shares | Value: ${h.current_value:,.0f} "
                f"({'TAKE PROFITS?' if h.gain_loss_pct >= 0 else 'CUT LOSSES?'})"
                for h in sell_candidates
            ]
            sell_section = "\nSELL CANDIDATES (review these!):\n" + "\n".join(lines)

        market_lines = []
        for q in snapshot.instruments:
            if q.price is None:
                continue
            change = f"{q.change_pct:+.2f}% today" if q.change_pct is not None else "change n/a"
            market_lines.append(
                f"[Pitch ID: {q.instrument_id}] {q.company_name} ({q.ticker}) - {q.category or 'Uncategorized'}\n"
                f"    Price: ${q.price:.2f} ({change})\n"
                f"    Pitch: \"{q.elevator_pitch or ''}\"\n"
                f"    Story: {q.founder_story or ''}\n"
                f"    Fun Fact: {q.fun_fact or ''}"
            )
        market_data = "\n\n".join(market_lines)
        valid_ids = sorted(q.instrument_id for q in snapshot.instruments if q.price is not None)

        overall_gain = snapshot.holdings_value - snapshot.total_cost_basis
        overall_pct = overall_gain / snapshot.total_cost_basis * 100 if snapshot.total_cost_basis > 0 else 0.0

        cash_alert = ""
        if persona.max_cash_pct is not None and snapshot.cash_percent > persona.max_cash_pct:
            cash_alert = (
                f"\nEMERGENCY ALERT: YOU HAVE {snapshot.cash_percent:.1f}% CASH! More than "
                f"{persona.max_cash_pct:.0f}% cash is FORBIDDEN for your strategy. You MUST trade NOW!\n"
                f"Buy the strongest mover today; if nothing is up, buy the least negative stock. DO NOT HOLD!\n"
            )

        special_rule = f"\n{persona.special_rule}\n" if persona.special_rule else ""

        prompt = f"""You are "{account.label}", an AI investor with the {persona.strategy} strategy.
Your catchphrase: "{account.ai_catchphrase or ''}"

CRITICAL: STAY IN CHARACTER! Be EXTREME and TRUE to your personality!

CURRENT STATUS:
- Available Cash: ${cash:,.0f} MTK ({snapshot.cash_percent:.1f}% of total)
- Holdings Value: ${snapshot.holdings_value:,.0f} MTK ({snapshot.holdings_percent:.1f}% of total)
- TOTAL Portfolio: ${snapshot.total_value:,.0f} MTK
- Overall P&L: {'+' if overall_gain >= 0 else ''}${overall_gain:,.0f} ({overall_pct:+.1f}%)

YOUR PORTFOLIO (with gain/loss):
{portfolio_summary}
{sell_section}

INVESTMENT OPPORTUNITIES (HM14):
{market_data}

YOUR PERSONALITY & TRADING GUIDELINES ({persona.persona_name}):
{persona.guidelines}

WHEN TO SELL (YOUR STRATEGY):
{persona.sell_triggers}

TRADING RULES FOR YOU:
- Trade sizes: {persona.size_suggestion}
- Budget for this trade: ${budget_min:,} - ${budget_max:,} MTK
- REVIEW your holdings: big gains might be time to TAKE PROFITS, big losses might need to be CUT
- BUY if you see opportunities that match YOUR strategy
{cash_alert}{special_rule}
Make ONE trade decision. Respond with valid JSON only:
{{
  "action": "BUY" | "SELL" | "HOLD",
  "pitch_id": number (valid IDs: {', '.join(str(i) for i in valid_ids)}),
  "shares": number (calculate from your budget / stock price),
  "reasoning": "Brief explanation in character, referencing specific pitch details or price action"
}}

CALCULATION RULES:
- shares = (your chosen budget in MTK) / (stock's current price)
- Example: to invest $100,000 MTK in a stock at $65.00/share: shares = 100000 / 65 = 1538.46
- NEVER exceed your available cash of ${cash:,.0f} MTK: (shares x price) must be <= available cash
- You can only SELL shares you own
- Use ONLY the Pitch IDs listed above"""

        return prompt
