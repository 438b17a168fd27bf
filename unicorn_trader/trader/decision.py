"""
Trade decisions: the typed result of a persona's turn.

Raw provider JSON never leaves this module. parse_decision() sanitizes it
into exactly one of BuyDecision, SellDecision or HoldDecision:
1. action outside BUY/SELL/HOLD becomes HOLD
2. BUY/SELL without a positive numeric share count becomes HOLD
3. BUY/SELL without an integer instrument id becomes HOLD
Each conversion is noted at the front of the rationale.
"""

import json
import math
import re
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from unicorn_trader.llm.llm_client import strip_code_fences


class DecisionParseError(Exception):
    """The provider response body is not a JSON object"""


class BuyDecision(BaseModel):
    action: Literal["BUY"] = "BUY"
    instrument_id: int
    shares: float = Field(gt=0)
    rationale: str = ""


class SellDecision(BaseModel):
    action: Literal["SELL"] = "SELL"
    instrument_id: int
    shares: float = Field(gt=0)
    rationale: str = ""


class HoldDecision(BaseModel):
    """
    No trade this turn.

    failed=True marks a HOLD substituted for a provider failure; it is
    audited as unsuccessful and never counts as a completed trade.
    """
    action: Literal["HOLD"] = "HOLD"
    instrument_id: Optional[int] = None
    rationale: str = ""
    failed: bool = False


TradeDecision = Annotated[Union[BuyDecision, SellDecision, HoldDecision], Field(discriminator="action")]

_decision_adapter = TypeAdapter(TradeDecision)

VALID_ACTIONS = ("BUY", "SELL", "HOLD")


def decision_from_dict(data: dict) -> Union[BuyDecision, SellDecision, HoldDecision]:
    """Rebuild a decision from its model_dump() form"""
    return _decision_adapter.validate_python(data)


def failed_hold(reason: str) -> HoldDecision:
    return HoldDecision(rationale=f"Technical difficulties: {reason}", failed=True)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _as_instrument_id(value: Any) -> Optional[int]:
    if _is_number(value) and float(value).is_integer():
        return int(value)
    return None


def parse_decision(payload: Any) -> Union[BuyDecision, SellDecision, HoldDecision]:
    """
    Sanitize a decoded provider response into a typed decision.

    Args:
        payload: Decoded JSON with action, pitch_id, shares, reasoning

    Returns:
        BuyDecision, SellDecision or HoldDecision
    """
    if not isinstance(payload, dict):
        raise DecisionParseError(f"Expected a JSON object, got {type(payload).__name__}")

    rationale = payload.get("reasoning")
    if rationale is None:
        rationale = payload.get("rationale", "")
    rationale = str(rationale).strip()

    raw_action = payload.get("action")
    action = raw_action.strip().upper() if isinstance(raw_action, str) else None
    instrument_id = _as_instrument_id(payload.get("pitch_id", payload.get("instrument_id")))

    if action not in VALID_ACTIONS:
        return HoldDecision(
            instrument_id=instrument_id,
            rationale=f"(Converted from invalid action {raw_action!r}) {rationale}".strip(),
        )

    if action == "HOLD":
        return HoldDecision(instrument_id=instrument_id, rationale=rationale)

    shares = payload.get("shares")
    if shares is None or shares == 0:
        return HoldDecision(
            instrument_id=instrument_id,
            rationale=f"(Converted from {action} - no shares specified) {rationale}".strip(),
        )
    if not _is_number(shares) or shares <= 0:
        return HoldDecision(
            instrument_id=instrument_id,
            rationale=f"(Converted from {action} - invalid shares: {shares!r}) {rationale}".strip(),
        )
    if instrument_id is None:
        return HoldDecision(
            rationale=f"(Converted from {action} - no pitch_id specified) {rationale}".strip(),
        )

    return _decision_adapter.validate_python({
        "action": action,
        "instrument_id": instrument_id,
        "shares": float(shares),
        "rationale": rationale,
    })


def parse_decision_text(content: str) -> Union[BuyDecision, SellDecision, HoldDecision]:
    """Decode a provider response body, tolerating markdown fences and trailing commas"""
    content = re.sub(r',(\s*[}\]])', r'\1', strip_code_fences(content))
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        raise DecisionParseError(f"Malformed JSON: {e}")

    return parse_decision(payload)
