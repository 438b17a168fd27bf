"""
Unit tests for decision sanitization.

Tests all coercion rules:
- Invalid action becomes HOLD
- BUY/SELL with zero, missing or non-numeric shares becomes HOLD
- BUY/SELL without an instrument id becomes HOLD
- Markdown fences and trailing commas are tolerated
"""

import pytest

from unicorn_trader.trader.decision import (
    BuyDecision,
    DecisionParseError,
    HoldDecision,
    SellDecision,
    decision_from_dict,
    failed_hold,
    parse_decision,
    parse_decision_text,
)


class TestParseDecision:

    def test_valid_buy(self):
        decision = parse_decision({"action": "BUY", "pitch_id": 2, "shares": 12.5, "reasoning": "Cloud!"})
        assert isinstance(decision, BuyDecision)
        assert decision.instrument_id == 2
        assert decision.shares == 12.5
        assert decision.rationale == "Cloud!"

    def test_valid_sell_lowercase_action(self):
        decision = parse_decision({"action": " sell ", "pitch_id": 4, "shares": 3, "reasoning": "Cut it"})
        assert isinstance(decision, SellDecision)
        assert decision.shares == 3.0

    def test_hold(self):
        decision = parse_decision({"action": "HOLD", "reasoning": "Patience"})
        assert isinstance(decision, HoldDecision)
        assert decision.failed is False

    def test_invalid_action_becomes_hold(self):
        decision = parse_decision({"action": "SHORT", "pitch_id": 1, "shares": 10, "reasoning": "Bear"})
        assert isinstance(decision, HoldDecision)
        assert decision.rationale.startswith("(Converted from invalid action 'SHORT')")
        assert decision.rationale.endswith("Bear")

    def test_missing_action_becomes_hold(self):
        assert isinstance(parse_decision({"pitch_id": 1, "shares": 10}), HoldDecision)

    @pytest.mark.parametrize("shares", [0, None])
    def test_buy_without_shares_becomes_hold(self, shares):
        payload = {"action": "BUY", "pitch_id": 1, "reasoning": "YOLO"}
        if shares is not None:
            payload["shares"] = shares
        decision = parse_decision(payload)
        assert isinstance(decision, HoldDecision)
        assert "(Converted from BUY - no shares specified)" in decision.rationale

    @pytest.mark.parametrize("shares", [-5, "lots", float("nan"), True])
    def test_buy_with_invalid_shares_becomes_hold(self, shares):
        decision = parse_decision({"action": "BUY", "pitch_id": 1, "shares": shares})
        assert isinstance(decision, HoldDecision)
        assert "invalid shares" in decision.rationale

    def test_sell_without_instrument_becomes_hold(self):
        decision = parse_decision({"action": "SELL", "shares": 5, "reasoning": "Out"})
        assert isinstance(decision, HoldDecision)
        assert "(Converted from SELL - no pitch_id specified)" in decision.rationale

    def test_fractional_instrument_id_rejected(self):
        decision = parse_decision({"action": "BUY", "pitch_id": 1.5, "shares": 5})
        assert isinstance(decision, HoldDecision)

    def test_rationale_key_accepted(self):
        decision = parse_decision({"action": "BUY", "instrument_id": 3, "shares": 1, "rationale": "Travel"})
        assert isinstance(decision, BuyDecision)
        assert decision.instrument_id == 3
        assert decision.rationale == "Travel"

    def test_non_object_rejected(self):
        with pytest.raises(DecisionParseError):
            parse_decision(["BUY"])


class TestParseDecisionText:

    def test_fenced_json(self):
        content = '```json\n{"action": "BUY", "pitch_id": 7, "shares": 100, "reasoning": "Email wins"}\n```'
        decision = parse_decision_text(content)
        assert isinstance(decision, BuyDecision)
        assert decision.instrument_id == 7

    def test_single_line_fence(self):
        decision = parse_decision_text('```json {"action": "SELL", "pitch_id": 3, "shares": 12}```')
        assert isinstance(decision, SellDecision)
        assert decision.shares == 12

    def test_trailing_comma(self):
        decision = parse_decision_text('{"action": "HOLD", "reasoning": "Wait",}')
        assert isinstance(decision, HoldDecision)

    def test_malformed_json(self):
        with pytest.raises(DecisionParseError):
            parse_decision_text("I think you should buy META")

    def test_empty_body(self):
        with pytest.raises(DecisionParseError):
            parse_decision_text("")


class TestDecisionHelpers:

    def test_failed_hold(self):
        decision = failed_hold("timeout")
        assert decision.failed is True
        assert decision.rationale == "Technical difficulties: timeout"

    def test_decision_from_dict(self):
        original = SellDecision(instrument_id=2, shares=4, rationale="Trim")
        assert decision_from_dict(original.model_dump()) == original
