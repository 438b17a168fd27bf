"""
Persona trading decisions: typed decisions, archetypes and the decision engine.
"""

from .decision import (
    BuyDecision,
    DecisionParseError,
    HoldDecision,
    SellDecision,
    TradeDecision,
    parse_decision,
    parse_decision_text,
)
from .persona_agent import PersonaDecision, PersonaDecisionEngine
from .personas import DEFAULT_PROFILE, DEFAULT_ROSTER, PERSONA_PROFILES, PersonaProfile, get_profile, resolve_persona

__all__ = [
    'BuyDecision',
    'DecisionParseError',
    'HoldDecision',
    'SellDecision',
    'TradeDecision',
    'parse_decision',
    'parse_decision_text',
    'PersonaDecision',
    'PersonaDecisionEngine',
    'DEFAULT_PROFILE',
    'DEFAULT_ROSTER',
    'PERSONA_PROFILES',
    'PersonaProfile',
    'get_profile',
    'resolve_persona',
]
