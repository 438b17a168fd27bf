"""
LLM Provider Adapters

Imports every adapter so it registers itself with the factory.
"""

from unicorn_trader.llm.providers.openai_adapter import OpenAIAdapter
from unicorn_trader.llm.providers.anthropic_adapter import AnthropicAdapter

__all__ = [
    'OpenAIAdapter',
    'AnthropicAdapter',
]
