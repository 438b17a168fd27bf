"""
LLM abstraction layer for persona trade decisions.

Usage:
    from unicorn_trader.llm import get_llm_client, LLMMessage

    client = get_llm_client(provider="openai", model="gpt-4o-mini", api_key="sk-...")
    response = client.generate_structured(
        messages=[LLMMessage(role="user", content="...")],
        response_schema={"type": "object"},
    )
"""

from unicorn_trader.llm.llm_client import (
    LLMClient,
    LLMMessage,
    LLMResponse,
    LLMError,
    RateLimitError,
    AuthenticationError,
    InvalidRequestError,
    ProviderTimeoutError,
    strip_code_fences,
    LLMClientFactory,
    get_llm_client,
)

# Register provider adapters with the factory
import unicorn_trader.llm.providers  # noqa: F401

__all__ = [
    'LLMClient',
    'LLMMessage',
    'LLMResponse',
    'LLMError',
    'RateLimitError',
    'AuthenticationError',
    'InvalidRequestError',
    'ProviderTimeoutError',
    'strip_code_fences',
    'LLMClientFactory',
    'get_llm_client',
]
