"""
Text-generation client interface used by the persona decision engine.

Every provider is asked for one JSON document per persona turn. Adapters
translate SDK errors into the LLMError hierarchy below, so the engine can
turn any provider failure into a failed HOLD without knowing which SDK ran.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Literal
from dataclasses import dataclass
import json
import logging

logger = logging.getLogger(__name__)


@dataclass
class LLMMessage:
    role: Literal["system", "user", "assistant"]
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class LLMResponse:
    """A validated JSON body plus accounting from the provider"""
    content: str
    model: str
    provider: str
    usage: Optional[Dict[str, int]] = None  # prompt_tokens, completion_tokens, total_tokens
    raw_response: Optional[Any] = None


class LLMError(Exception):
    """Any failure to obtain a usable decision body from a provider"""
    def __init__(self, message: str, provider: str, model: str):
        self.provider = provider
        self.model = model
        super().__init__(f"[{provider}/{model}] {message}")


class RateLimitError(LLMError):
    """Provider refused the request for rate or quota reasons"""


class AuthenticationError(LLMError):
    """Missing or rejected API key"""


class InvalidRequestError(LLMError):
    """Request rejected, or the answer was empty or not JSON"""


class ProviderTimeoutError(LLMError):
    """No answer within the configured timeout"""


def strip_code_fences(text: Optional[str]) -> str:
    """
    Remove a markdown code fence around a reply.

    Handles multi-line fences, fences on a single line (```json {...}```)
    and an unterminated opening fence.
    """
    text = (text or "").strip()
    if text.startswith("```"):
        text = text.split("```")[1]
        if text[:4].lower() == "json":
            text = text[4:]
    return text.strip()


class LLMClient(ABC):
    """
    One configured provider/model pair.

    Subclasses implement generate_structured and translate their SDK's
    exceptions; body cleanup and JSON validation are shared here.
    """

    def __init__(self, model: str, api_key: str, **kwargs):
        """
        Args:
            model: Provider model id, e.g. "gpt-4o-mini"
            api_key: Provider API key; an empty key fails on first request
            **kwargs: SDK options (timeout, max_retries)
        """
        self.model = model
        self.api_key = api_key
        self.config = kwargs

    @abstractmethod
    def generate_structured(
        self,
        messages: List[LLMMessage],
        response_schema: Dict[str, Any],
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Ask for a single JSON document answering `messages`.

        Raises:
            ProviderTimeoutError, RateLimitError, AuthenticationError: Transport failures
            InvalidRequestError: Empty or non-JSON body
            LLMError: Any other provider error
        """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Registry key, e.g. 'openai'"""

    def _normalize_temperature(self, temperature: float) -> float:
        return max(0.0, min(1.0, temperature))

    def _validated_json(self, content: Optional[str]) -> str:
        """Strip fences from a reply and make sure what is left decodes as JSON"""
        body = strip_code_fences(content)
        if not body:
            raise InvalidRequestError("Empty response body", self.provider_name, self.model)
        try:
            json.loads(body)
        except json.JSONDecodeError as e:
            raise InvalidRequestError(f"Invalid JSON in response: {e}", self.provider_name, self.model)
        return body


class LLMClientFactory:
    """Maps provider names from config to adapter classes"""

    _registry: Dict[str, type] = {}

    @classmethod
    def register_provider(cls, provider_name: str, client_class: type):
        cls._registry[provider_name.lower()] = client_class
        logger.debug(f"Registered LLM provider: {provider_name}")

    @classmethod
    def available_providers(cls) -> List[str]:
        return sorted(cls._registry.keys())

    @classmethod
    def create(cls, provider: str, model: str, api_key: str, **kwargs) -> LLMClient:
        """
        Raises:
            ValueError: If no adapter is registered under `provider`
        """
        client_class = cls._registry.get(provider.lower())
        if client_class is None:
            raise ValueError(
                f"Unsupported provider: {provider}. "
                f"Available providers: {', '.join(cls.available_providers())}"
            )

        logger.info(f"Creating LLM client: {provider}/{model}")
        return client_class(model=model, api_key=api_key, **kwargs)


def get_llm_client(provider: str, model: str, api_key: str, **kwargs) -> LLMClient:
    return LLMClientFactory.create(provider, model, api_key, **kwargs)
