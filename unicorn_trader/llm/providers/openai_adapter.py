"""
OpenAI Adapter

Uses Chat Completions JSON mode (response_format json_object), which
requires the word "JSON" to appear in the prompt.
API: https://platform.openai.com/docs/api-reference
"""

import logging
from typing import Any, Dict, List, Optional

from openai import (
    OpenAI,
    OpenAIError,
    APITimeoutError as OpenAITimeout,
    RateLimitError as OpenAIRateLimit,
    AuthenticationError as OpenAIAuthError,
)

from unicorn_trader.llm.llm_client import (
    LLMClient,
    LLMMessage,
    LLMResponse,
    LLMError,
    RateLimitError,
    AuthenticationError,
    ProviderTimeoutError,
    LLMClientFactory
)

logger = logging.getLogger(__name__)


class OpenAIAdapter(LLMClient):
    """OpenAI API adapter (gpt-4o, gpt-4o-mini)"""

    def __init__(self, model: str, api_key: str, **kwargs):
        super().__init__(model, api_key, **kwargs)
        self.client = OpenAI(
            api_key=api_key,
            timeout=kwargs.get('timeout', 20.0),
            max_retries=kwargs.get('max_retries', 0)
        )

    @property
    def provider_name(self) -> str:
        return "openai"

    def _convert_messages(self, messages: List[LLMMessage]) -> List[Dict[str, str]]:
        return [msg.to_dict() for msg in messages]

    def generate_structured(
        self,
        messages: List[LLMMessage],
        response_schema: Dict[str, Any],
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """Generate structured JSON response using OpenAI JSON mode"""
        temperature = self._normalize_temperature(temperature)

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=self._convert_messages(messages),
                temperature=temperature,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
                **kwargs
            )
        except OpenAITimeout as e:
            raise ProviderTimeoutError(str(e), self.provider_name, self.model)
        except OpenAIRateLimit as e:
            raise RateLimitError(str(e), self.provider_name, self.model)
        except OpenAIAuthError as e:
            raise AuthenticationError(str(e), self.provider_name, self.model)
        except OpenAIError as e:
            raise LLMError(str(e), self.provider_name, self.model)

        content = self._validated_json(response.choices[0].message.content if response.choices else None)

        usage = {
            "prompt_tokens": response.usage.prompt_tokens,
            "completion_tokens": response.usage.completion_tokens,
            "total_tokens": response.usage.total_tokens
        } if response.usage else None

        return LLMResponse(
            content=content,
            model=self.model,
            provider=self.provider_name,
            usage=usage,
            raw_response=response
        )


LLMClientFactory.register_provider("openai", OpenAIAdapter)
