"""
Anthropic Adapter

Claude has no JSON mode, so the JSON requirement is appended to the system
prompt and markdown fences are stripped from the answer.
API: https://docs.anthropic.com/claude/reference/
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from anthropic import (
    Anthropic,
    APIError,
    APITimeoutError as AnthropicTimeout,
    RateLimitError as AnthropicRateLimit,
    AuthenticationError as AnthropicAuthError,
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

JSON_INSTRUCTION = "You must respond with valid JSON only. No markdown, no explanations."


class AnthropicAdapter(LLMClient):
    """Anthropic API adapter (Claude models)"""

    def __init__(self, model: str, api_key: str, **kwargs):
        super().__init__(model, api_key, **kwargs)
        self.client = Anthropic(
            api_key=api_key,
            timeout=kwargs.get('timeout', 20.0),
            max_retries=kwargs.get('max_retries', 0)
        )

    @property
    def provider_name(self) -> str:
        return "anthropic"

    def _convert_messages(self, messages: List[LLMMessage]) -> Tuple[str, List[Dict[str, str]]]:
        """Split out the system message; Anthropic takes it as a separate argument"""
        system_message = ""
        conversation = []

        for msg in messages:
            if msg.role == "system":
                system_message = msg.content
            else:
                conversation.append(msg.to_dict())

        return system_message, conversation

    def generate_structured(
        self,
        messages: List[LLMMessage],
        response_schema: Dict[str, Any],
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        temperature = self._normalize_temperature(temperature)
        system_msg, conversation = self._convert_messages(messages)
        system_msg = f"{system_msg}\n\n{JSON_INSTRUCTION}" if system_msg else JSON_INSTRUCTION

        try:
            response = self.client.messages.create(
                model=self.model,
                system=system_msg,
                messages=conversation,
                temperature=temperature,
                max_tokens=max_tokens or 1000,
                **kwargs
            )
        except AnthropicTimeout as e:
            raise ProviderTimeoutError(str(e), self.provider_name, self.model)
        except AnthropicRateLimit as e:
            raise RateLimitError(str(e), self.provider_name, self.model)
        except AnthropicAuthError as e:
            raise AuthenticationError(str(e), self.provider_name, self.model)
        except APIError as e:
            raise LLMError(str(e), self.provider_name, self.model)

        content = self._validated_json(
            "".join(block.text for block in response.content if hasattr(block, 'text'))
        )

        usage = {
            "prompt_tokens": response.usage.input_tokens,
            "completion_tokens": response.usage.output_tokens,
            "total_tokens": response.usage.input_tokens + response.usage.output_tokens
        }

        return LLMResponse(
            content=content,
            model=self.model,
            provider=self.provider_name,
            usage=usage,
            raw_response=response
        )


LLMClientFactory.register_provider("anthropic", AnthropicAdapter)
