"""Chat client: the model-invocation boundary used by the orchestrator."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from promptforge.core.llm.provider import ChatMessage, LLMProvider, ProviderResponse

logger = logging.getLogger(__name__)


@dataclass
class UsageTotals:
    """Running token counters across calls made through one client."""

    calls: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    models: dict[str, int] = field(default_factory=dict)


class ChatClient:
    """Opaque text-in/text-out exchange with the selected model.

    Retries, rate limiting and timeouts belong to the provider SDKs; this
    class only forwards messages and reports the final response text.
    """

    def __init__(
        self,
        provider: LLMProvider,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> None:
        self.provider = provider
        self._model = model or provider.default_model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.usage = UsageTotals()

    def get_selected_model(self) -> str:
        """Return the model id requests are sent to by default."""
        return self._model

    def select_model(self, model: str) -> None:
        """Switch the default model for subsequent requests."""
        if not model:
            raise ValueError("model must be a non-empty string")
        self._model = model

    async def send_chat_request(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
    ) -> str:
        """Send ``messages`` to the model and return the complete response text."""
        model = model or self._model
        response: ProviderResponse = await self.provider.chat(
            messages,
            model=model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )

        self.usage.calls += 1
        self.usage.input_tokens += response.input_tokens
        self.usage.output_tokens += response.output_tokens
        self.usage.models[response.model] = self.usage.models.get(response.model, 0) + 1

        logger.info(
            "Chat request: model=%s, messages=%d, tokens=%d+%d, latency=%.0fms",
            response.model,
            len(messages),
            response.input_tokens,
            response.output_tokens,
            response.latency_ms,
        )
        return response.content
