"""LLM provider protocol: abstract interface for chat completion calls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, TypedDict, runtime_checkable


class ChatMessage(TypedDict):
    """A single chat turn sent to the model."""

    role: str
    content: str


@dataclass
class ProviderResponse:
    """Response from an LLM provider."""

    content: str
    input_tokens: int
    output_tokens: int
    model: str
    latency_ms: float


@runtime_checkable
class LLMProvider(Protocol):
    """Abstract interface for chat completion calls."""

    default_model: str

    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> ProviderResponse: ...


def create_provider(
    provider_name: str,
    api_key: str = "",
    model: str = "",
    base_url: str = "",
    timeout: float = 120.0,
) -> LLMProvider:
    """Factory function to create an LLM provider by name.

    Args:
        provider_name: "anthropic", "openai", or "mock"
        api_key: API key for the provider.
        model: Model identifier override.
        base_url: Endpoint override for OpenAI-compatible services.
        timeout: Request timeout in seconds, handed to the SDK client.

    Returns:
        An LLMProvider instance.
    """
    if provider_name == "anthropic":
        from promptforge.core.llm.providers.anthropic import AnthropicProvider

        return AnthropicProvider(
            api_key=api_key,
            model=model or "claude-sonnet-4-5-20250929",
            timeout=timeout,
        )
    elif provider_name == "openai":
        from promptforge.core.llm.providers.openai import OpenAIProvider

        return OpenAIProvider(
            api_key=api_key,
            model=model or "gpt-4o",
            base_url=base_url or None,
            timeout=timeout,
        )
    elif provider_name == "mock":
        from promptforge.core.llm.providers.mock import MockProvider

        return MockProvider()
    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")
