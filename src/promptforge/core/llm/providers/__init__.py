"""LLM provider implementations."""

from promptforge.core.llm.providers.anthropic import AnthropicProvider
from promptforge.core.llm.providers.mock import MockProvider
from promptforge.core.llm.providers.openai import OpenAIProvider

__all__ = ["AnthropicProvider", "MockProvider", "OpenAIProvider"]
