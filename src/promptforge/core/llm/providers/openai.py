"""OpenAI (and OpenAI-compatible) chat completion provider."""

from __future__ import annotations

import time

from promptforge.core.llm.provider import ChatMessage, ProviderResponse


class OpenAIProvider:
    """OpenAI provider using the OpenAI SDK.

    ``base_url`` points the client at any OpenAI-compatible endpoint
    (DeepSeek, Volcengine Ark, a local vLLM server, ...).
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        base_url: str | None = None,
        timeout: float = 120.0,
    ) -> None:
        import openai

        self.client = openai.AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)
        self.default_model = model

    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> ProviderResponse:
        model = model or self.default_model
        start = time.monotonic()
        response = await self.client.chat.completions.create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[{"role": m["role"], "content": m["content"]} for m in messages],
        )
        elapsed_ms = (time.monotonic() - start) * 1000

        choice = response.choices[0] if response.choices else None
        content = choice.message.content or "" if choice else ""
        usage = response.usage
        return ProviderResponse(
            content=content,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=model,
            latency_ms=elapsed_ms,
        )
