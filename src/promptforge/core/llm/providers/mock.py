"""Mock LLM provider for testing."""

from __future__ import annotations

from promptforge.core.llm.provider import ChatMessage, ProviderResponse

_DEFAULT_RESPONSE = """\
{
  "adminInputs": {
    "inputB1": "Topic to write about <def>product launch</def>"
  },
  "promptBlocks": {
    "promptBlock1": "Write a short announcement about {#inputB1} for: {#input}"
  }
}"""


class MockProvider:
    """Mock provider for testing; returns canned responses.

    Queued ``responses`` are served first (one per call); once exhausted the
    provider keeps returning ``response_content``. When ``error`` is set every
    call raises it instead.
    """

    def __init__(
        self,
        response_content: str = _DEFAULT_RESPONSE,
        responses: list[str] | None = None,
        error: Exception | None = None,
        model: str = "mock",
    ) -> None:
        self.response_content = response_content
        self.responses = list(responses or [])
        self.error = error
        self.default_model = model
        self.last_messages: list[ChatMessage] = []
        self.last_model: str = ""
        self.call_count: int = 0

    @property
    def last_user_message(self) -> str:
        users = [m["content"] for m in self.last_messages if m["role"] == "user"]
        return users[-1] if users else ""

    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> ProviderResponse:
        self.last_messages = list(messages)
        self.last_model = model or self.default_model
        self.call_count += 1
        if self.error is not None:
            raise self.error

        content = self.responses.pop(0) if self.responses else self.response_content
        prompt_words = sum(len(m["content"].split()) for m in messages)
        return ProviderResponse(
            content=content,
            input_tokens=prompt_words,
            output_tokens=len(content.split()),
            model=self.last_model,
            latency_ms=0.0,
        )
