"""Tests for the ChatClient model boundary and provider factory."""

from __future__ import annotations

import asyncio

import pytest

from promptforge.core.llm.client import ChatClient
from promptforge.core.llm.provider import create_provider
from promptforge.core.llm.providers.mock import MockProvider


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class TestChatClient:
    def test_returns_response_text(self, chat_client, mock_provider):
        text = _run(chat_client.send_chat_request([{"role": "user", "content": "hi"}]))
        assert text == mock_provider.response_content
        assert mock_provider.last_user_message == "hi"

    def test_default_model_from_provider(self):
        client = ChatClient(MockProvider(model="mock-large"))
        assert client.get_selected_model() == "mock-large"

    def test_explicit_model_overrides_selection(self, chat_client, mock_provider):
        _run(chat_client.send_chat_request([{"role": "user", "content": "hi"}], "other"))
        assert mock_provider.last_model == "other"

    def test_select_model(self, chat_client, mock_provider):
        chat_client.select_model("mock-2")
        _run(chat_client.send_chat_request([{"role": "user", "content": "hi"}]))
        assert mock_provider.last_model == "mock-2"
        assert chat_client.get_selected_model() == "mock-2"

    def test_select_empty_model_rejected(self, chat_client):
        with pytest.raises(ValueError):
            chat_client.select_model("")

    def test_usage_accumulates(self, chat_client):
        for _ in range(3):
            _run(chat_client.send_chat_request([{"role": "user", "content": "one two"}]))
        assert chat_client.usage.calls == 3
        assert chat_client.usage.input_tokens == 6

    def test_provider_errors_propagate(self):
        client = ChatClient(MockProvider(error=ConnectionError("offline")))
        with pytest.raises(ConnectionError):
            _run(client.send_chat_request([{"role": "user", "content": "hi"}]))


class TestMockProvider:
    def test_queued_responses_served_in_order(self):
        provider = MockProvider(response_content="fallback", responses=["one", "two"])
        client = ChatClient(provider)
        msgs = [{"role": "user", "content": "x"}]
        assert [_run(client.send_chat_request(msgs)) for _ in range(3)] == ["one", "two", "fallback"]


class TestCreateProvider:
    def test_mock(self):
        assert isinstance(create_provider("mock"), MockProvider)

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            create_provider("carrier-pigeon")
