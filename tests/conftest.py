"""Shared test fixtures for promptforge tests."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_PROVIDER", "mock")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("OPENAI_BASE_URL", "")
    monkeypatch.setenv("DB_PATH", "")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from promptforge.core.llm.client import ChatClient  # noqa: E402
from promptforge.core.llm.providers.mock import MockProvider  # noqa: E402
from promptforge.core.templates.models import PromptTemplateSet  # noqa: E402


# ---------------------------------------------------------------------------
# Sample configurations
# ---------------------------------------------------------------------------

SINGLE_UNIT_CONFIG: dict[str, Any] = {
    "adminInputs": {
        "inputB1": "Product name <def>Widget</def>",
        "inputB2": "Audience <def>developers</def>",
    },
    "promptBlocks": {
        "promptBlock1": "Describe {#inputB1} for {#inputB2}: {#input}",
        "promptBlock2": "Shorten this to one tweet: {#promptBlock1}",
    },
}

MULTI_UNIT_CONFIG: dict[str, Any] = {
    "cards": [
        {
            "id": "card1",
            "title": "Research",
            "adminInputs": {
                "inputB1": "Topic <def>solar power</def>",
                "inputB2": "Depth <def>overview</def>",
            },
            "promptBlocks": {
                "promptBlock1": "Research {#inputB1} at {#inputB2} depth",
                "promptBlock2": "List the key facts in {#promptBlock1}",
                "promptBlock3": "Summarize {#promptBlock2} for {#input}",
            },
        },
        {
            "id": "card2",
            "title": "Write",
            "adminInputs": {"inputB1": "Tone <def>friendly</def>"},
            "promptBlocks": {
                "promptBlock1": "Write a post in a {#inputB1} tone from {#card1.promptBlock3}",
            },
        },
    ],
    "globalPromptBlocks": {
        "promptBlock1": "Proofread {#card2.promptBlock1}",
    },
}


def as_response(config: dict[str, Any], prefix: str = "Here you go:\n", suffix: str = "\nDone.") -> str:
    """Wrap a configuration in prose the way a chatty model would."""
    return f"{prefix}{json.dumps(config, ensure_ascii=False)}{suffix}"


def make_template(
    id: str = "test-template",
    name: str = "Test",
    first_stage: str = "FIRST[{#input}]",
    second_stage: str = "SECOND[{#firstStagePrompt}|{#promptResults1}|{#input}]",
    is_default: bool = False,
) -> PromptTemplateSet:
    """Create a valid template with sensible defaults."""
    return PromptTemplateSet(
        id=id,
        name=name,
        first_stage=first_stage,
        second_stage=second_stage,
        created_at=1_700_000_000_000,
        updated_at=1_700_000_000_000,
        is_default=is_default,
    )


# ---------------------------------------------------------------------------
# Model boundary fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_provider() -> MockProvider:
    """Mock provider returning a valid single-unit configuration."""
    return MockProvider()


@pytest.fixture
def chat_client(mock_provider: MockProvider) -> ChatClient:
    return ChatClient(mock_provider)


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def template_db():
    """Create an in-memory TemplateDatabase for testing."""
    from promptforge.core.storage.database import TemplateDatabase

    db = TemplateDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def sqlite_store(template_db):
    from promptforge.core.storage.template_store import SQLiteTemplateStore

    return SQLiteTemplateStore(template_db)


@pytest.fixture
def interaction_log(template_db):
    """Create an InteractionLog backed by in-memory SQLite."""
    from promptforge.core.audit.logger import InteractionLog

    return InteractionLog(template_db)


# ---------------------------------------------------------------------------
# Template + orchestration fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def manager():
    """TemplateManager loaded with the built-in catalog (in-memory store)."""
    from promptforge.core.templates.manager import TemplateManager

    mgr = TemplateManager()
    mgr.load()
    return mgr


@pytest.fixture
def orchestrator(chat_client):
    """Orchestrator with a simple, easily inspected active template."""
    from promptforge.core.orchestration.orchestrator import ConfigOrchestrator

    return ConfigOrchestrator(chat_client, active_template=make_template())
