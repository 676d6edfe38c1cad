"""promptforge MCP server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery (`fastmcp run ...app.py:mcp`)
"""

from __future__ import annotations

import logging
import sqlite3

from fastmcp import FastMCP

from promptforge.core.audit.logger import InteractionLog
from promptforge.core.config.settings import get_settings
from promptforge.core.llm.client import ChatClient
from promptforge.core.llm.provider import LLMProvider, create_provider
from promptforge.core.orchestration.orchestrator import ConfigOrchestrator
from promptforge.core.storage.database import DatabaseError, TemplateDatabase
from promptforge.core.storage.template_store import (
    InMemoryTemplateStore,
    SQLiteTemplateStore,
    TemplateStore,
)
from promptforge.core.templates.manager import TemplateManager
from promptforge.domains.configuration.prompts.config_prompts import register_config_prompts
from promptforge.domains.configuration.resources.templates import (
    register_template_resources,
)
from promptforge.domains.configuration.tools.config_tools import register_config_tools
from promptforge.domains.configuration.tools.template_tools import register_template_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "promptforge"
SERVER_VERSION = "0.1.0"


def create_app(
    *,
    provider_override: LLMProvider | None = None,
    database_override: TemplateDatabase | None = None,
) -> FastMCP:
    """Create and configure the promptforge MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Selects the model provider and builds the chat client
    3. Opens the template database (unless persistence is disabled)
    4. Loads the template catalog and wires it to the orchestrator
    5. Registers all tools, resources, and prompts
    """
    settings = get_settings()

    # --- Server instance ---
    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "Designs structured form + prompt pipeline configurations. "
            "generate_config turns a plain-language request into a JSON "
            "configuration; edit_config refines it. Template tools manage "
            "the prompt templates both stages are built from."
        ),
    )

    # --- Model boundary ---
    if provider_override is not None:
        provider = provider_override
    else:
        if settings.llm_provider == "mock":
            provider_name = "mock"
            api_key = ""
            model = ""
        elif settings.llm_provider == "anthropic":
            api_key = settings.anthropic_api_key
            model = settings.anthropic_model
            provider_name = "anthropic" if api_key else "mock"
        elif settings.llm_provider == "openai":
            api_key = settings.openai_api_key
            model = settings.openai_model
            provider_name = "openai" if api_key else "mock"
        else:  # pragma: no cover
            raise ValueError(f"Unknown LLM provider: {settings.llm_provider!r}")

        if provider_name == "mock" and settings.llm_provider != "mock":
            logger.warning(
                "No API key configured for provider '%s'; falling back to mock provider",
                settings.llm_provider,
            )

        provider = create_provider(
            provider_name=provider_name,
            api_key=api_key,
            model=model,
            base_url=settings.openai_base_url,
            timeout=settings.llm_timeout_seconds,
        )

    client = ChatClient(
        provider,
        max_tokens=settings.llm_max_tokens,
        temperature=settings.llm_temperature,
    )

    # --- Template persistence ---
    database: TemplateDatabase | None = None
    if database_override is not None:
        database = database_override
        database.initialize()
    elif settings.db_path:
        try:
            database = TemplateDatabase(settings.db_path)
            database.initialize()
            logger.info(
                "Template store initialized: %s (schema v%d)",
                settings.db_path,
                database.get_schema_version(),
            )
        except (DatabaseError, OSError, sqlite3.Error) as exc:
            logger.error("Failed to initialize template store: %s", exc)
            logger.warning("Continuing without persistence; templates live in memory only")
            database = None
    else:
        logger.info("DB_PATH is empty; running without persistence")

    store: TemplateStore
    interaction_log: InteractionLog | None = None
    if database is not None:
        store = SQLiteTemplateStore(database)
        interaction_log = InteractionLog(database)
    else:
        store = InMemoryTemplateStore()

    # --- Template catalog + orchestrator ---
    manager = TemplateManager(store)
    templates = manager.load()
    logger.info("Loaded %d templates", len(templates))

    orchestrator = ConfigOrchestrator(client, interaction_log=interaction_log)
    manager.subscribe(orchestrator.set_active_template)

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        active = manager.active_template
        status = {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "model": client.get_selected_model(),
            "templates_loaded": len(manager.templates),
            "active_template": active.name if active else None,
            "storage_enabled": database is not None,
        }
        if interaction_log is not None:
            status["interactions_logged"] = interaction_log.count_events()
        return status

    register_config_tools(server, orchestrator, manager)
    register_template_tools(server, manager)
    logger.info("Configuration and template tools registered")

    # --- Register history tools (requires storage) ---
    if interaction_log is not None:
        from promptforge.domains.configuration.tools.history_tools import (
            register_history_tools,
        )

        register_history_tools(server, interaction_log)
        logger.info("Interaction history tools registered")

    # --- Register resources ---
    register_template_resources(server, manager)

    # --- Register prompts ---
    register_config_prompts(server)

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
