"""MCP tools for managing the prompt template catalog."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from fastmcp import FastMCP

from promptforge.core.templates.catalog import create_template
from promptforge.core.templates.models import (
    TemplateError,
    TemplateValidationError,
)

if TYPE_CHECKING:
    from promptforge.core.templates.manager import TemplateManager

logger = logging.getLogger(__name__)


def _error(exc: TemplateError) -> str:
    payload: dict[str, Any] = {"status": "error", "error": str(exc)}
    if isinstance(exc, TemplateValidationError):
        payload["validation_errors"] = exc.errors
    return json.dumps(payload, indent=2)


def register_template_tools(mcp: FastMCP, manager: TemplateManager) -> None:
    """Register template catalog tools on the MCP server."""

    @mcp.tool
    def list_templates(include_text: bool = False) -> str:
        """List available prompt templates and which one is active.

        Args:
            include_text: Include the full first/second stage text.
        """
        active = manager.active_template
        templates = []
        for template in manager.templates:
            entry = template.to_dict()
            if not include_text:
                entry.pop("firstStage")
                entry.pop("secondStage")
            entry["isActive"] = active is not None and active.id == template.id
            templates.append(entry)
        return json.dumps(
            {
                "status": "ok",
                "active_template_id": active.id if active else None,
                "templates": templates,
            },
            indent=2,
            ensure_ascii=False,
        )

    @mcp.tool
    def add_template(name: str, first_stage: str, second_stage: str) -> str:
        """Add a custom template.

        The first stage must contain {#input}; the second stage must contain
        {#input} and {#promptResults1}. It may also use {#firstStagePrompt}.
        """
        template = create_template(name, first_stage, second_stage)
        try:
            manager.add(template)
        except TemplateError as exc:
            return _error(exc)
        return json.dumps({"status": "ok", "template": template.to_dict()}, ensure_ascii=False)

    @mcp.tool
    def update_template(
        template_id: str,
        name: str | None = None,
        first_stage: str | None = None,
        second_stage: str | None = None,
    ) -> str:
        """Change the name or stage text of an existing template."""
        changes = {
            key: value
            for key, value in (
                ("name", name),
                ("first_stage", first_stage),
                ("second_stage", second_stage),
            )
            if value is not None
        }
        try:
            updated = manager.update(template_id, **changes)
        except TemplateError as exc:
            return _error(exc)
        return json.dumps({"status": "ok", "template": updated.to_dict()}, ensure_ascii=False)

    @mcp.tool
    def delete_template(template_id: str) -> str:
        """Delete a custom template. Default templates cannot be deleted."""
        try:
            manager.delete(template_id)
        except TemplateError as exc:
            return _error(exc)
        active = manager.active_template
        return json.dumps({
            "status": "ok",
            "deleted": template_id,
            "active_template_id": active.id if active else None,
        })

    @mcp.tool
    def set_active_template(template_id: str) -> str:
        """Select the template used by generate_config and edit_config."""
        try:
            template = manager.set_active(template_id)
        except TemplateError as exc:
            return _error(exc)
        logger.info("Active template set to %s", template.id)
        return json.dumps({"status": "ok", "active_template_id": template.id, "name": template.name})
