"""MCP Resources for template discovery."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from fastmcp import FastMCP

from promptforge.core.templates.models import (
    FIRST_STAGE_PROMPT_TOKEN,
    INPUT_TOKEN,
    PRIOR_RESULT_TOKEN,
)

if TYPE_CHECKING:
    from promptforge.core.templates.manager import TemplateManager


def register_template_resources(mcp: FastMCP, manager: TemplateManager) -> None:
    """Register template discovery resources on the MCP server."""

    @mcp.resource("template://registry")
    def template_registry_resource() -> str:
        """Discover all prompt templates and the placeholders they may use."""
        active = manager.active_template
        templates = manager.templates
        return json.dumps(
            {
                "template_count": len(templates),
                "active_template_id": active.id if active else None,
                "placeholders": {
                    "first_stage": {"required": [INPUT_TOKEN]},
                    "second_stage": {
                        "required": [INPUT_TOKEN, PRIOR_RESULT_TOKEN],
                        "optional": [FIRST_STAGE_PROMPT_TOKEN],
                    },
                },
                "templates": [t.to_dict() for t in templates],
            },
            indent=2,
            ensure_ascii=False,
        )
