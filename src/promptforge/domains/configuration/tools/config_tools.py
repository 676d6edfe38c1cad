"""MCP tools for generating, editing and inspecting structured configurations."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from fastmcp import FastMCP

from promptforge.core.extraction.extractor import (
    decode_configuration,
    extract_possible_json,
    extract_structured_config,
    format_json,
    inspect_placeholders,
)
from promptforge.core.templates.models import TemplateNotFoundError

if TYPE_CHECKING:
    from promptforge.core.orchestration.orchestrator import ConfigOrchestrator
    from promptforge.core.templates.manager import TemplateManager
    from promptforge.core.templates.models import PromptTemplateSet

logger = logging.getLogger(__name__)


def _error(message: str, **extra: Any) -> str:
    return json.dumps({"status": "error", "error": message, **extra}, indent=2)


def register_config_tools(
    mcp: FastMCP,
    orchestrator: ConfigOrchestrator,
    manager: TemplateManager,
) -> None:
    """Register configuration authoring tools on the MCP server."""

    def _resolve_template(template_id: str | None) -> PromptTemplateSet | None:
        if not template_id:
            return None
        return manager.get(template_id)

    @mcp.tool
    async def generate_config(request: str, template_id: str | None = None) -> str:
        """Ask the model for a structured form + prompt pipeline configuration.

        Args:
            request: What the configuration should do, in plain language.
            template_id: Template to use instead of the active one.
        """
        template = _resolve_template(template_id)
        if template_id and template is None:
            return _error(f"Template not found: {template_id}")
        if orchestrator.is_processing:
            logger.warning("generate_config called while another request is in flight")

        response = await orchestrator.generate(request, template=template)
        return json.dumps({"status": "ok", **response.to_dict()}, indent=2, ensure_ascii=False)

    @mcp.tool
    async def edit_config(
        original_content: str,
        edit_request: str,
        original_request: str = "",
        was_original_valid: bool = True,
        template_id: str | None = None,
    ) -> str:
        """Revise a previously generated configuration.

        Args:
            original_content: The configuration (or failed output) to revise.
            edit_request: The change the user wants.
            original_request: The request that produced ``original_content``.
            was_original_valid: False when ``original_content`` held no valid
                configuration; the model is then asked to regenerate from scratch.
            template_id: Template to use instead of the active one.
        """
        template = _resolve_template(template_id)
        if template_id and template is None:
            return _error(f"Template not found: {template_id}")
        if orchestrator.is_processing:
            logger.warning("edit_config called while another request is in flight")

        response = await orchestrator.edit(
            original_content,
            edit_request,
            original_input=original_request,
            template=template,
            was_original_valid=was_original_valid,
        )
        return json.dumps({"status": "ok", **response.to_dict()}, indent=2, ensure_ascii=False)

    @mcp.tool
    def preview_prompt(
        request: str,
        stage: str = "first",
        original_content: str = "",
        original_request: str = "",
        was_original_valid: bool = True,
        template_id: str | None = None,
    ) -> str:
        """Show the exact prompt that would be sent, without calling the model.

        Args:
            request: The user request (first stage) or edit request (second stage).
            stage: "first" or "second".
            original_content: Prior configuration, second stage only.
            original_request: The request that produced ``original_content``,
                second stage only.
            was_original_valid: Second stage only; False previews the recovery prompt.
            template_id: Template to use instead of the active one.
        """
        template = _resolve_template(template_id)
        if template_id and template is None:
            return _error(f"Template not found: {template_id}")
        if stage not in ("first", "second"):
            return _error("stage must be one of: first | second")

        try:
            if stage == "first":
                prompt = orchestrator.build_generate_prompt(request, template)
            else:
                prompt = orchestrator.build_edit_prompt(
                    original_content,
                    request,
                    original_input=original_request,
                    template=template,
                    was_original_valid=was_original_valid,
                )
        except TemplateNotFoundError as exc:
            return _error(str(exc))
        return json.dumps({"status": "ok", "stage": stage, "prompt": prompt}, ensure_ascii=False)

    @mcp.tool
    def extract_config(text: str) -> str:
        """Extract and validate a configuration from arbitrary model output.

        Args:
            text: Raw response text, prose and all.
        """
        result = extract_structured_config(text)
        payload: dict[str, Any] = {
            "status": "ok",
            **result.to_dict(),
            "outcome": result.outcome.value,
        }
        if result.content is None:
            payload["possibleJson"] = extract_possible_json(text)
        return json.dumps(payload, indent=2, ensure_ascii=False)

    @mcp.tool
    def format_config(text: str) -> str:
        """Pretty-print JSON text; text that is not JSON is returned unchanged."""
        return format_json(text)

    @mcp.tool
    def inspect_config(text: str) -> str:
        """Count placeholder tokens in a configuration and flag unreferenced blocks.

        Args:
            text: A configuration, or model output containing one.
        """
        result = extract_structured_config(text)
        if not result.is_valid or result.content is None:
            return _error(
                "No valid configuration found",
                outcome=result.outcome.value,
            )
        config = decode_configuration(json.loads(result.content))
        report = inspect_placeholders(config)
        return json.dumps(
            {"status": "ok", **result.to_dict(), "placeholders": report.to_dict()},
            indent=2,
            ensure_ascii=False,
        )
