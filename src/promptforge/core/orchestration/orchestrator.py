"""Two-stage orchestration: generate a configuration, then refine it by edits.

Each public call walks ``IDLE → BUILDING → AWAITING_MODEL → EXTRACTING →
DONE``. The model call is the only suspension point and the only place
errors are swallowed: a failing transport turns into a displayable failure
response instead of an exception.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from promptforge.core.extraction.extractor import extract_structured_config
from promptforge.core.extraction.models import ExtractionOutcome, ExtractionResult
from promptforge.core.templates.models import PromptTemplateSet, TemplateNotFoundError
from promptforge.core.templates.resolver import (
    build_recovery_prompt,
    resolve_first_stage,
    resolve_second_stage,
)

if TYPE_CHECKING:
    from promptforge.core.audit.logger import InteractionLog
    from promptforge.core.llm.client import ChatClient

logger = logging.getLogger(__name__)

UNKNOWN_TEMPLATE = "unknown"

_GENERATE_ERROR_PREFIX = "Error while processing the request"
_EDIT_ERROR_PREFIX = "Error while processing the edit request"


class OrchestrationState(str, Enum):
    IDLE = "idle"
    BUILDING = "building"
    AWAITING_MODEL = "awaiting_model"
    EXTRACTING = "extracting"
    DONE = "done"


@dataclass(frozen=True)
class OrchestrationResponse:
    """Extraction fields plus provenance for one generate/edit call."""

    is_valid: bool
    content: str | None
    raw_response: str
    template_name: str
    card_count: int = 0
    admin_input_count: int = 0
    prompt_block_count: int = 0
    has_global_block: bool = False
    outcome: ExtractionOutcome | None = None
    error: str | None = None

    @classmethod
    def from_extraction(
        cls, extraction: ExtractionResult, raw_response: str, template_name: str
    ) -> OrchestrationResponse:
        return cls(
            is_valid=extraction.is_valid,
            content=extraction.content,
            raw_response=raw_response,
            template_name=template_name,
            card_count=extraction.card_count,
            admin_input_count=extraction.admin_input_count,
            prompt_block_count=extraction.prompt_block_count,
            has_global_block=extraction.has_global_block,
            outcome=extraction.outcome,
        )

    @classmethod
    def failure(cls, message: str, template_name: str, error: str) -> OrchestrationResponse:
        return cls(
            is_valid=False,
            content=None,
            raw_response=message,
            template_name=template_name,
            error=error,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "content": self.content,
            "cardCount": self.card_count,
            "adminInputCount": self.admin_input_count,
            "promptBlockCount": self.prompt_block_count,
            "hasGlobalBlock": self.has_global_block,
            "rawResponse": self.raw_response,
            "templateName": self.template_name,
        }


class ConfigOrchestrator:
    """Runs the generate/edit protocol around the model boundary.

    Holds exactly one piece of shared state, the active template, which the
    template manager may swap between calls. A call reads it once when it
    starts, so a swap mid-flight does not affect that call.

    ``is_processing`` is advisory: callers must not start a second call
    while one is outstanding, nothing here enforces it.
    """

    def __init__(
        self,
        client: ChatClient,
        active_template: PromptTemplateSet | None = None,
        interaction_log: InteractionLog | None = None,
    ) -> None:
        self._client = client
        self._active_template = active_template
        self._interaction_log = interaction_log
        self._state = OrchestrationState.IDLE
        self._processing = False
        self.last_prompt: str | None = None
        self.last_response: OrchestrationResponse | None = None

    @property
    def active_template(self) -> PromptTemplateSet | None:
        return self._active_template

    def set_active_template(self, template: PromptTemplateSet | None) -> None:
        self._active_template = template

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def state(self) -> OrchestrationState:
        return self._state

    # ------------------------------------------------------------------
    # Prompt building (pure, exposed for previews)
    # ------------------------------------------------------------------

    def build_generate_prompt(
        self, user_input: str, template: PromptTemplateSet | None = None
    ) -> str:
        template = self._require_template(template)
        return resolve_first_stage(template.first_stage, user_input)

    def build_edit_prompt(
        self,
        original_content: str,
        edit_text: str,
        original_input: str = "",
        template: PromptTemplateSet | None = None,
        was_original_valid: bool = True,
    ) -> str:
        """Second-stage prompt when the prior output was valid, recovery prompt otherwise.

        The recovery prompt ignores the template entirely.
        """
        if not was_original_valid:
            return build_recovery_prompt(original_content, edit_text)
        template = self._require_template(template)
        first_stage_prompt = resolve_first_stage(template.first_stage, original_input)
        return resolve_second_stage(
            template.second_stage, first_stage_prompt, original_content, edit_text
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def generate(
        self, user_input: str, template: PromptTemplateSet | None = None
    ) -> OrchestrationResponse:
        """Ask the model for a configuration described by ``user_input``."""
        template = template or self._active_template
        return await self._run(
            "generate",
            template,
            lambda t: self.build_generate_prompt(user_input, t),
            error_prefix=_GENERATE_ERROR_PREFIX,
            request={"input": user_input},
        )

    async def edit(
        self,
        original_content: str,
        edit_text: str,
        original_input: str = "",
        template: PromptTemplateSet | None = None,
        was_original_valid: bool = True,
    ) -> OrchestrationResponse:
        """Ask the model to revise ``original_content`` according to ``edit_text``.

        ``was_original_valid`` selects between the template's second stage
        (refine a valid configuration) and the recovery prompt (regenerate
        from scratch with explicit shape examples).
        """
        template = template or self._active_template
        return await self._run(
            "edit",
            template,
            lambda t: self.build_edit_prompt(
                original_content, edit_text, original_input, t, was_original_valid
            ),
            error_prefix=_EDIT_ERROR_PREFIX,
            request={
                "original": original_content,
                "edit": edit_text,
                "input": original_input,
                "recovery": not was_original_valid,
            },
            metadata={"recovery": not was_original_valid},
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_template(self, template: PromptTemplateSet | None) -> PromptTemplateSet:
        template = template or self._active_template
        if template is None:
            raise TemplateNotFoundError("No active template selected")
        return template

    async def _run(
        self,
        operation: str,
        template: PromptTemplateSet | None,
        build_prompt: Callable[[PromptTemplateSet | None], str],
        *,
        error_prefix: str,
        request: dict[str, Any],
        metadata: dict[str, Any] | None = None,
    ) -> OrchestrationResponse:
        template_name = template.name if template is not None else UNKNOWN_TEMPLATE
        model: str | None = None
        error_type: str | None = None
        start = time.monotonic()

        self._processing = True
        try:
            self._state = OrchestrationState.BUILDING
            prompt = build_prompt(template)
            self.last_prompt = prompt

            model = self._client.get_selected_model()
            self._state = OrchestrationState.AWAITING_MODEL
            raw_response = await self._client.send_chat_request(
                [{"role": "user", "content": prompt}], model
            )
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            logger.exception("%s failed (template=%s)", operation.capitalize(), template_name)
            error_type = type(exc).__name__
            response = OrchestrationResponse.failure(
                f"{error_prefix}: {message}", template_name, error=message
            )
        else:
            self._state = OrchestrationState.EXTRACTING
            extraction = extract_structured_config(raw_response)
            response = OrchestrationResponse.from_extraction(
                extraction, raw_response, template_name
            )
        finally:
            self._state = OrchestrationState.DONE
            self._processing = False

        duration_ms = (time.monotonic() - start) * 1000
        logger.info(
            "%s finished: template=%s, valid=%s, duration=%.0fms",
            operation.capitalize(),
            template_name,
            response.is_valid,
            duration_ms,
        )
        if self._interaction_log is not None:
            self._interaction_log.log_interaction(
                operation,
                request,
                template_name=template_name,
                model=model,
                result=response,
                duration_ms=duration_ms,
                status="failure" if error_type else "success",
                error_type=error_type,
                metadata=metadata,
            )

        self.last_response = response
        return response
