"""Template validator: enforces the placeholder invariants on template sets."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from promptforge.core.templates.models import (
    INPUT_TOKEN,
    PRIOR_RESULT_TOKEN,
    PromptTemplateSet,
)

logger = logging.getLogger(__name__)


def _fields(template: PromptTemplateSet | Mapping[str, Any]) -> tuple[Any, Any, Any]:
    if isinstance(template, PromptTemplateSet):
        return template.name, template.first_stage, template.second_stage
    first = template.get("firstStage", template.get("first_stage"))
    second = template.get("secondStage", template.get("second_stage"))
    return template.get("name"), first, second


def template_errors(template: PromptTemplateSet | Mapping[str, Any]) -> list[str]:
    """Return every reason ``template`` is unusable (empty list when valid)."""
    name, first_stage, second_stage = _fields(template)
    errors: list[str] = []

    if not isinstance(name, str) or not name.strip():
        errors.append("Missing or empty template name")
    if not isinstance(first_stage, str) or not first_stage:
        errors.append("Missing or empty first-stage prompt")
    elif INPUT_TOKEN not in first_stage:
        errors.append(f"First-stage prompt must contain {INPUT_TOKEN}")
    if not isinstance(second_stage, str) or not second_stage:
        errors.append("Missing or empty second-stage prompt")
    else:
        for token in (PRIOR_RESULT_TOKEN, INPUT_TOKEN):
            if token not in second_stage:
                errors.append(f"Second-stage prompt must contain {token}")

    return errors


def validate_template(template: PromptTemplateSet | Mapping[str, Any]) -> bool:
    """True when the template can be stored and activated."""
    errors = template_errors(template)
    if errors:
        logger.debug("Template rejected: %s", errors)
    return not errors
