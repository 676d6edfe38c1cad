"""Template resolver: placeholder substitution for both prompt stages.

All functions are pure and never raise. Missing values substitute as the
empty string.
"""

from __future__ import annotations

import logging
import re

from promptforge.core.templates.models import (
    FIRST_STAGE_PROMPT_TOKEN,
    INPUT_TOKEN,
    PRIOR_RESULT_TOKEN,
)

logger = logging.getLogger(__name__)


def substitute(template: str, values: dict[str, str | None]) -> str:
    """Replace every literal token in ``values`` in a single pass.

    Substituted text is never re-scanned, so a value that happens to
    contain another token stays literal and the order of ``values`` is
    irrelevant.
    """
    if not template or not values:
        return template or ""
    # Longest first so no token can shadow a longer one sharing its prefix.
    tokens = sorted(values, key=len, reverse=True)
    pattern = re.compile("|".join(re.escape(t) for t in tokens))
    return pattern.sub(lambda m: values[m.group(0)] or "", template)


def resolve_first_stage(template: str, user_input: str | None) -> str:
    """Fill ``{#input}`` in a first-stage template."""
    if not template:
        logger.error("First-stage template is empty")
        return template or ""
    return substitute(template, {INPUT_TOKEN: user_input})


def resolve_second_stage(
    template: str,
    first_stage_prompt: str | None,
    first_stage_result: str | None,
    user_edit: str | None,
) -> str:
    """Fill a second-stage (edit) template.

    ``{#firstStagePrompt}`` receives the resolved first-stage prompt,
    ``{#promptResults1}`` the previous configuration and ``{#input}`` the
    user's edit request.
    """
    if not template:
        logger.error("Second-stage template is empty")
        return template or ""
    return substitute(
        template,
        {
            FIRST_STAGE_PROMPT_TOKEN: first_stage_prompt,
            PRIOR_RESULT_TOKEN: first_stage_result,
            INPUT_TOKEN: user_edit,
        },
    )


_RECOVERY_PROMPT = """\
The user previously asked for a JSON configuration, but no valid JSON was produced. \
This was the original output:

---
{original}
---

The user's edit request: "{edit}"

Following the user's request, produce a valid JSON configuration using one of these \
two shapes. The multi-card shape:
{{
  "cards": [
    {{
      "id": "card1",
      "title": "Card title",
      "adminInputs": {{
        "inputB1": "Description <def>default value</def>"
      }},
      "promptBlocks": {{
        "promptBlock1": "Prompt text referencing {{#input}} or {{#inputB1}}"
      }}
    }}
  ]
}}

Or the simpler single-card shape:
{{
  "adminInputs": {{
    "inputB1": "Description <def>default value</def>"
  }},
  "promptBlocks": {{
    "promptBlock1": "Prompt text referencing {{#input}} or {{#inputB1}}"
  }}
}}

Return parseable JSON only, without any extra explanation.
"""


def build_recovery_prompt(original_text: str | None, edit_text: str | None) -> str:
    """Regeneration prompt for when the previous response held no valid structure.

    Used in place of the second-stage template, which assumes a valid prior
    configuration to refine.
    """
    return _RECOVERY_PROMPT.format(original=original_text or "", edit=edit_text or "")
