"""Template catalog: built-in template sets shipped as YAML, plus factories."""

from __future__ import annotations

import logging
import secrets
import string
from pathlib import Path
from typing import Any

import yaml

from promptforge.core.templates.models import PromptTemplateSet, now_ms
from promptforge.core.templates.validator import template_errors

logger = logging.getLogger(__name__)

BUILTIN_TEMPLATE_DIR = Path(__file__).resolve().parent / "builtin"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def load_template_file(path: Path) -> PromptTemplateSet:
    """Parse a YAML file into a PromptTemplateSet."""
    with open(path, encoding="utf-8") as f:
        data: dict[str, Any] = yaml.safe_load(f)

    now = now_ms()
    return PromptTemplateSet(
        id=data["id"],
        name=data["name"],
        first_stage=data["first_stage"],
        second_stage=data["second_stage"],
        created_at=now,
        updated_at=now,
        is_default=bool(data.get("is_default", False)),
    )


def load_template_directory(directory: str | Path) -> list[PromptTemplateSet]:
    """Load every valid template YAML in ``directory``, default template first.

    Files starting with an underscore are skipped, as are files that fail to
    parse or break the placeholder invariants.
    """
    directory = Path(directory)
    if not directory.is_dir():
        logger.warning("Template directory does not exist: %s", directory)
        return []

    templates: list[PromptTemplateSet] = []
    seen: set[str] = set()
    for path in sorted(directory.glob("*.yaml")):
        if path.name.startswith("_"):
            continue
        try:
            template = load_template_file(path)
        except Exception:
            logger.exception("Failed to load template from %s", path)
            continue

        errors = template_errors(template)
        if errors:
            logger.error("Skipping invalid template %s: %s", path.name, "; ".join(errors))
            continue
        if template.id in seen:
            logger.error("Skipping duplicate template id %r in %s", template.id, path.name)
            continue

        seen.add(template.id)
        templates.append(template)
        logger.debug("Loaded template: %s (%s)", template.name, template.id)

    return sorted(templates, key=lambda t: not t.is_default)


def default_templates() -> list[PromptTemplateSet]:
    """Fresh copies of the built-in catalog ("Standard" and "Simple")."""
    return load_template_directory(BUILTIN_TEMPLATE_DIR)


def new_template_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))
    return f"template-{now_ms()}-{suffix}"


def create_template(name: str, first_stage: str, second_stage: str) -> PromptTemplateSet:
    """Build a new, non-default template set with a fresh id.

    The result is not validated here; ``TemplateManager.add`` does that.
    """
    now = now_ms()
    return PromptTemplateSet(
        id=new_template_id(),
        name=name,
        first_stage=first_stage,
        second_stage=second_stage,
        created_at=now,
        updated_at=now,
        is_default=False,
    )
