"""Data models for two-stage prompt templates."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any

# Placeholder tokens resolved by this package (as opposed to the block
# references that only the configuration executor understands).
INPUT_TOKEN = "{#input}"
FIRST_STAGE_PROMPT_TOKEN = "{#firstStagePrompt}"
PRIOR_RESULT_TOKEN = "{#promptResults1}"


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


class TemplateError(Exception):
    """Base class for template management failures."""


class TemplateValidationError(TemplateError):
    """Raised when a template fails the placeholder invariants."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("; ".join(errors) or "Invalid template")


class TemplateNotFoundError(TemplateError):
    """Raised when a template id is not in the catalog."""


class TemplateProtectedError(TemplateError):
    """Raised when deleting a default template."""


@dataclass
class PromptTemplateSet:
    """A first-stage (generate) + second-stage (edit) prompt template pair."""

    id: str
    name: str
    first_stage: str
    second_stage: str
    created_at: int = field(default_factory=now_ms)
    updated_at: int = field(default_factory=now_ms)
    is_default: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "firstStage": self.first_stage,
            "secondStage": self.second_stage,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "isDefault": self.is_default,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PromptTemplateSet:
        """Build from either camelCase (wire) or snake_case keys.

        Raises KeyError / TypeError when required fields are missing.
        """
        def pick(camel: str, snake: str, default: Any = None) -> Any:
            if camel in data:
                return data[camel]
            if snake in data:
                return data[snake]
            if default is None:
                raise KeyError(snake)
            return default

        now = now_ms()
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            first_stage=str(pick("firstStage", "first_stage")),
            second_stage=str(pick("secondStage", "second_stage")),
            created_at=int(pick("createdAt", "created_at", now)),
            updated_at=int(pick("updatedAt", "updated_at", now)),
            is_default=bool(pick("isDefault", "is_default", False)),
        )

    def copy_with(self, **changes: Any) -> PromptTemplateSet:
        data = asdict(self)
        data.update(changes)
        return PromptTemplateSet(**data)
