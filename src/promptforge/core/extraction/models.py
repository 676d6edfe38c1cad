"""Data models for structured configuration extraction."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ExtractionOutcome(str, Enum):
    """Why an extraction ended the way it did."""

    VALID = "valid"
    NO_STRUCTURE_FOUND = "no_structure_found"
    MALFORMED_STRUCTURE = "malformed_structure"
    REJECTED_SHAPE = "rejected_shape"


@dataclass(frozen=True)
class Card:
    """One self-contained unit (inputs + instructions) of a multi-unit configuration."""

    id: str
    title: str
    admin_inputs: dict[str, Any] = field(default_factory=dict)
    prompt_blocks: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SingleUnitConfig:
    """Top-level ``adminInputs`` + ``promptBlocks`` shape.

    ``empty_cards`` is set when the payload also carried ``"cards": []``;
    preview counts then describe that (empty) card list.
    """

    admin_inputs: dict[str, Any]
    prompt_blocks: dict[str, Any]
    global_prompt_blocks: dict[str, Any] = field(default_factory=dict)
    empty_cards: bool = False


@dataclass(frozen=True)
class MultiUnitConfig:
    """Ordered ``cards`` shape with optional ``globalPromptBlocks``."""

    cards: tuple[Card, ...]
    global_prompt_blocks: dict[str, Any] = field(default_factory=dict)


StructuredConfig = SingleUnitConfig | MultiUnitConfig


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of recovering a structured configuration from model output.

    ``content`` carries best-effort text even when ``is_valid`` is False, and
    is ``None`` only when nothing resembling a configuration was found.
    """

    is_valid: bool
    content: str | None
    card_count: int = 0
    admin_input_count: int = 0
    prompt_block_count: int = 0
    has_global_block: bool = False
    outcome: ExtractionOutcome = ExtractionOutcome.NO_STRUCTURE_FOUND

    def to_dict(self) -> dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "content": self.content,
            "cardCount": self.card_count,
            "adminInputCount": self.admin_input_count,
            "promptBlockCount": self.prompt_block_count,
            "hasGlobalBlock": self.has_global_block,
        }


@dataclass
class PlaceholderReport:
    """Token counts across a configuration's prompt blocks.

    ``unreferenced_blocks`` lists qualified block names (``promptBlock2`` or
    ``card1.promptBlock2``) that follow the first block of their chain but
    carry no placeholder token at all.
    """

    input: int = 0
    admin_input: int = 0
    prompt_block: int = 0
    cross_card: int = 0
    other: int = 0
    unreferenced_blocks: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.input + self.admin_input + self.prompt_block + self.cross_card + self.other

    def to_dict(self) -> dict[str, Any]:
        return {
            "input": self.input,
            "adminInput": self.admin_input,
            "promptBlock": self.prompt_block,
            "crossCard": self.cross_card,
            "other": self.other,
            "total": self.total,
            "unreferencedBlocks": list(self.unreferenced_blocks),
        }
