"""Structured configuration extraction from raw model output.

Model responses are untrusted prose that may wrap, truncate or mangle the
JSON document we asked for. Nothing in this module raises: every failure
mode is encoded in the returned ``ExtractionResult``.

Pipeline:

1. ``find_config_span``: locate the first balanced ``{...}`` object that
   mentions ``"cards"``, ``"adminInputs"`` or ``"promptBlocks"``.
2. strict ``json.loads`` of that span.
3. ``decode_configuration``: multi-unit, else single-unit, else reject.
4. ``analyze_structure``: preview statistics for display.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from promptforge.core.extraction.models import (
    Card,
    ExtractionOutcome,
    ExtractionResult,
    MultiUnitConfig,
    PlaceholderReport,
    SingleUnitConfig,
    StructuredConfig,
)

logger = logging.getLogger(__name__)

CONFIG_KEYWORDS = ('"cards"', '"adminInputs"', '"promptBlocks"')

_PERMISSIVE_KEYWORDS = CONFIG_KEYWORDS + ('"globalPromptBlocks"',)

_LARGEST_BRACE_SPAN = re.compile(r"\{[\s\S]*\}")
_JSON_FENCE = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
_ANY_FENCE = re.compile(r"```[^\n`]*\n?([\s\S]*?)\s*```")
_FENCE_MARKERS = re.compile(r"\s*```(?:json)?\s*", re.IGNORECASE)

_PLACEHOLDER = re.compile(r"\{#([^{}#\s]+)\}")
_ADMIN_INPUT_NAME = re.compile(r"^inputB\d+$")
_PROMPT_BLOCK_NAME = re.compile(r"^promptBlock\w*$")


# ---------------------------------------------------------------------------
# Strict JSON helpers
# ---------------------------------------------------------------------------

def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def _loads_strict(text: str) -> Any:
    """``json.loads`` without the NaN/Infinity extensions."""
    return json.loads(text, parse_constant=_reject_constant)


def _dumps_pretty(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def format_json(value: str | Any) -> str:
    """Render ``value`` as 2-space indented JSON.

    Strings are parsed first; a string that is not valid JSON comes back
    unchanged. Already-parsed objects are rendered directly.
    """
    if isinstance(value, str):
        try:
            parsed = _loads_strict(value)
        except ValueError:
            return value
        return _dumps_pretty(parsed)

    try:
        return _dumps_pretty(value)
    except (TypeError, ValueError):
        # Circular references and the like.
        return repr(value)


# ---------------------------------------------------------------------------
# Span discovery
# ---------------------------------------------------------------------------

def _balanced_end(text: str, start: int) -> int | None:
    """Index of the brace closing the object opened at ``start``.

    Braces inside JSON string literals (including escaped quotes) do not
    count. Returns None when the object never closes.
    """
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def _contains_keyword(text: str, keywords: tuple[str, ...] = CONFIG_KEYWORDS) -> bool:
    return any(keyword in text for keyword in keywords)


def _greedy_span(text: str, start: int, keywords: tuple[str, ...]) -> str | None:
    """``start`` through the last closing brace, if a keyword sits in between."""
    end = text.rfind("}")
    if end <= start:
        return None
    span = text[start:end + 1]
    return span if _contains_keyword(span, keywords) else None


def _opens_object(text: str, pos: int) -> bool:
    """A JSON object opens with ``{`` followed by a key or by ``}``."""
    i = pos + 1
    while i < len(text) and text[i].isspace():
        i += 1
    return i < len(text) and text[i] in '"}'


def _next_opener(text: str, start: int) -> int:
    """Position of the next ``{`` at or after ``start`` that can open an object, or -1."""
    pos = text.find("{", start)
    while pos != -1 and not _opens_object(text, pos):
        pos = text.find("{", pos + 1)
    return pos


def find_config_span(text: str, keywords: tuple[str, ...] = CONFIG_KEYWORDS) -> str | None:
    """Return the candidate configuration text inside ``text``, or None.

    Objects are visited left to right, outermost first. Braces that cannot
    open a JSON object (``{#input}``, ``{like this}``) are ignored, and an
    object that does not mention any keyword is skipped whole since nothing
    nested inside it can mention one either.

    An object that never closes is either a truncated configuration or stray
    prose. It counts as a truncated configuration when a keyword appears at
    its own level, before the next nested object opens; the greedy span up to
    the last closing brace is then returned so the caller can still show what
    the model attempted. Otherwise scanning continues inside it, and the
    greedy span is only the last resort.
    """
    if not text:
        return None

    first = text.find("{")
    unclosed: int | None = None
    pos = _next_opener(text, 0)
    while pos != -1:
        end = _balanced_end(text, pos)
        if end is None:
            nested = _next_opener(text, pos + 1)
            head = text[pos:nested if nested != -1 else len(text)]
            if _contains_keyword(head, keywords):
                return _greedy_span(text, pos, keywords)
            if unclosed is None:
                unclosed = pos
            pos = nested
            continue
        span = text[pos:end + 1]
        if _contains_keyword(span, keywords):
            return span
        pos = _next_opener(text, end + 1)

    if first == -1:
        return None
    return _greedy_span(text, unclosed if unclosed is not None else first, keywords)


# ---------------------------------------------------------------------------
# Tagged-variant decode
# ---------------------------------------------------------------------------

def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (dict, list)):
        return True
    return bool(value)


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _decode_card(raw: Any, index: int) -> Card:
    if not isinstance(raw, dict):
        return Card(id=f"card{index + 1}", title="")
    return Card(
        id=str(raw.get("id") or f"card{index + 1}"),
        title=str(raw.get("title") or ""),
        admin_inputs=_mapping(raw.get("adminInputs")),
        prompt_blocks=_mapping(raw.get("promptBlocks")),
    )


def decode_configuration(parsed: Any) -> StructuredConfig | None:
    """Decode parsed JSON into one of the two accepted shapes.

    Multi-unit wins when ``cards`` is a non-empty list; otherwise both
    ``adminInputs`` and ``promptBlocks`` must be present for the single-unit
    shape, which remembers an empty ``cards`` list. Anything else is
    rejected with None.
    """
    if not isinstance(parsed, dict):
        return None

    global_blocks = _mapping(parsed.get("globalPromptBlocks"))

    cards = parsed.get("cards")
    if isinstance(cards, list) and cards:
        return MultiUnitConfig(
            cards=tuple(_decode_card(c, i) for i, c in enumerate(cards)),
            global_prompt_blocks=global_blocks,
        )

    if _present(parsed.get("adminInputs")) and _present(parsed.get("promptBlocks")):
        return SingleUnitConfig(
            admin_inputs=_mapping(parsed.get("adminInputs")),
            prompt_blocks=_mapping(parsed.get("promptBlocks")),
            global_prompt_blocks=global_blocks,
            empty_cards=isinstance(cards, list),
        )

    return None


def analyze_structure(config: StructuredConfig) -> dict[str, Any]:
    """Preview statistics for a decoded configuration.

    For the multi-unit shape the admin-input and prompt-block counts describe
    the first card only; display code shows "the shape", not an aggregate.
    A payload with an empty ``cards`` list reports zero of everything.
    """
    if isinstance(config, SingleUnitConfig) and config.empty_cards:
        return {
            "card_count": 0,
            "admin_input_count": 0,
            "prompt_block_count": 0,
            "has_global_block": bool(config.global_prompt_blocks),
        }
    if isinstance(config, MultiUnitConfig):
        first = config.cards[0] if config.cards else None
        return {
            "card_count": len(config.cards),
            "admin_input_count": len(first.admin_inputs) if first else 0,
            "prompt_block_count": len(first.prompt_blocks) if first else 0,
            "has_global_block": bool(config.global_prompt_blocks),
        }
    return {
        "card_count": 0,
        "admin_input_count": len(config.admin_inputs),
        "prompt_block_count": len(config.prompt_blocks),
        "has_global_block": bool(config.global_prompt_blocks),
    }


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------

def extract_structured_config(raw_text: str) -> ExtractionResult:
    """Recover and validate a structured configuration from model output."""
    span = find_config_span(raw_text or "")
    if span is None:
        logger.info("No configuration structure found in response (%d chars)", len(raw_text or ""))
        return ExtractionResult(
            is_valid=False,
            content=None,
            outcome=ExtractionOutcome.NO_STRUCTURE_FOUND,
        )

    try:
        parsed = _loads_strict(span)
    except ValueError as exc:
        logger.warning("Configuration candidate failed to parse: %s", exc)
        return ExtractionResult(
            is_valid=False,
            content=span,
            outcome=ExtractionOutcome.MALFORMED_STRUCTURE,
        )

    config = decode_configuration(parsed)
    if config is None:
        logger.info("Parsed JSON matches neither configuration shape")
        return ExtractionResult(
            is_valid=False,
            content=_dumps_pretty(parsed),
            outcome=ExtractionOutcome.REJECTED_SHAPE,
        )

    stats = analyze_structure(config)
    logger.info(
        "Extracted configuration: cards=%d, admin_inputs=%d, prompt_blocks=%d, global=%s",
        stats["card_count"],
        stats["admin_input_count"],
        stats["prompt_block_count"],
        stats["has_global_block"],
    )
    return ExtractionResult(
        is_valid=True,
        content=_dumps_pretty(parsed),
        outcome=ExtractionOutcome.VALID,
        **stats,
    )


def extract_possible_json(text: str) -> str | None:
    """Best-effort narrowing of ``text`` to something that looks like JSON.

    Tries, in order: the largest brace span, the keyword-bearing object, the
    body of a ```json fence, the body of any fence. Fence markers left inside
    a candidate are removed. Nothing is parsed.
    """
    if not text:
        return None

    candidates = []

    match = _LARGEST_BRACE_SPAN.search(text)
    candidates.append(match.group(0) if match else None)
    candidates.append(find_config_span(text, _PERMISSIVE_KEYWORDS))
    match = _JSON_FENCE.search(text)
    candidates.append(match.group(1) if match else None)
    match = _ANY_FENCE.search(text)
    candidates.append(match.group(1) if match else None)

    for candidate in candidates:
        if not candidate:
            continue
        candidate = _FENCE_MARKERS.sub("", candidate).strip()
        if candidate:
            return candidate
    return None


# ---------------------------------------------------------------------------
# Placeholder inspection
# ---------------------------------------------------------------------------

def _block_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("text"), str):
        return value["text"]
    return json.dumps(value, ensure_ascii=False, default=str)


def _tally_chain(
    report: PlaceholderReport,
    blocks: dict[str, Any],
    admin_inputs: dict[str, Any],
    prefix: str = "",
) -> None:
    for position, (name, value) in enumerate(blocks.items()):
        tokens = _PLACEHOLDER.findall(_block_text(value))
        if position > 0 and not tokens:
            report.unreferenced_blocks.append(f"{prefix}{name}")
        for token in tokens:
            if "." in token:
                report.cross_card += 1
            elif token == "input":
                report.input += 1
            elif token in admin_inputs or _ADMIN_INPUT_NAME.match(token):
                report.admin_input += 1
            elif token in blocks or _PROMPT_BLOCK_NAME.match(token):
                report.prompt_block += 1
            else:
                report.other += 1


def inspect_placeholders(config: StructuredConfig) -> PlaceholderReport:
    """Count placeholder tokens and flag blocks that reference nothing.

    Only counting happens here: references are not resolved, so dangling or
    cyclic references go unnoticed.
    """
    report = PlaceholderReport()
    if isinstance(config, MultiUnitConfig):
        for card in config.cards:
            _tally_chain(report, card.prompt_blocks, card.admin_inputs, prefix=f"{card.id}.")
    else:
        _tally_chain(report, config.prompt_blocks, config.admin_inputs)
    _tally_chain(report, config.global_prompt_blocks, {}, prefix="global.")
    return report
