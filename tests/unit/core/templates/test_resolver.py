"""Tests for placeholder substitution and the recovery prompt."""

from __future__ import annotations

import itertools
import json

import pytest

from promptforge.core.templates.models import (
    FIRST_STAGE_PROMPT_TOKEN,
    INPUT_TOKEN,
    PRIOR_RESULT_TOKEN,
)
from promptforge.core.templates.resolver import (
    build_recovery_prompt,
    resolve_first_stage,
    resolve_second_stage,
    substitute,
)


class TestResolveFirstStage:
    def test_replaces_every_occurrence(self):
        assert resolve_first_stage("{#input} and again {#input}", "cats") == "cats and again cats"

    def test_none_input_becomes_empty(self):
        assert resolve_first_stage("Ask: {#input}!", None) == "Ask: !"

    def test_empty_template_returned_as_is(self):
        assert resolve_first_stage("", "cats") == ""

    def test_other_tokens_untouched(self):
        out = resolve_first_stage("{#input} uses {#inputB1} and {#promptBlock1}", "x")
        assert out == "x uses {#inputB1} and {#promptBlock1}"


class TestResolveSecondStage:
    def test_all_three_tokens(self):
        template = "P={#firstStagePrompt} R={#promptResults1} E={#input}"
        out = resolve_second_stage(template, "prompt", "result", "edit")
        assert out == "P=prompt R=result E=edit"

    def test_without_first_stage_prompt_token(self):
        out = resolve_second_stage("R={#promptResults1} E={#input}", "ignored", "r", "e")
        assert out == "R=r E=e"

    def test_values_are_not_rescanned(self):
        """A prior result that contains {#input} must stay literal."""
        prior = json.dumps({"promptBlocks": {"promptBlock1": "say {#input}"}})
        out = resolve_second_stage("R={#promptResults1} E={#input}", "", prior, "make it shorter")
        assert out == f"R={prior} E=make it shorter"

    def test_missing_values_become_empty(self):
        out = resolve_second_stage("[{#firstStagePrompt}][{#promptResults1}][{#input}]", None, None, None)
        assert out == "[][][]"


class TestSubstitute:
    def test_longer_token_is_not_shadowed(self):
        out = substitute("{#a} {#ab}", {"{#a}": "1", "{#ab}": "2"})
        assert out == "1 2"

    def test_no_values_returns_template(self):
        assert substitute("text {#input}", {}) == "text {#input}"

    @pytest.mark.parametrize(
        "order",
        list(itertools.permutations([FIRST_STAGE_PROMPT_TOKEN, PRIOR_RESULT_TOKEN, INPUT_TOKEN])),
    )
    def test_result_independent_of_replacement_order(self, order):
        template = (
            "{#input}|{#firstStagePrompt}|{#promptResults1}|"
            "{#promptResults1}|{#input}|{#firstStagePrompt}"
        )
        replacements = {
            FIRST_STAGE_PROMPT_TOKEN: "P {#input}",
            PRIOR_RESULT_TOKEN: "R {#firstStagePrompt}",
            INPUT_TOKEN: "E {#promptResults1}",
        }
        out = substitute(template, {token: replacements[token] for token in order})
        assert out == (
            "E {#promptResults1}|P {#input}|R {#firstStagePrompt}|"
            "R {#firstStagePrompt}|E {#promptResults1}|P {#input}"
        )


class TestRecoveryPrompt:
    def test_embeds_both_arguments_verbatim(self):
        prompt = build_recovery_prompt("broken {output", "add a title field")
        assert "broken {output" in prompt
        assert '"add a title field"' in prompt

    def test_contains_both_shape_examples(self):
        prompt = build_recovery_prompt("x", "y")
        assert '"cards"' in prompt
        assert prompt.count('"adminInputs"') == 2
        assert prompt.count('"promptBlocks"') == 2
        assert "{#inputB1}" in prompt

    def test_none_arguments(self):
        prompt = build_recovery_prompt(None, None)
        assert 'edit request: ""' in prompt
