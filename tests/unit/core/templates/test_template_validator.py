"""Tests for template validation."""

from __future__ import annotations

import pytest
from conftest import make_template

from promptforge.core.templates.validator import template_errors, validate_template


class TestValidateTemplate:
    def test_valid_template(self):
        assert validate_template(make_template()) is True

    def test_first_stage_prompt_token_is_optional(self):
        template = make_template(second_stage="{#promptResults1} {#input}")
        assert validate_template(template) is True

    @pytest.mark.parametrize(
        "changes",
        [
            {"name": ""},
            {"name": "   "},
            {"first_stage": ""},
            {"first_stage": "no placeholder"},
            {"second_stage": ""},
            {"second_stage": "only {#input}"},
            {"second_stage": "only {#promptResults1}"},
        ],
    )
    def test_invalid_templates(self, changes):
        assert validate_template(make_template().copy_with(**changes)) is False

    def test_accepts_camel_case_mapping(self):
        data = {
            "name": "Wire",
            "firstStage": "{#input}",
            "secondStage": "{#promptResults1} {#input}",
        }
        assert validate_template(data) is True

    def test_missing_fields_in_mapping(self):
        errors = template_errors({"name": "x"})
        assert len(errors) == 2

    def test_reports_every_missing_second_stage_token(self):
        errors = template_errors(make_template(second_stage="nothing here"))
        assert any("{#promptResults1}" in e for e in errors)
        assert any("{#input}" in e for e in errors)

    def test_mapping_becomes_valid_once_tokens_added(self):
        data = {"name": "x", "firstStage": "hello", "secondStage": "y {#input}"}
        assert validate_template(data) is False
        data.update(firstStage="hello {#input}", secondStage="y {#input} {#promptResults1}")
        assert validate_template(data) is True
