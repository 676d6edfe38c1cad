"""Tests for the built-in template catalog and YAML loading."""

from __future__ import annotations

import re
from pathlib import Path

from promptforge.core.templates.catalog import (
    BUILTIN_TEMPLATE_DIR,
    create_template,
    default_templates,
    load_template_directory,
    new_template_id,
)
from promptforge.core.templates.validator import validate_template

_VALID_YAML = """\
id: {id}
name: {name}
is_default: {is_default}
first_stage: "Make {{#input}}"
second_stage: "Change {{#promptResults1}} per {{#input}}"
"""


def _write(directory: Path, filename: str, **fields) -> None:
    params = {"id": "t", "name": "T", "is_default": "false", **fields}
    (directory / filename).write_text(_VALID_YAML.format(**params), encoding="utf-8")


class TestBuiltinCatalog:
    def test_builtin_directory_exists(self):
        assert BUILTIN_TEMPLATE_DIR.is_dir()

    def test_standard_and_simple_shipped(self):
        templates = default_templates()
        assert [t.id for t in templates] == ["default-template", "simple-template"]
        assert templates[0].name == "Standard"
        assert templates[1].name == "Simple"

    def test_exactly_one_default(self):
        assert [t.is_default for t in default_templates()] == [True, False]

    def test_builtins_are_valid(self):
        assert all(validate_template(t) for t in default_templates())

    def test_returns_fresh_copies(self):
        first = default_templates()
        first[0].name = "Mutated"
        assert default_templates()[0].name == "Standard"


class TestLoadTemplateDirectory:
    def test_missing_directory(self, tmp_path):
        assert load_template_directory(tmp_path / "nope") == []

    def test_default_sorted_first(self, tmp_path):
        _write(tmp_path, "a.yaml", id="a", name="A")
        _write(tmp_path, "b.yaml", id="b", name="B", is_default="true")
        assert [t.id for t in load_template_directory(tmp_path)] == ["b", "a"]

    def test_skips_underscore_invalid_and_duplicates(self, tmp_path):
        _write(tmp_path, "a.yaml", id="a")
        _write(tmp_path, "_draft.yaml", id="draft")
        _write(tmp_path, "b.yaml", id="a")
        (tmp_path / "c.yaml").write_text(
            'id: c\nname: C\nfirst_stage: "no token"\nsecond_stage: "x"\n', encoding="utf-8"
        )
        (tmp_path / "d.yaml").write_text("id: [unclosed", encoding="utf-8")
        assert [t.id for t in load_template_directory(tmp_path)] == ["a"]


class TestCreateTemplate:
    def test_new_id_format(self):
        assert re.fullmatch(r"template-\d+-[a-z0-9]{7}", new_template_id())

    def test_ids_are_unique(self):
        assert len({new_template_id() for _ in range(50)}) == 50

    def test_create_template_is_not_default(self):
        template = create_template("Mine", "{#input}", "{#promptResults1}{#input}")
        assert template.is_default is False
        assert template.created_at == template.updated_at
        assert template.id.startswith("template-")
