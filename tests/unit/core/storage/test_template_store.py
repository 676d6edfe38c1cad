"""Tests for TemplateDatabase and the SQLite template store."""

from __future__ import annotations

import pytest
from conftest import make_template

from promptforge.core.storage.database import (
    SCHEMA_VERSION,
    DatabaseError,
    TemplateDatabase,
)
from promptforge.core.storage.template_store import TemplateStoreError
from promptforge.core.templates.manager import TemplateManager


# ---------------------------------------------------------------------------
# Database lifecycle
# ---------------------------------------------------------------------------

class TestTemplateDatabase:
    def test_schema_version(self, template_db):
        assert template_db.get_schema_version() == SCHEMA_VERSION

    def test_tables_created(self, template_db):
        rows = template_db.connection.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ).fetchall()
        names = {r["name"] for r in rows}
        assert {"prompt_templates", "app_state", "schema_version", "interaction_log"} <= names

    def test_connection_before_initialize(self):
        with pytest.raises(DatabaseError):
            TemplateDatabase(":memory:").connection

    def test_initialize_is_idempotent(self, template_db):
        template_db.initialize()
        assert template_db.get_schema_version() == SCHEMA_VERSION

    def test_file_database_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "nested" / "templates.db"
        with TemplateDatabase(str(path)) as db:
            assert db.get_schema_version() == SCHEMA_VERSION
        assert path.exists()


# ---------------------------------------------------------------------------
# SQLiteTemplateStore
# ---------------------------------------------------------------------------

class TestSQLiteTemplateStore:
    def test_empty_store(self, sqlite_store):
        assert sqlite_store.load() == []
        assert sqlite_store.load_active_id() is None

    def test_save_and_load_preserves_order(self, sqlite_store):
        templates = [make_template(id="z"), make_template(id="a", is_default=True)]
        sqlite_store.save(templates)
        loaded = sqlite_store.load()
        assert [t.id for t in loaded] == ["z", "a"]
        assert loaded[1].is_default is True
        assert loaded[0] == templates[0]

    def test_save_replaces_catalog(self, sqlite_store):
        sqlite_store.save([make_template(id="a"), make_template(id="b")])
        sqlite_store.save([make_template(id="c")])
        assert [t.id for t in sqlite_store.load()] == ["c"]

    def test_active_id_round_trip(self, sqlite_store):
        sqlite_store.save_active_id("a")
        sqlite_store.save_active_id("b")
        assert sqlite_store.load_active_id() == "b"

    def test_corrupt_row_raises(self, sqlite_store, template_db):
        template_db.connection.execute(
            """INSERT INTO prompt_templates
               (id, name, first_stage, second_stage, created_at, updated_at)
               VALUES ('bad', 'Bad', '{#input}', '{#promptResults1}{#input}', 'yesterday', 0)"""
        )
        template_db.connection.commit()
        with pytest.raises(TemplateStoreError):
            sqlite_store.load()

    def test_manager_falls_back_on_corrupt_row(self, sqlite_store, template_db):
        template_db.connection.execute(
            """INSERT INTO prompt_templates
               (id, name, first_stage, second_stage, created_at, updated_at)
               VALUES ('bad', 'Bad', '{#input}', '{#promptResults1}{#input}', 'yesterday', 0)"""
        )
        template_db.connection.commit()
        mgr = TemplateManager(sqlite_store)
        mgr.load()
        assert mgr.active_template.id == "default-template"

    def test_manager_state_survives_restart(self, tmp_path):
        from promptforge.core.storage.template_store import SQLiteTemplateStore

        path = str(tmp_path / "templates.db")
        with TemplateDatabase(path) as db:
            mgr = TemplateManager(SQLiteTemplateStore(db))
            mgr.load()
            mgr.add(make_template(id="mine"))
            mgr.set_active("mine")

        with TemplateDatabase(path) as db:
            mgr = TemplateManager(SQLiteTemplateStore(db))
            mgr.load()
            assert mgr.active_template.id == "mine"
            assert [t.id for t in mgr.templates] == ["default-template", "simple-template", "mine"]
