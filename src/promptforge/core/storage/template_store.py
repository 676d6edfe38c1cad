"""Template persistence boundary.

``TemplateManager`` only talks to the ``TemplateStore`` protocol; the SQLite
implementation backs the server and the in-memory one backs tests and
persistence-less runs.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Protocol, runtime_checkable

from promptforge.core.storage.database import TemplateDatabase
from promptforge.core.templates.models import PromptTemplateSet

logger = logging.getLogger(__name__)

ACTIVE_TEMPLATE_KEY = "active_template_id"


class TemplateStoreError(Exception):
    """Raised when stored templates cannot be read or written."""


@runtime_checkable
class TemplateStore(Protocol):
    """Persists the template catalog and the active template id."""

    def load(self) -> list[PromptTemplateSet]: ...

    def save(self, templates: list[PromptTemplateSet]) -> None: ...

    def load_active_id(self) -> str | None: ...

    def save_active_id(self, template_id: str) -> None: ...


class InMemoryTemplateStore:
    """Process-local store; nothing survives a restart."""

    def __init__(self) -> None:
        self._templates: list[PromptTemplateSet] = []
        self._active_id: str | None = None

    def load(self) -> list[PromptTemplateSet]:
        return [t.copy_with() for t in self._templates]

    def save(self, templates: list[PromptTemplateSet]) -> None:
        self._templates = [t.copy_with() for t in templates]

    def load_active_id(self) -> str | None:
        return self._active_id

    def save_active_id(self, template_id: str) -> None:
        self._active_id = template_id


class SQLiteTemplateStore:
    """Stores templates in the ``prompt_templates`` table.

    Usage::

        db = TemplateDatabase("~/.promptforge/templates.db")
        db.initialize()
        store = SQLiteTemplateStore(db)
        store.save(templates)
    """

    def __init__(self, database: TemplateDatabase) -> None:
        self._db = database

    def load(self) -> list[PromptTemplateSet]:
        """Return stored templates in catalog order.

        Raises:
            TemplateStoreError: If the table cannot be read or a row is corrupt.
        """
        try:
            rows = self._db.connection.execute(
                "SELECT * FROM prompt_templates ORDER BY position, created_at"
            ).fetchall()
        except sqlite3.Error as exc:
            raise TemplateStoreError(f"Failed to read templates: {exc}") from exc

        templates: list[PromptTemplateSet] = []
        for row in rows:
            try:
                templates.append(PromptTemplateSet(
                    id=str(row["id"]),
                    name=str(row["name"]),
                    first_stage=str(row["first_stage"]),
                    second_stage=str(row["second_stage"]),
                    created_at=int(row["created_at"]),
                    updated_at=int(row["updated_at"]),
                    is_default=bool(row["is_default"]),
                ))
            except (TypeError, ValueError) as exc:
                raise TemplateStoreError(f"Corrupt template row {row['id']!r}: {exc}") from exc
        return templates

    def save(self, templates: list[PromptTemplateSet]) -> None:
        """Replace the stored catalog with ``templates`` atomically."""
        conn = self._db.connection
        try:
            with conn:
                conn.execute("DELETE FROM prompt_templates")
                conn.executemany(
                    """INSERT INTO prompt_templates
                       (id, name, first_stage, second_stage,
                        created_at, updated_at, is_default, position)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                    [
                        (
                            t.id,
                            t.name,
                            t.first_stage,
                            t.second_stage,
                            t.created_at,
                            t.updated_at,
                            1 if t.is_default else 0,
                            position,
                        )
                        for position, t in enumerate(templates)
                    ],
                )
        except sqlite3.Error as exc:
            raise TemplateStoreError(f"Failed to save templates: {exc}") from exc
        logger.debug("Saved %d templates", len(templates))

    def load_active_id(self) -> str | None:
        try:
            row = self._db.connection.execute(
                "SELECT value FROM app_state WHERE key = ?", (ACTIVE_TEMPLATE_KEY,)
            ).fetchone()
        except sqlite3.Error as exc:
            raise TemplateStoreError(f"Failed to read active template id: {exc}") from exc
        return row["value"] if row else None

    def save_active_id(self, template_id: str) -> None:
        conn = self._db.connection
        try:
            with conn:
                conn.execute(
                    "INSERT OR REPLACE INTO app_state (key, value) VALUES (?, ?)",
                    (ACTIVE_TEMPLATE_KEY, template_id),
                )
        except sqlite3.Error as exc:
            raise TemplateStoreError(f"Failed to save active template id: {exc}") from exc
