"""Template manager: the catalog of template sets and the active selection.

Every write goes through ``validate_template``; a template that breaks the
placeholder invariants is refused before it reaches the store, so it can
never become active.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from promptforge.core.storage.template_store import (
    InMemoryTemplateStore,
    TemplateStore,
    TemplateStoreError,
)
from promptforge.core.templates.catalog import default_templates
from promptforge.core.templates.models import (
    PromptTemplateSet,
    TemplateError,
    TemplateNotFoundError,
    TemplateProtectedError,
    TemplateValidationError,
    now_ms,
)
from promptforge.core.templates.validator import template_errors

logger = logging.getLogger(__name__)

ActiveTemplateListener = Callable[[PromptTemplateSet | None], None]

_UPDATABLE_FIELDS = {"name", "first_stage", "second_stage", "is_default"}


class TemplateManager:
    """In-memory template catalog backed by a ``TemplateStore``.

    Usage::

        manager = TemplateManager(SQLiteTemplateStore(db))
        manager.load()
        manager.subscribe(orchestrator.set_active_template)
        manager.set_active("simple-template")
    """

    def __init__(self, store: TemplateStore | None = None) -> None:
        self._store = store if store is not None else InMemoryTemplateStore()
        self._templates: list[PromptTemplateSet] = []
        self._active: PromptTemplateSet | None = None
        self._listeners: list[ActiveTemplateListener] = []

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @property
    def templates(self) -> list[PromptTemplateSet]:
        return list(self._templates)

    @property
    def active_template(self) -> PromptTemplateSet | None:
        return self._active

    def get(self, template_id: str) -> PromptTemplateSet | None:
        for template in self._templates:
            if template.id == template_id:
                return template
        return None

    def subscribe(self, listener: ActiveTemplateListener) -> None:
        """Call ``listener`` now and whenever the active template changes."""
        self._listeners.append(listener)
        listener(self._active)

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def load(self) -> list[PromptTemplateSet]:
        """Load the catalog from the store.

        An empty store (first run) and an unreadable store (corruption) both
        fall back to the built-in catalog. Stored templates that no longer
        pass validation are dropped.
        """
        try:
            stored = self._store.load()
            active_id = self._store.load_active_id()
        except Exception:
            logger.exception("Failed to load stored templates; using built-in catalog")
            stored, active_id = [], None

        templates = []
        for template in stored:
            errors = template_errors(template)
            if errors:
                logger.warning(
                    "Dropping stored template %r: %s", template.id, "; ".join(errors)
                )
                continue
            templates.append(template)

        if not templates:
            templates = default_templates()
            logger.info("Using %d built-in templates", len(templates))

        self._templates = templates
        active = self.get(active_id) if active_id else None
        self._set_active(active or self._fallback_active())
        return self.templates

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def add(self, template: PromptTemplateSet) -> PromptTemplateSet:
        """Append a new template.

        Raises:
            TemplateValidationError: If the template breaks the invariants.
            TemplateError: If the id is already taken.
        """
        errors = template_errors(template)
        if errors:
            logger.warning("Refusing to add template %r: %s", template.name, "; ".join(errors))
            raise TemplateValidationError(errors)
        if self.get(template.id) is not None:
            raise TemplateError(f"Duplicate template id: {template.id!r}")

        self._templates.append(template)
        self._persist()
        logger.info("Added template %r (%s)", template.name, template.id)
        return template

    def update(self, template_id: str, **changes: Any) -> PromptTemplateSet:
        """Apply ``changes`` to an existing template and bump ``updated_at``.

        Raises:
            TemplateNotFoundError: If no template has ``template_id``.
            TemplateValidationError: If the updated template is invalid.
        """
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise TemplateError(f"Cannot update template fields: {sorted(unknown)}")

        current = self.get(template_id)
        if current is None:
            raise TemplateNotFoundError(f"Template not found: {template_id!r}")

        updated = current.copy_with(**changes, updated_at=now_ms())
        errors = template_errors(updated)
        if errors:
            logger.warning("Refusing to update template %r: %s", template_id, "; ".join(errors))
            raise TemplateValidationError(errors)

        self._templates = [updated if t.id == template_id else t for t in self._templates]
        self._persist()
        if self._active is not None and self._active.id == template_id:
            self._set_active(updated)
        return updated

    def delete(self, template_id: str) -> None:
        """Remove a template; default templates cannot be deleted.

        Raises:
            TemplateNotFoundError: If no template has ``template_id``.
            TemplateProtectedError: If the template is a default one.
        """
        template = self.get(template_id)
        if template is None:
            raise TemplateNotFoundError(f"Template not found: {template_id!r}")
        if template.is_default:
            raise TemplateProtectedError(f"Default template cannot be deleted: {template_id!r}")

        self._templates = [t for t in self._templates if t.id != template_id]
        self._persist()
        if self._active is not None and self._active.id == template_id:
            new_active = self._fallback_active()
            self._set_active(new_active)
            if new_active is not None:
                self._persist_active(new_active.id)

    def set_active(self, template_id: str) -> PromptTemplateSet:
        """Make ``template_id`` the active template.

        Raises:
            TemplateNotFoundError: If no template has ``template_id``.
        """
        template = self.get(template_id)
        if template is None:
            raise TemplateNotFoundError(f"Template not found: {template_id!r}")
        self._set_active(template)
        self._persist_active(template_id)
        return template

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fallback_active(self) -> PromptTemplateSet | None:
        for template in self._templates:
            if template.is_default:
                return template
        return self._templates[0] if self._templates else None

    def _set_active(self, template: PromptTemplateSet | None) -> None:
        self._active = template
        for listener in self._listeners:
            listener(template)

    def _persist(self) -> None:
        try:
            self._store.save(self._templates)
        except TemplateStoreError:
            logger.exception("Failed to persist templates; catalog kept in memory")

    def _persist_active(self, template_id: str) -> None:
        try:
            self._store.save_active_id(template_id)
        except TemplateStoreError:
            logger.exception("Failed to persist active template id")
