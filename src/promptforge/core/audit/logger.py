"""Interaction log: one row per generate/edit call.

Records which template produced what shape of configuration, how long the
model took and whether the call failed. User text is never stored: only a
SHA-256 of the canonical request, so repeated requests can be correlated.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from promptforge.core.storage.database import TemplateDatabase

logger = logging.getLogger(__name__)


def _hash_input(data: Any) -> str:
    """Fingerprint a request: SHA-256 of key-sorted compact JSON, "" if unserializable."""
    try:
        canonical = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode()).hexdigest()
    except (TypeError, ValueError):
        return ""


@dataclass
class InteractionEvent:
    """A single interaction log entry."""

    operation: str                       # 'generate' | 'edit'
    template_name: str = ""
    model: str | None = None
    input_hash: str = ""
    is_valid: bool = False
    outcome: str | None = None           # ExtractionOutcome value
    card_count: int = 0
    admin_input_count: int = 0
    prompt_block_count: int = 0
    has_global_block: bool = False
    duration_ms: float | None = None
    status: str = "success"              # 'success' | 'failure'
    error_type: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class InteractionLog:
    """Records interaction events to the ``interaction_log`` SQLite table.

    Writes are committed immediately. A failed write is logged and dropped;
    it never fails the interaction being recorded.
    """

    def __init__(self, database: TemplateDatabase) -> None:
        self._db = database

    # ---------------------------------------------------------------
    # Write
    # ---------------------------------------------------------------

    def log_event(self, event: InteractionEvent) -> str:
        """Insert an event and return its UUID (empty string if the write failed)."""
        event_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()

        metadata_json = (
            json.dumps(event.metadata, separators=(",", ":"), default=str)
            if event.metadata
            else None
        )

        try:
            conn = self._db.connection
            conn.execute(
                """INSERT INTO interaction_log
                   (id, timestamp, operation, template_name, model, input_hash,
                    is_valid, outcome, card_count, admin_input_count,
                    prompt_block_count, has_global_block, duration_ms,
                    status, error_type, metadata_json)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    event_id,
                    now,
                    event.operation,
                    event.template_name or None,
                    event.model,
                    event.input_hash or None,
                    1 if event.is_valid else 0,
                    event.outcome,
                    event.card_count,
                    event.admin_input_count,
                    event.prompt_block_count,
                    1 if event.has_global_block else 0,
                    event.duration_ms,
                    event.status,
                    event.error_type,
                    metadata_json,
                ),
            )
            conn.commit()
        except Exception:
            logger.exception("Failed to write interaction event; event lost")
            return ""

        return event_id

    def log_interaction(
        self,
        operation: str,
        request: Any = None,
        *,
        template_name: str = "",
        model: str | None = None,
        result: Any = None,
        duration_ms: float | None = None,
        status: str = "success",
        error_type: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Convenience wrapper taking an ``ExtractionResult``-like ``result``.

        Args:
            operation: 'generate' or 'edit'.
            request: Request payload (hashed, never stored raw).
            template_name: Template that built the prompt.
            model: Model id the request was sent to.
            result: Object exposing the extraction fields, or None.
            duration_ms: Wall-clock duration of the call.
            status: 'success' or 'failure'.
            error_type: Exception class name on failure.
            metadata: Additional metadata.
        """
        outcome = getattr(result, "outcome", None)
        return self.log_event(InteractionEvent(
            operation=operation,
            template_name=template_name,
            model=model,
            input_hash=_hash_input(request) if request else "",
            is_valid=bool(getattr(result, "is_valid", False)),
            outcome=getattr(outcome, "value", outcome),
            card_count=getattr(result, "card_count", 0),
            admin_input_count=getattr(result, "admin_input_count", 0),
            prompt_block_count=getattr(result, "prompt_block_count", 0),
            has_global_block=bool(getattr(result, "has_global_block", False)),
            duration_ms=duration_ms,
            status=status,
            error_type=error_type,
            metadata=metadata or {},
        ))

    # ---------------------------------------------------------------
    # Read
    # ---------------------------------------------------------------

    @staticmethod
    def _filters(**equals: Any) -> tuple[list[str], list[Any]]:
        since = equals.pop("since", None)
        clauses = [f"{column} = ?" for column, value in equals.items() if value is not None]
        params = [value for value in equals.values() if value is not None]
        if since:
            clauses.append("timestamp >= ?")
            params.append(since)
        return clauses, params

    def get_events(
        self,
        *,
        operation: str | None = None,
        since: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Logged events, newest first."""
        clauses, params = self._filters(operation=operation, since=since)
        sql = "SELECT * FROM interaction_log"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY timestamp DESC LIMIT ?"
        return [dict(row) for row in self._db.connection.execute(sql, [*params, limit])]

    def count_events(self, *, since: str | None = None) -> int:
        clauses, params = self._filters(since=since)
        sql = "SELECT COUNT(*) FROM interaction_log"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        return self._db.connection.execute(sql, params).fetchone()[0]

    def validity_rate(self, *, since: str | None = None) -> float | None:
        """Share of successful calls that produced a valid configuration."""
        clauses, params = self._filters(status="success", since=since)
        sql = "SELECT COUNT(*), SUM(is_valid) FROM interaction_log WHERE " + " AND ".join(clauses)
        total, valid = self._db.connection.execute(sql, params).fetchone()
        if not total:
            return None
        return (valid or 0) / total
