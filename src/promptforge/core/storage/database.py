"""SQLite storage for the template catalog and the interaction log.

One connection per ``TemplateDatabase``. Schema changes are numbered
migrations; each applied one is recorded in ``schema_version`` so opening an
older file only runs what it is missing.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------

_CREATE_VERSION_TABLE = """
CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

# V1: template catalog. position keeps catalog order stable across saves.
_V1_TEMPLATES = """
CREATE TABLE IF NOT EXISTS prompt_templates (
    id           TEXT PRIMARY KEY,
    name         TEXT NOT NULL,
    first_stage  TEXT NOT NULL,
    second_stage TEXT NOT NULL,
    created_at   INTEGER NOT NULL,
    updated_at   INTEGER NOT NULL,
    is_default   INTEGER NOT NULL DEFAULT 0,
    position     INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS app_state (
    key   TEXT PRIMARY KEY,
    value TEXT
);
"""

# V2: one row per generate/edit call.
_V2_INTERACTION_LOG = """
CREATE TABLE IF NOT EXISTS interaction_log (
    id                 TEXT PRIMARY KEY,
    timestamp          TEXT NOT NULL DEFAULT (datetime('now')),
    operation          TEXT NOT NULL,
    template_name      TEXT,
    model              TEXT,
    input_hash         TEXT,
    is_valid           INTEGER NOT NULL DEFAULT 0,
    outcome            TEXT,
    card_count         INTEGER DEFAULT 0,
    admin_input_count  INTEGER DEFAULT 0,
    prompt_block_count INTEGER DEFAULT 0,
    has_global_block   INTEGER DEFAULT 0,
    duration_ms        REAL,
    status             TEXT NOT NULL DEFAULT 'success',
    error_type         TEXT,
    metadata_json      TEXT
);

CREATE INDEX IF NOT EXISTS idx_interaction_timestamp ON interaction_log(timestamp);
CREATE INDEX IF NOT EXISTS idx_interaction_operation ON interaction_log(operation);
"""

_MIGRATIONS: list[tuple[int, str, str]] = [
    (1, "template catalog", _V1_TEMPLATES),
    (2, "interaction log", _V2_INTERACTION_LOG),
]

SCHEMA_VERSION = _MIGRATIONS[-1][0]


class DatabaseError(Exception):
    """Raised when the database is used before it is opened."""


class TemplateDatabase:
    """Owns the SQLite connection shared by the template store and interaction log.

    ``db_path`` may start with ``~``; parent directories are created on open.
    Pass ``":memory:"`` for a throwaway database.

    Usage::

        with TemplateDatabase("~/.promptforge/templates.db") as db:
            store = SQLiteTemplateStore(db)
    """

    def __init__(self, db_path: str = MEMORY_PATH) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        """The open connection.

        Raises:
            DatabaseError: If ``initialize()`` has not been called.
        """
        if self._conn is None:
            raise DatabaseError(f"Database {self._db_path!r} is not open; call initialize()")
        return self._conn

    def initialize(self) -> None:
        """Open the connection and bring the schema up to date. No-op if already open."""
        if self._conn is not None:
            return

        target = self._db_path
        if target != MEMORY_PATH:
            path = Path(target).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            target = str(path)

        conn = sqlite3.connect(target)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        self._conn = conn

        self._migrate()
        logger.info("Template database ready: %s (schema v%d)", self._db_path, SCHEMA_VERSION)

    def _migrate(self) -> None:
        conn = self.connection
        conn.executescript(_CREATE_VERSION_TABLE)
        current = self.get_schema_version()

        for version, description, ddl in _MIGRATIONS:
            if version <= current:
                continue
            conn.executescript(ddl)
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))
            conn.commit()
            logger.info("Applied schema migration V%d: %s", version, description)

    def get_schema_version(self) -> int:
        """Highest applied migration, 0 for a fresh file."""
        row = self.connection.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] or 0

    def close(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        logger.info("Template database closed: %s", self._db_path)

    def __enter__(self) -> TemplateDatabase:
        self.initialize()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
