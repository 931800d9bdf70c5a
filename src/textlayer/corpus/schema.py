"""SQLite schema and pragmas for the durable page-text tier."""

from __future__ import annotations

import sqlite3


PRAGMA_BUSY_TIMEOUT_MS = 5000


def apply_runtime_pragmas(connection: sqlite3.Connection) -> None:
    """Apply runtime pragmas recommended for local cache throughput."""

    connection.execute("PRAGMA journal_mode=WAL;")
    connection.execute(f"PRAGMA busy_timeout={PRAGMA_BUSY_TIMEOUT_MS};")
    connection.execute("PRAGMA synchronous=NORMAL;")


def ensure_schema(connection: sqlite3.Connection) -> None:
    """Create the page text table if missing."""

    connection.executescript(
        """
        CREATE TABLE IF NOT EXISTS page_texts (
            document_id TEXT NOT NULL,
            page_number INTEGER NOT NULL CHECK(page_number >= 1),
            text_content TEXT NOT NULL,
            fragments_json TEXT NOT NULL DEFAULT '[]',
            updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (document_id, page_number)
        );

        CREATE INDEX IF NOT EXISTS idx_page_texts_document_id ON page_texts(document_id);
        """
    )
