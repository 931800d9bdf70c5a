"""Repository primitives for SQLite-backed page text persistence."""

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
import sqlite3

from textlayer.corpus.schema import apply_runtime_pragmas, ensure_schema
from textlayer.layout.models import PageTextCorpus, TextFragment


@dataclass(slots=True)
class PageTextRow:
    document_id: str
    page_number: int
    text_content: str
    fragments_json: str

    @classmethod
    def from_corpus(cls, document_id: str, corpus: PageTextCorpus) -> "PageTextRow":
        return cls(
            document_id=document_id,
            page_number=corpus.page_number,
            text_content=corpus.full_text,
            fragments_json=json.dumps([fragment.to_dict() for fragment in corpus.fragments], ensure_ascii=True),
        )

    def to_corpus(self) -> PageTextCorpus:
        fragments = tuple(TextFragment.from_dict(item) for item in json.loads(self.fragments_json or "[]"))
        return PageTextCorpus(page_number=self.page_number, full_text=self.text_content, fragments=fragments)


class PageTextRepository:
    """Thin transactional layer over the page text table."""

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._connection = sqlite3.connect(str(self._db_path))
        self._connection.row_factory = sqlite3.Row
        apply_runtime_pragmas(self._connection)
        ensure_schema(self._connection)

    @property
    def connection(self) -> sqlite3.Connection:
        return self._connection

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> "PageTextRepository":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def replace_document_pages(self, document_id: str, pages: list[PageTextCorpus]) -> int:
        """Replace one document's page rows in one transaction."""

        rows = [PageTextRow.from_corpus(document_id, corpus) for corpus in pages]
        with self._connection:
            self._connection.execute("DELETE FROM page_texts WHERE document_id = ?", (document_id,))
            self._connection.executemany(
                """
                INSERT INTO page_texts(document_id, page_number, text_content, fragments_json)
                VALUES(?, ?, ?, ?)
                """,
                [(row.document_id, row.page_number, row.text_content, row.fragments_json) for row in rows],
            )
        return len(rows)

    def load_document_pages(self, document_id: str) -> list[PageTextRow]:
        rows = self._connection.execute(
            """
            SELECT document_id, page_number, text_content, fragments_json
            FROM page_texts
            WHERE document_id = ?
            ORDER BY page_number ASC
            """,
            (document_id,),
        ).fetchall()

        return [
            PageTextRow(
                document_id=row["document_id"],
                page_number=int(row["page_number"]),
                text_content=row["text_content"],
                fragments_json=row["fragments_json"],
            )
            for row in rows
        ]

    def count_pages(self, document_id: str) -> int:
        row = self._connection.execute(
            "SELECT COUNT(*) AS total FROM page_texts WHERE document_id = ?",
            (document_id,),
        ).fetchone()
        return int(row["total"])

    def delete_document(self, document_id: str) -> int:
        with self._connection:
            cursor = self._connection.execute("DELETE FROM page_texts WHERE document_id = ?", (document_id,))
        return cursor.rowcount
