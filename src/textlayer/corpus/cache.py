"""Tiered page-text cache: memory, JSON files and SQLite."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import hashlib
import json
import logging
import os
from pathlib import Path
import sqlite3
from typing import Protocol, Sequence, runtime_checkable

from textlayer.corpus.repository import PageTextRepository
from textlayer.layout.models import DocumentTextIndex, PageTextCorpus

logger = logging.getLogger(__name__)

JSON_CACHE_VERSION = 1


@dataclass(slots=True)
class CacheError(Exception):
    """Read or write failure in a persistent cache tier."""

    tier: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (tier={self.tier})"


@runtime_checkable
class CorpusTier(Protocol):
    name: str

    def read(self, document_id: str) -> DocumentTextIndex | None:
        """Return whatever pages the tier holds for the document, or None."""

    def write(self, index: DocumentTextIndex) -> None:
        """Persist the document's pages, replacing earlier content."""


class MemoryTier:
    """Per-session in-memory tier; never shared between sessions."""

    name = "memory"

    def __init__(self) -> None:
        self._documents: dict[str, DocumentTextIndex] = {}

    def read(self, document_id: str) -> DocumentTextIndex | None:
        index = self._documents.get(document_id)
        return None if index is None else index.copy()

    def write(self, index: DocumentTextIndex) -> None:
        self._documents[index.document_id] = index.copy()

    def get_page(self, document_id: str, page_number: int) -> PageTextCorpus | None:
        index = self._documents.get(document_id)
        return None if index is None else index.page(page_number)

    def put_page(self, document_id: str, corpus: PageTextCorpus) -> None:
        index = self._documents.setdefault(document_id, DocumentTextIndex(document_id=document_id))
        index.pages[corpus.page_number] = corpus

    def discard(self, document_id: str) -> None:
        self._documents.pop(document_id, None)

    def clear(self) -> None:
        self._documents.clear()

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._documents


def _document_key(document_id: str) -> str:
    return hashlib.sha256(document_id.encode("utf-8")).hexdigest()


class JsonFileTier:
    """Fast persistent tier: one JSON file per document."""

    name = "json"

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, document_id: str) -> Path:
        return self._directory / f"{_document_key(document_id)}.json"

    def read(self, document_id: str) -> DocumentTextIndex | None:
        path = self.path_for(document_id)
        if not path.exists():
            return None

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise CacheError(self.name, f"Unreadable cache file {path.name}: {exc}") from exc

        if payload.get("version") != JSON_CACHE_VERSION or payload.get("document_id") != document_id:
            logger.debug("Ignoring stale cache file %s", path.name)
            return None

        try:
            pages = [PageTextCorpus.from_dict(item) for item in payload.get("pages") or []]
        except (KeyError, TypeError, ValueError) as exc:
            raise CacheError(self.name, f"Malformed cache file {path.name}: {exc}") from exc

        return DocumentTextIndex(document_id=document_id, pages={page.page_number: page for page in pages})

    def write(self, index: DocumentTextIndex) -> None:
        path = self.path_for(index.document_id)
        payload = {
            "version": JSON_CACHE_VERSION,
            "document_id": index.document_id,
            "pages": [index.pages[number].to_dict() for number in index.page_numbers()],
        }
        temp_path = path.with_suffix(".json.tmp")
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(json.dumps(payload, ensure_ascii=True), encoding="utf-8")
            os.replace(temp_path, path)
        except OSError as exc:
            raise CacheError(self.name, f"Cannot write cache file {path.name}: {exc}") from exc


class SqliteTier:
    """Durable tier: one ``page_texts`` row per page."""

    name = "sqlite"

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._repository: PageTextRepository | None = None
        self._closed = False

    def _repo(self) -> PageTextRepository:
        if self._closed:
            raise CacheError(self.name, f"Tier for {self._db_path} is closed")
        if self._repository is None:
            try:
                self._repository = PageTextRepository(self._db_path)
            except sqlite3.Error as exc:
                raise CacheError(self.name, f"Cannot open {self._db_path}: {exc}") from exc
        return self._repository

    def read(self, document_id: str) -> DocumentTextIndex | None:
        try:
            rows = self._repo().load_document_pages(document_id)
            pages = [row.to_corpus() for row in rows]
        except sqlite3.Error as exc:
            raise CacheError(self.name, f"Cannot load pages of {document_id}: {exc}") from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise CacheError(self.name, f"Malformed page rows for {document_id}: {exc}") from exc

        if not pages:
            return None
        return DocumentTextIndex(document_id=document_id, pages={page.page_number: page for page in pages})

    def write(self, index: DocumentTextIndex) -> None:
        pages = [index.pages[number] for number in index.page_numbers()]
        try:
            self._repo().replace_document_pages(index.document_id, pages)
        except sqlite3.Error as exc:
            raise CacheError(self.name, f"Cannot store pages of {index.document_id}: {exc}") from exc

    def close(self) -> None:
        self._closed = True
        if self._repository is not None:
            self._repository.close()
            self._repository = None


@dataclass(frozen=True, slots=True)
class CacheHit:
    index: DocumentTextIndex
    tier: str


class TieredCorpusCache:
    """Consult tiers in order and keep them populated behind each other.

    A tier counts as a hit only when it holds every page of the document.
    Lower-tier hits are copied into memory at once and into the remaining
    persistent tiers by background tasks whose failures are only logged.
    """

    def __init__(self, memory: MemoryTier, persistent: Sequence[CorpusTier] = ()) -> None:
        self.memory = memory
        self._persistent = list(persistent)
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def tiers(self) -> list[CorpusTier]:
        return [self.memory, *self._persistent]

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    def lookup(self, document_id: str, total_pages: int) -> CacheHit | None:
        cached = self.memory.read(document_id)
        if cached is not None and cached.is_complete(total_pages):
            return CacheHit(index=cached, tier=self.memory.name)

        for tier in self._persistent:
            try:
                index = tier.read(document_id)
            except CacheError as exc:
                logger.warning("Cache read failed, treating as miss: %s", exc)
                continue

            if index is None:
                continue
            if not index.is_complete(total_pages):
                logger.debug(
                    "Tier %s holds %d of %d pages for %s",
                    tier.name,
                    len(index.pages),
                    total_pages,
                    document_id,
                )
                continue

            logger.info("Loaded %s from %s cache (%d pages)", document_id, tier.name, total_pages)
            self.memory.write(index)
            self._schedule_write_back(index, [other for other in self._persistent if other is not tier])
            return CacheHit(index=index.copy(), tier=tier.name)

        return None

    def store(self, index: DocumentTextIndex) -> None:
        """Keep a freshly acquired index in memory and persist it in the background."""

        self.memory.write(index)
        self._schedule_write_back(index, self._persistent)

    def _schedule_write_back(self, index: DocumentTextIndex, tiers: Sequence[CorpusTier]) -> None:
        if not tiers:
            return
        snapshot = index.copy()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            for tier in tiers:
                self._write_tier(tier, snapshot)
            return

        task = loop.create_task(self._write_back(snapshot, list(tiers)))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write_back(self, index: DocumentTextIndex, tiers: list[CorpusTier]) -> None:
        for tier in tiers:
            self._write_tier(tier, index)
            await asyncio.sleep(0)

    def _write_tier(self, tier: CorpusTier, index: DocumentTextIndex) -> None:
        try:
            tier.write(index)
        except CacheError as exc:
            logger.warning("Cache write-back failed: %s", exc)
        except Exception:
            logger.exception("Unexpected cache write-back failure in tier %s", tier.name)
        else:
            logger.debug("Wrote %s to %s cache", index.document_id, tier.name)

    async def drain(self) -> None:
        """Wait for every pending write-back task."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def close(self) -> None:
        for tier in self._persistent:
            close = getattr(tier, "close", None)
            if close is not None:
                close()
