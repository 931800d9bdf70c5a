"""Cancellable, batched acquisition of a document's page text corpus."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from typing import Callable

from textlayer.corpus.cache import TieredCorpusCache
from textlayer.corpus.pdf_source import ExtractionError, FragmentSource
from textlayer.layout.index import build_page_corpus
from textlayer.layout.models import DocumentTextIndex, PageTextCorpus

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 3
EXTRACTED = "extracted"


@dataclass(frozen=True, slots=True)
class ExtractionProgress:
    current: int
    total: int

    @property
    def fraction(self) -> float:
        if self.total <= 0:
            return 1.0
        return self.current / self.total


ProgressCallback = Callable[[ExtractionProgress], None]


class CancellationToken:
    """Cooperative cancellation flag checked between extraction batches."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass(slots=True)
class AcquisitionResult:
    index: DocumentTextIndex
    total_pages: int
    source: str
    cancelled: bool = False
    failed_pages: list[int] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return self.index.is_complete(self.total_pages)

    def to_dict(self) -> dict[str, object]:
        return {
            "document_id": self.index.document_id,
            "total_pages": self.total_pages,
            "indexed_pages": len(self.index.pages),
            "source": self.source,
            "cancelled": self.cancelled,
            "complete": self.complete,
            "failed_pages": list(self.failed_pages),
        }


class CorpusAcquisition:
    """Fill a session's corpus from the cache or, failing that, the source.

    Pages are extracted in batches; control goes back to the event loop
    between batches and cancellation is honoured there. Each finished page is
    visible in the memory tier at once. Only a complete, uncancelled run is
    written back to the persistent tiers.
    """

    def __init__(self, cache: TieredCorpusCache, *, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._cache = cache
        self._batch_size = batch_size

    @property
    def cache(self) -> TieredCorpusCache:
        return self._cache

    async def acquire(
        self,
        document_id: str,
        source: FragmentSource,
        *,
        on_progress: ProgressCallback | None = None,
        token: CancellationToken | None = None,
    ) -> AcquisitionResult:
        total = source.page_count

        def _report(current: int) -> None:
            if on_progress is not None:
                on_progress(ExtractionProgress(current=current, total=total))

        hit = self._cache.lookup(document_id, total)
        if hit is not None:
            _report(total)
            return AcquisitionResult(index=hit.index, total_pages=total, source=hit.tier)

        memory = self._cache.memory
        known = memory.read(document_id)
        done = set(known.pages) if known is not None else set()
        pending = [number for number in range(1, total + 1) if number not in done]
        completed = total - len(pending)
        failed: list[int] = []

        if done:
            logger.info("Resuming %s with %d of %d pages already indexed", document_id, completed, total)

        for offset in range(0, len(pending), self._batch_size):
            if token is not None and token.cancelled:
                logger.info("Text extraction cancelled for %s at page %d", document_id, pending[offset])
                return self._result(document_id, total, cancelled=True, failed=failed)

            batch = pending[offset : offset + self._batch_size]
            pages = await asyncio.gather(*(self._extract_one(source, number) for number in batch))

            for number, corpus in zip(batch, pages):
                if corpus is None:
                    failed.append(number)
                else:
                    memory.put_page(document_id, corpus)
                completed += 1
                _report(completed)

            await asyncio.sleep(0)

        cancelled = token is not None and token.cancelled
        result = self._result(document_id, total, cancelled=cancelled, failed=failed)
        if failed:
            logger.warning(
                "Extracted %d of %d pages of %s; skipped pages %s",
                len(result.index.pages),
                total,
                document_id,
                failed,
            )
        elif not cancelled:
            self._cache.store(result.index)
            logger.info("Extracted text from %d pages of %s", total, document_id)
        return result

    def _result(
        self,
        document_id: str,
        total: int,
        *,
        cancelled: bool,
        failed: list[int],
    ) -> AcquisitionResult:
        index = self._cache.memory.read(document_id) or DocumentTextIndex(document_id=document_id)
        return AcquisitionResult(
            index=index,
            total_pages=total,
            source=EXTRACTED,
            cancelled=cancelled,
            failed_pages=list(failed),
        )

    async def _extract_one(self, source: FragmentSource, page_number: int) -> PageTextCorpus | None:
        try:
            fragments = await source.extract_page(page_number)
        except ExtractionError as exc:
            logger.warning("Skipping page: %s", exc)
            return None
        return build_page_corpus(page_number, fragments)
