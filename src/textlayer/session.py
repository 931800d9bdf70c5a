"""Per-document session owning the corpus and its consumers."""

from __future__ import annotations

import logging
from typing import Sequence

from textlayer.config import TextLayerSettings
from textlayer.corpus.acquisition import (
    DEFAULT_BATCH_SIZE,
    AcquisitionResult,
    CancellationToken,
    CorpusAcquisition,
    ProgressCallback,
)
from textlayer.corpus.cache import CorpusTier, JsonFileTier, MemoryTier, SqliteTier, TieredCorpusCache
from textlayer.corpus.pdf_source import FragmentSource
from textlayer.geometry.rects import DEFAULT_LINE_TOLERANCE
from textlayer.layout.models import DocumentTextIndex, PageTextCorpus
from textlayer.search.engine import DocumentMatch, search_document
from textlayer.search.normalize import SearchOptions
from textlayer.selection.caret import CaretNavigator
from textlayer.selection.controller import SelectionController
from textlayer.selection.models import SelectionRange
from textlayer.selection.platform import EditableMarker, FrameScheduler, InputEventSource, SelectionPlatform
from textlayer.selection.reconstructor import (
    RectsByPage,
    SelectionOverlay,
    model_rects_for_selection,
    range_for_match,
    selected_text,
)

logger = logging.getLogger(__name__)


class DocumentSession:
    """Everything one open document needs: cache, corpus, search, selection.

    The memory tier belongs to the session, so closing the session releases
    the corpus. Persistent tiers outlive it.
    """

    def __init__(
        self,
        document_id: str,
        *,
        persistent_tiers: Sequence[CorpusTier] = (),
        batch_size: int = DEFAULT_BATCH_SIZE,
        line_tolerance: float = DEFAULT_LINE_TOLERANCE,
    ) -> None:
        self.document_id = document_id
        self.memory = MemoryTier()
        self.cache = TieredCorpusCache(self.memory, persistent_tiers)
        self.acquisition = CorpusAcquisition(self.cache, batch_size=batch_size)
        self.line_tolerance = line_tolerance
        self._controllers: list[SelectionController] = []
        self._closed = False

    @classmethod
    def from_settings(cls, document_id: str, settings: TextLayerSettings) -> "DocumentSession":
        return cls(
            document_id,
            persistent_tiers=[JsonFileTier(settings.cache_dir), SqliteTier(settings.db_path)],
            batch_size=settings.batch_size,
            line_tolerance=settings.line_tolerance,
        )

    @property
    def index(self) -> DocumentTextIndex:
        return self.memory.read(self.document_id) or DocumentTextIndex(document_id=self.document_id)

    def corpus_for_page(self, page_number: int) -> PageTextCorpus | None:
        return self.memory.get_page(self.document_id, page_number)

    async def load(
        self,
        source: FragmentSource,
        *,
        on_progress: ProgressCallback | None = None,
        token: CancellationToken | None = None,
    ) -> AcquisitionResult:
        if self._closed:
            raise RuntimeError(f"Session for {self.document_id} is closed")
        return await self.acquisition.acquire(self.document_id, source, on_progress=on_progress, token=token)

    def search(self, query: str, options: SearchOptions | None = None) -> list[DocumentMatch]:
        return search_document(self.index, query, options, y_tolerance=self.line_tolerance)

    def selected_text(self, selection: SelectionRange) -> str:
        return selected_text(self.index, selection)

    def model_rects(self, selection: SelectionRange) -> RectsByPage:
        return model_rects_for_selection(self.index, selection, self.line_tolerance)

    def select_match(self, match: DocumentMatch) -> SelectionRange | None:
        corpus = self.corpus_for_page(match.page_number)
        if corpus is None:
            return None
        return range_for_match(corpus, match.start, match.end)

    def attach_selection(
        self,
        platform: SelectionPlatform,
        scheduler: FrameScheduler,
        events: InputEventSource,
        marker: EditableMarker | None = None,
    ) -> SelectionController:
        """Build the overlay and caret for a platform and subscribe them to its input."""

        overlay = SelectionOverlay(
            platform,
            scheduler,
            self.corpus_for_page,
            y_tolerance=self.line_tolerance,
        )
        caret = CaretNavigator(self.corpus_for_page, platform, marker)
        controller = SelectionController(overlay, caret)
        controller.attach(events)
        self._controllers.append(controller)
        return controller

    def _release(self) -> None:
        for controller in self._controllers:
            controller.caret.deactivate()
            controller.detach()
        self._controllers.clear()
        self.cache.close()
        self.memory.clear()
        self._closed = True

    def close(self) -> None:
        if self._closed:
            return
        if self.cache.pending_writes:
            logger.warning(
                "Closing %s with %d cache writes still pending",
                self.document_id,
                self.cache.pending_writes,
            )
        self._release()

    async def aclose(self) -> None:
        if self._closed:
            return
        await self.cache.drain()
        self._release()

    def __enter__(self) -> "DocumentSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    async def __aenter__(self) -> "DocumentSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
