from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from textlayer.corpus.acquisition import CancellationToken, CorpusAcquisition, ExtractionProgress
from textlayer.corpus.cache import JsonFileTier, MemoryTier, TieredCorpusCache
from textlayer.corpus.pdf_source import ExtractionError
from textlayer.layout.index import build_document_index
from textlayer.layout.models import RawFragment


class _FakeSource:
    def __init__(self, page_count: int, failing: set[int] | None = None) -> None:
        self._page_count = page_count
        self.failing = set(failing or ())
        self.calls: list[int] = []
        self.active = 0
        self.max_active = 0

    @property
    def page_count(self) -> int:
        return self._page_count

    async def extract_page(self, page_number: int) -> list[RawFragment]:
        self.calls.append(page_number)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        await asyncio.sleep(0)
        self.active -= 1
        if page_number in self.failing:
            raise ExtractionError(page_number, "broken content stream")
        return [RawFragment(text=f"text of page {page_number}", x=0, y=0, width=140, height=12)]


def _cache(tmp_path: Path) -> tuple[TieredCorpusCache, JsonFileTier]:
    json_tier = JsonFileTier(tmp_path / "json")
    return TieredCorpusCache(MemoryTier(), [json_tier]), json_tier


def test_extraction_runs_in_bounded_batches_and_reports_progress(tmp_path: Path) -> None:
    async def _scenario() -> None:
        cache, json_tier = _cache(tmp_path)
        source = _FakeSource(7)
        progress: list[ExtractionProgress] = []

        result = await CorpusAcquisition(cache, batch_size=3).acquire("doc-1", source, on_progress=progress.append)
        await cache.drain()

        assert [item.current for item in progress] == [1, 2, 3, 4, 5, 6, 7]
        assert {item.total for item in progress} == {7}
        assert progress[-1].fraction == 1.0
        assert source.max_active == 3
        assert sorted(source.calls) == list(range(1, 8))
        assert result.source == "extracted"
        assert result.complete
        assert result.index.page(4).full_text == "text of page 4"
        assert json_tier.read("doc-1") == result.index

    asyncio.run(_scenario())


def test_cancellation_stops_between_batches_and_resume_skips_known_pages(tmp_path: Path) -> None:
    async def _scenario() -> None:
        cache, json_tier = _cache(tmp_path)
        acquisition = CorpusAcquisition(cache, batch_size=3)
        source = _FakeSource(7)
        token = CancellationToken()

        def _cancel_after_first_batch(progress: ExtractionProgress) -> None:
            if progress.current == 3:
                token.cancel()

        cancelled = await acquisition.acquire("doc-1", source, on_progress=_cancel_after_first_batch, token=token)
        await cache.drain()

        assert cancelled.cancelled
        assert not cancelled.complete
        assert cancelled.index.page_numbers() == [1, 2, 3]
        assert cancelled.to_dict()["indexed_pages"] == 3
        assert json_tier.read("doc-1") is None

        source.calls.clear()
        resumed = await acquisition.acquire("doc-1", source)
        await cache.drain()

        assert sorted(source.calls) == [4, 5, 6, 7]
        assert resumed.complete
        assert not resumed.cancelled
        assert json_tier.read("doc-1") == resumed.index

    asyncio.run(_scenario())


def test_failed_pages_are_skipped_and_retried_later(tmp_path: Path) -> None:
    async def _scenario() -> None:
        cache, json_tier = _cache(tmp_path)
        acquisition = CorpusAcquisition(cache, batch_size=2)
        source = _FakeSource(4, failing={2})
        progress: list[int] = []

        partial = await acquisition.acquire("doc-1", source, on_progress=lambda item: progress.append(item.current))
        await cache.drain()

        assert progress == [1, 2, 3, 4]
        assert partial.failed_pages == [2]
        assert not partial.complete
        assert partial.index.page_numbers() == [1, 3, 4]
        assert cache.pending_writes == 0
        assert json_tier.read("doc-1") is None

        source.failing.clear()
        source.calls.clear()
        repaired = await acquisition.acquire("doc-1", source)
        await cache.drain()

        assert source.calls == [2]
        assert repaired.complete
        assert repaired.failed_pages == []
        assert json_tier.read("doc-1") == repaired.index

    asyncio.run(_scenario())


def test_cache_hit_skips_the_source(tmp_path: Path) -> None:
    async def _scenario() -> None:
        cache, json_tier = _cache(tmp_path)
        json_tier.write(
            build_document_index(
                "doc-1",
                {number: [RawFragment(text="cached", x=0, y=0, width=60, height=12)] for number in (1, 2, 3)},
            )
        )
        source = _FakeSource(3)
        progress: list[ExtractionProgress] = []

        result = await CorpusAcquisition(cache).acquire("doc-1", source, on_progress=progress.append)

        assert source.calls == []
        assert progress == [ExtractionProgress(current=3, total=3)]
        assert result.source == "json"
        assert result.to_dict()["complete"] is True
        assert cache.memory.get_page("doc-1", 2).full_text == "cached"

    asyncio.run(_scenario())


def test_batch_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        CorpusAcquisition(TieredCorpusCache(MemoryTier()), batch_size=0)
