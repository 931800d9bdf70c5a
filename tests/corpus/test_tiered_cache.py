from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import pytest

from textlayer.corpus.cache import (
    JSON_CACHE_VERSION,
    CacheError,
    JsonFileTier,
    MemoryTier,
    SqliteTier,
    TieredCorpusCache,
)
from textlayer.layout.index import build_document_index
from textlayer.layout.models import DocumentTextIndex, RawFragment


def _index(document_id: str = "doc-1", pages: int = 2) -> DocumentTextIndex:
    return build_document_index(
        document_id,
        {
            number: [RawFragment(text=f"page {number} text", x=0, y=0, width=110, height=12)]
            for number in range(1, pages + 1)
        },
    )


def _partial(index: DocumentTextIndex, *numbers: int) -> DocumentTextIndex:
    return DocumentTextIndex(document_id=index.document_id, pages={n: index.pages[n] for n in numbers})


class _FailingTier:
    def __init__(self, name: str, error: Exception) -> None:
        self.name = name
        self._error = error
        self.reads = 0

    def read(self, document_id: str) -> DocumentTextIndex | None:
        self.reads += 1
        return None

    def write(self, index: DocumentTextIndex) -> None:
        raise self._error


def test_json_tier_round_trip_uses_hashed_file_names(tmp_path: Path) -> None:
    tier = JsonFileTier(tmp_path / "cache")
    index = _index("books/a.pdf")

    tier.write(index)

    path = tier.path_for("books/a.pdf")
    assert path.exists()
    assert path.parent == tmp_path / "cache"
    assert "/" not in path.stem and len(path.stem) == 64
    assert tier.read("books/a.pdf") == index
    assert tier.read("books/b.pdf") is None


def test_json_tier_ignores_stale_versions_and_rejects_garbage(tmp_path: Path) -> None:
    tier = JsonFileTier(tmp_path)
    path = tier.path_for("doc-1")

    path.write_text(
        json.dumps({"version": JSON_CACHE_VERSION + 1, "document_id": "doc-1", "pages": []}),
        encoding="utf-8",
    )
    assert tier.read("doc-1") is None

    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(CacheError) as excinfo:
        tier.read("doc-1")
    assert excinfo.value.tier == "json"


def test_memory_hit_wins_and_returns_a_copy(tmp_path: Path) -> None:
    memory = MemoryTier()
    json_tier = JsonFileTier(tmp_path)
    cache = TieredCorpusCache(memory, [json_tier])
    index = _index()
    memory.write(index)

    hit = cache.lookup("doc-1", 2)

    assert hit is not None
    assert hit.tier == "memory"
    hit.index.pages.clear()
    assert memory.read("doc-1") == index
    assert not json_tier.path_for("doc-1").exists()


def test_store_without_running_loop_writes_every_tier(tmp_path: Path) -> None:
    memory = MemoryTier()
    json_tier = JsonFileTier(tmp_path / "json")
    sqlite_tier = SqliteTier(tmp_path / "pages.db")
    cache = TieredCorpusCache(memory, [json_tier, sqlite_tier])

    cache.store(_index())

    assert "doc-1" in memory
    assert json_tier.read("doc-1") == _index()
    assert sqlite_tier.read("doc-1") == _index()
    assert cache.pending_writes == 0
    cache.close()


def test_lower_tier_hit_fills_memory_and_writes_back_in_background(tmp_path: Path) -> None:
    async def _scenario() -> None:
        memory = MemoryTier()
        json_tier = JsonFileTier(tmp_path / "json")
        sqlite_tier = SqliteTier(tmp_path / "pages.db")
        cache = TieredCorpusCache(memory, [json_tier, sqlite_tier])
        json_tier.write(_index())

        hit = cache.lookup("doc-1", 2)

        assert hit is not None
        assert hit.tier == "json"
        assert memory.read("doc-1") == _index()
        assert cache.pending_writes == 1

        await cache.drain()

        assert cache.pending_writes == 0
        assert sqlite_tier.read("doc-1") == _index()
        cache.close()

    asyncio.run(_scenario())


def test_partial_tier_falls_through_and_is_repaired(tmp_path: Path) -> None:
    memory = MemoryTier()
    json_tier = JsonFileTier(tmp_path / "json")
    sqlite_tier = SqliteTier(tmp_path / "pages.db")
    cache = TieredCorpusCache(memory, [json_tier, sqlite_tier])
    json_tier.write(_partial(_index(), 1))
    sqlite_tier.write(_index())

    hit = cache.lookup("doc-1", 2)

    assert hit is not None
    assert hit.tier == "sqlite"
    assert json_tier.read("doc-1") == _index()
    assert cache.lookup("doc-1", 3) is None
    cache.close()


def test_unreadable_tier_is_a_miss(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    memory = MemoryTier()
    json_tier = JsonFileTier(tmp_path / "json")
    sqlite_tier = SqliteTier(tmp_path / "pages.db")
    cache = TieredCorpusCache(memory, [json_tier, sqlite_tier])
    sqlite_tier.write(_index())
    (tmp_path / "json").mkdir()
    json_tier.path_for("doc-1").write_text("][", encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="textlayer.corpus.cache"):
        hit = cache.lookup("doc-1", 2)

    assert hit is not None
    assert hit.tier == "sqlite"
    assert "treating as miss" in caplog.text
    assert json_tier.read("doc-1") == _index()
    cache.close()


def test_write_back_failures_are_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    async def _scenario() -> None:
        expected = _FailingTier("readonly", CacheError("readonly", "disk full"))
        unexpected = _FailingTier("buggy", RuntimeError("boom"))
        memory = MemoryTier()
        cache = TieredCorpusCache(memory, [expected, unexpected])

        cache.store(_index())
        await cache.drain()

        assert memory.read("doc-1") == _index()
        assert cache.lookup("doc-1", 2).tier == "memory"
        assert expected.reads == 0

    with caplog.at_level(logging.WARNING, logger="textlayer.corpus.cache"):
        asyncio.run(_scenario())

    assert "disk full (tier=readonly)" in caplog.text
    assert "tier buggy" in caplog.text


def test_closed_sqlite_tier_refuses_late_writes(tmp_path: Path) -> None:
    tier = SqliteTier(tmp_path / "pages.db")
    tier.write(_index())

    tier.close()

    with pytest.raises(CacheError, match="closed"):
        tier.write(_index("doc-2"))
    with pytest.raises(CacheError, match="closed"):
        tier.read("doc-1")
    tier.close()
