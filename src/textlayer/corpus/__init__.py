"""Corpus acquisition, tiered caching and page fragment sources."""

from .acquisition import (
    DEFAULT_BATCH_SIZE,
    AcquisitionResult,
    CancellationToken,
    CorpusAcquisition,
    ExtractionProgress,
)
from .cache import CacheError, CacheHit, CorpusTier, JsonFileTier, MemoryTier, SqliteTier, TieredCorpusCache
from .pdf_source import ExtractionError, FragmentSource, PdfFragmentSource, document_fingerprint
from .repository import PageTextRepository, PageTextRow

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "AcquisitionResult",
    "CacheError",
    "CacheHit",
    "CancellationToken",
    "CorpusAcquisition",
    "CorpusTier",
    "ExtractionError",
    "ExtractionProgress",
    "FragmentSource",
    "JsonFileTier",
    "MemoryTier",
    "PageTextRepository",
    "PageTextRow",
    "PdfFragmentSource",
    "SqliteTier",
    "TieredCorpusCache",
    "document_fingerprint",
]
