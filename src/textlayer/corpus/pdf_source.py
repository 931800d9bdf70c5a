"""Page fragment sources; the PDF one is backed by pymupdf."""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

import pymupdf

from textlayer.layout.models import RawFragment

logger = logging.getLogger(__name__)

_TEXT_BLOCK = 0
# MuPDF's own errors derive from Exception, not RuntimeError.
_PDF_ERRORS = (RuntimeError, ValueError, pymupdf.mupdf.FzErrorBase)


@dataclass(slots=True)
class ExtractionError(Exception):
    """A page's text content could not be produced."""

    page_number: int
    message: str

    def __str__(self) -> str:
        return f"{self.message} (page={self.page_number})"


@runtime_checkable
class FragmentSource(Protocol):
    """Rendering collaborator handing over positioned text items per page."""

    @property
    def page_count(self) -> int: ...

    async def extract_page(self, page_number: int) -> list[RawFragment]:
        """Return the page's fragments in reading order (1-based page number)."""


def document_fingerprint(path: str | Path) -> str:
    return hashlib.sha256(Path(path).read_bytes()).hexdigest()


def _span_fragments(page: pymupdf.Page) -> list[RawFragment]:
    matrix = page.rotation_matrix
    fragments: list[RawFragment] = []

    for block in page.get_text("dict")["blocks"]:
        if block.get("type") != _TEXT_BLOCK:
            continue
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                text = span.get("text", "")
                if not text:
                    continue
                bbox = pymupdf.Rect(span["bbox"]) * matrix
                fragments.append(
                    RawFragment(
                        text=text,
                        x=float(bbox.x0),
                        y=float(bbox.y0),
                        width=float(bbox.width),
                        height=float(bbox.height),
                    )
                )

    return fragments


class PdfFragmentSource:
    """Emit one fragment per text span, in PDF points of the displayed page.

    Extraction runs on the event loop thread; batching in the caller keeps
    the loop responsive between pages.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        try:
            self._document = pymupdf.open(self._path)
        except (OSError, *_PDF_ERRORS) as exc:
            raise ExtractionError(0, f"Cannot open PDF {self._path}: {exc}") from exc

    @property
    def path(self) -> Path:
        return self._path

    @property
    def page_count(self) -> int:
        return self._document.page_count

    def document_id(self) -> str:
        return document_fingerprint(self._path)

    def _extract(self, page_number: int) -> list[RawFragment]:
        if not 1 <= page_number <= self.page_count:
            raise ExtractionError(page_number, f"Page out of range 1..{self.page_count}")

        try:
            page = self._document.load_page(page_number - 1)
            return _span_fragments(page)
        except _PDF_ERRORS as exc:
            raise ExtractionError(page_number, f"Text extraction failed: {exc}") from exc

    async def extract_page(self, page_number: int) -> list[RawFragment]:
        fragments = self._extract(page_number)
        logger.debug("Extracted %d spans from page %d of %s", len(fragments), page_number, self._path.name)
        return fragments

    def close(self) -> None:
        self._document.close()

    def __enter__(self) -> "PdfFragmentSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
