"""CLI entrypoint for extracting and caching a PDF's page text layout."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from textlayer.config import TextLayerSettings
from textlayer.corpus.acquisition import AcquisitionResult, ExtractionProgress
from textlayer.corpus.pdf_source import ExtractionError, PdfFragmentSource
from textlayer.session import DocumentSession

LOGGER = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract a PDF's text fragments and store them in the corpus cache")
    parser.add_argument("--pdf", required=True, help="PDF file to extract")
    parser.add_argument("--document-id", default=None, help="Cache key; defaults to the file's SHA-256")
    parser.add_argument("--cache-dir", default=None, help="Directory for per-document JSON cache files")
    parser.add_argument("--db-path", default=None, help="SQLite database path for the durable tier")
    parser.add_argument("--batch-size", type=int, default=None, help="Pages extracted per batch")
    return parser.parse_args(argv)


def _apply_overrides(settings: TextLayerSettings, args: argparse.Namespace) -> TextLayerSettings:
    changes: dict[str, object] = {}
    if args.cache_dir:
        changes["cache_dir"] = Path(args.cache_dir)
    if args.db_path:
        changes["db_path"] = Path(args.db_path)
    if args.batch_size is not None:
        changes["batch_size"] = max(1, args.batch_size)
    return dataclasses.replace(settings, **changes) if changes else settings


def _log_progress(progress: ExtractionProgress) -> None:
    LOGGER.debug("Extracted %d/%d pages", progress.current, progress.total)


async def _extract(source: PdfFragmentSource, document_id: str, settings: TextLayerSettings) -> dict[str, object]:
    async with DocumentSession.from_settings(document_id, settings) as session:
        result: AcquisitionResult = await session.load(source, on_progress=_log_progress)
        index = result.index
        payload = result.to_dict()
        payload["pdf"] = str(source.path)
        payload["pages"] = [
            {
                "page_number": number,
                "fragments": len(index.pages[number].fragments),
                "characters": len(index.pages[number].full_text),
            }
            for number in index.page_numbers()
        ]
    return payload


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        settings = _apply_overrides(TextLayerSettings.from_env(), args)
    except ValueError as exc:
        print(json.dumps({"error": str(exc)}, ensure_ascii=True, indent=2))
        return 2

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=settings.log_level_value,
    )

    pdf_path = Path(args.pdf)
    if not pdf_path.is_file():
        print(json.dumps({"error": f"PDF not found: {pdf_path}"}, ensure_ascii=True, indent=2))
        return 2

    try:
        with PdfFragmentSource(pdf_path) as source:
            document_id = args.document_id or source.document_id()
            payload = asyncio.run(_extract(source, document_id, settings))
    except ExtractionError as exc:
        print(json.dumps({"error": str(exc)}, ensure_ascii=True, indent=2))
        return 2

    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return 0 if payload["complete"] else 1


if __name__ == "__main__":
    raise SystemExit(main())
