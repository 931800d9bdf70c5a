"""CLI entrypoint for local text search over a PDF's page text layout."""

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
from textlayer.corpus.pdf_source import ExtractionError, PdfFragmentSource
from textlayer.search.normalize import SearchOptions
from textlayer.session import DocumentSession


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Search a PDF's extracted text and report highlight rectangles")
    parser.add_argument("--pdf", required=True, help="PDF file to search")
    parser.add_argument("--query", required=True, help="Text to search for")
    parser.add_argument("--limit", type=int, default=50, help="Maximum number of results")
    parser.add_argument("--match-case", action="store_true", help="Compare case-sensitively")
    parser.add_argument("--whole-word", action="store_true", help="Only report whole-word matches")
    parser.add_argument("--match-diacritics", action="store_true", help="Keep diacritics significant")
    parser.add_argument(
        "--no-overlap",
        action="store_true",
        help="Resume scanning after each match instead of one character later",
    )
    parser.add_argument("--document-id", default=None, help="Cache key; defaults to the file's SHA-256")
    parser.add_argument("--cache-dir", default=None, help="Directory for per-document JSON cache files")
    parser.add_argument("--db-path", default=None, help="SQLite database path for the durable tier")
    return parser.parse_args(argv)


async def _search(
    source: PdfFragmentSource,
    document_id: str,
    settings: TextLayerSettings,
    query: str,
    options: SearchOptions,
) -> tuple[list[dict[str, object]], int]:
    async with DocumentSession.from_settings(document_id, settings) as session:
        result = await session.load(source)
        matches = session.search(query, options)
        return [match.to_dict() for match in matches], len(result.index.pages)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        settings = TextLayerSettings.from_env()
    except ValueError as exc:
        print(json.dumps({"error": str(exc)}, ensure_ascii=True, indent=2))
        return 2

    if args.cache_dir:
        settings = dataclasses.replace(settings, cache_dir=Path(args.cache_dir))
    if args.db_path:
        settings = dataclasses.replace(settings, db_path=Path(args.db_path))

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=settings.log_level_value,
    )

    pdf_path = Path(args.pdf)
    if not pdf_path.is_file():
        print(json.dumps({"error": f"PDF not found: {pdf_path}"}, ensure_ascii=True, indent=2))
        return 2

    options = SearchOptions(
        match_case=args.match_case,
        match_whole_word=args.whole_word,
        match_diacritics=args.match_diacritics,
        allow_overlapping_matches=not args.no_overlap,
    )
    safe_limit = max(1, min(args.limit, 1000))

    try:
        with PdfFragmentSource(pdf_path) as source:
            document_id = args.document_id or source.document_id()
            results, indexed_pages = asyncio.run(_search(source, document_id, settings, args.query, options))
    except ExtractionError as exc:
        print(json.dumps({"error": str(exc)}, ensure_ascii=True, indent=2))
        return 2

    payload = {
        "query": args.query,
        "document_id": document_id,
        "indexed_pages": indexed_pages,
        "options": dataclasses.asdict(options),
        "limit": safe_limit,
        "total_matches": len(results),
        "results": results[:safe_limit],
    }
    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
