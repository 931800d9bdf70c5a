"""Runtime configuration for corpus caching and geometry tolerances."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Mapping


DEFAULT_CACHE_DIR = ".textlayer-cache"
DEFAULT_DB_PATH = ".textlayer-text.db"
DEFAULT_BATCH_SIZE = 3
DEFAULT_LINE_TOLERANCE = 3.0
DEFAULT_LOG_LEVEL = "INFO"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_positive_int(*, name: str, raw_value: str, minimum: int = 1) -> int:
    try:
        value = int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw_value!r}") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _parse_positive_float(*, name: str, raw_value: str, minimum: float = 0.001) -> float:
    try:
        value = float(raw_value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw_value!r}") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


@dataclass(frozen=True, slots=True)
class TextLayerSettings:
    """Validated settings for corpus acquisition and highlight geometry."""

    cache_dir: Path = Path(DEFAULT_CACHE_DIR)
    db_path: Path = Path(DEFAULT_DB_PATH)
    batch_size: int = DEFAULT_BATCH_SIZE
    line_tolerance: float = DEFAULT_LINE_TOLERANCE
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "TextLayerSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        cache_dir_raw = source.get("TEXTLAYER_CACHE_DIR", DEFAULT_CACHE_DIR).strip()
        if not cache_dir_raw:
            raise ValueError("TEXTLAYER_CACHE_DIR cannot be empty")

        db_path_raw = source.get("TEXTLAYER_DB_PATH", DEFAULT_DB_PATH).strip()
        if not db_path_raw:
            raise ValueError("TEXTLAYER_DB_PATH cannot be empty")

        batch_size_raw = source.get("TEXTLAYER_BATCH_SIZE", str(DEFAULT_BATCH_SIZE)).strip()
        tolerance_raw = source.get("TEXTLAYER_LINE_TOLERANCE", str(DEFAULT_LINE_TOLERANCE)).strip()
        log_level_raw = source.get("TEXTLAYER_LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper()

        if not batch_size_raw:
            raise ValueError("TEXTLAYER_BATCH_SIZE cannot be empty")
        if not tolerance_raw:
            raise ValueError("TEXTLAYER_LINE_TOLERANCE cannot be empty")
        if log_level_raw not in _LOG_LEVELS:
            raise ValueError(f"TEXTLAYER_LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}")

        batch_size = _parse_positive_int(
            name="TEXTLAYER_BATCH_SIZE",
            raw_value=batch_size_raw,
            minimum=1,
        )
        line_tolerance = _parse_positive_float(
            name="TEXTLAYER_LINE_TOLERANCE",
            raw_value=tolerance_raw,
            minimum=0.001,
        )

        return cls(
            cache_dir=Path(cache_dir_raw),
            db_path=Path(db_path_raw),
            batch_size=batch_size,
            line_tolerance=line_tolerance,
            log_level=log_level_raw,
        )
