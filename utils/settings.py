"""Application settings read from the environment (and a `.env` file if present)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    """Runtime configuration.

    Attributes:
        database_dir: Directory holding the SQLite file (None defers to DATABASE_DIR).
        log_level: Logging level name.
        duplicate_policy: "file-name" (default) or "content-hash".
        favorite_write_mode: "collection" (default) or "record".
        thumbnail_size: Maximum edge of generated thumbnails, in pixels.
        notification_history: Number of notifications kept for the UI.
        source_dir: Optional base directory for relative file sources.
    """

    database_dir: Optional[Path] = None
    log_level: str = "INFO"
    duplicate_policy: str = "file-name"
    favorite_write_mode: str = "collection"
    thumbnail_size: int = 160
    notification_history: int = 100
    source_dir: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()  # Load environment variables from .env file if present
        database_dir = os.getenv("DATABASE_DIR")
        source_dir = os.getenv("IMAGE_SOURCE_DIR")
        return cls(
            database_dir=Path(database_dir) if database_dir else None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            duplicate_policy=os.getenv("DUPLICATE_POLICY", "file-name"),
            favorite_write_mode=os.getenv("FAVORITE_WRITE_MODE", "collection"),
            thumbnail_size=_int_env("THUMBNAIL_SIZE", 160),
            notification_history=_int_env("NOTIFICATION_HISTORY", 100),
            source_dir=Path(source_dir) if source_dir else None,
        )
