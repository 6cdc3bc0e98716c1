"""Acquire image bytes and MIME type from a source reference.

Supported references:
    - session display handles (`/blobs/<token>`), resolved through the registry
    - `data:` URLs with base64 payloads
    - local file paths, optionally as `file://` URLs, read with aiofiles
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import mimetypes
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import unquote, urlparse

import aiofiles
from PIL import Image, UnidentifiedImageError

from models.errors import RepositoryError, RepositoryErrorKind
from services.display_handles import DisplayHandleRegistry

LOGGER = logging.getLogger(__name__)
DEFAULT_MIME_TYPE = "application/octet-stream"


def sniff_mime_type(data: bytes, file_name: Optional[str] = None) -> str:
    """Best-effort MIME type: Pillow format detection, then the file extension."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            mime = Image.MIME.get(img.format or "")
            if mime:
                return mime
    except (UnidentifiedImageError, OSError, ValueError):
        pass
    if file_name:
        guessed, _ = mimetypes.guess_type(file_name)
        if guessed:
            return guessed
    return DEFAULT_MIME_TYPE


def parse_data_url(reference: str) -> Tuple[str, bytes]:
    """Decode a `data:<mime>;base64,<payload>` URL.

    Raises:
        ValueError: If the URL is malformed or not base64 encoded.
    """
    header, sep, payload = reference.partition(",")
    if not sep or not header.startswith("data:"):
        raise ValueError("Malformed data URL")
    params = header[len("data:"):].split(";")
    if "base64" not in params[1:]:
        raise ValueError("Only base64 data URLs are supported")
    mime_type = params[0] or DEFAULT_MIME_TYPE
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Invalid base64 payload in data URL") from exc
    return mime_type, data


class MediaSourceResolver:
    """Turn a source reference into `(mime_type, bytes)`."""

    def __init__(self, registry: DisplayHandleRegistry, base_dir: Optional[Path] = None) -> None:
        """
        Args:
            registry: Registry used to resolve session blob handles.
            base_dir: Optional directory relative file paths are resolved against.
        """
        self.registry = registry
        self.base_dir = base_dir

    async def acquire(self, source: str) -> Tuple[str, bytes]:
        """Return the MIME type and bytes behind `source`.

        Raises:
            RepositoryError: SOURCE_UNAVAILABLE when the reference cannot be read.
        """
        if not source:
            raise RepositoryError(RepositoryErrorKind.SOURCE_UNAVAILABLE, "Empty source reference")

        if self.registry.is_handle(source):
            resolved = self.registry.resolve(source)
            if resolved is None:
                raise RepositoryError(
                    RepositoryErrorKind.SOURCE_UNAVAILABLE, f"Handle {source} is not live in this session"
                )
            return resolved

        if source.startswith("data:"):
            try:
                return parse_data_url(source)
            except ValueError as exc:
                raise RepositoryError(RepositoryErrorKind.SOURCE_UNAVAILABLE, str(exc)) from exc

        path = self._path_for(source)
        try:
            async with aiofiles.open(path, "rb") as f:
                data = await f.read()
        except OSError as exc:
            LOGGER.error("Failed to read image source %s: %s", path, exc)
            raise RepositoryError(
                RepositoryErrorKind.SOURCE_UNAVAILABLE, f"Cannot read {path}: {exc}"
            ) from exc
        return sniff_mime_type(data, path.name), data

    def _path_for(self, source: str) -> Path:
        if source.startswith("file://"):
            path = Path(unquote(urlparse(source).path))
        else:
            path = Path(source).expanduser()
        if not path.is_absolute() and self.base_dir is not None:
            path = self.base_dir / path
        return path
