"""Session-local display handles for image bytes.

A handle is a URL path (`/blobs/<token>`) the HTTP layer can serve while the
process is alive. The registry lives in memory only, so handles from a
previous session never resolve and must be re-derived after a reload.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple
from uuid import uuid4

HANDLE_PREFIX = "/blobs/"


class DisplayHandleRegistry:
    """Map session handles to `(mime_type, bytes)` pairs."""

    def __init__(self) -> None:
        self._blobs: Dict[str, Tuple[str, bytes]] = {}

    def create(self, data: bytes, mime_type: str) -> str:
        """Register `data` and return a fresh handle for it."""
        token = uuid4().hex
        self._blobs[token] = (mime_type, bytes(data))
        return f"{HANDLE_PREFIX}{token}"

    def resolve(self, handle: str) -> Optional[Tuple[str, bytes]]:
        """Return `(mime_type, bytes)` for a live handle, or None."""
        token = self.token_of(handle)
        if token is None:
            return None
        return self._blobs.get(token)

    def revoke(self, handle: Optional[str]) -> None:
        token = self.token_of(handle) if handle else None
        if token is not None:
            self._blobs.pop(token, None)

    def clear(self) -> None:
        self._blobs.clear()

    def __len__(self) -> int:
        return len(self._blobs)

    @staticmethod
    def is_handle(reference: str) -> bool:
        return reference.startswith(HANDLE_PREFIX)

    @staticmethod
    def token_of(handle: str) -> Optional[str]:
        if not handle.startswith(HANDLE_PREFIX):
            return None
        token = handle[len(HANDLE_PREFIX):]
        return token or None
