from __future__ import annotations

import hashlib
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional

ALL_CATEGORIES = "all"


@dataclass
class ImageRecord:
    """In-memory representation of one image in the collection.

    Attributes:
        id: Opaque identifier assigned before the record enters the repository.
        file_name: Display name, also the duplicate-detection key.
        category_id: Category the image belongs to (never the reserved "all").
        mime_type: MIME type describing `binary_content`.
        binary_content: Raw image bytes; the only payload that is persisted.
        is_favorite: Favorite flag toggled by the user.
        display_handle: Session-local handle derived from the content at load
            time. Never persisted and ignored by equality.
    """

    id: str
    file_name: str
    category_id: str
    mime_type: str
    binary_content: bytes
    is_favorite: bool = False
    display_handle: Optional[str] = field(default=None, compare=False, repr=False)

    def to_row(self) -> Dict[str, Any]:
        """Return the persisted shape of the record (no display handle)."""
        return {
            "id": self.id,
            "file_name": self.file_name,
            "category_id": self.category_id,
            "mime_type": self.mime_type,
            "binary_content": self.binary_content,
            "is_favorite": self.is_favorite,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ImageRecord":
        """Build a record from its persisted shape. The display handle is left empty."""
        return cls(
            id=row["id"],
            file_name=row["file_name"],
            category_id=row["category_id"],
            mime_type=row["mime_type"],
            binary_content=bytes(row["binary_content"] or b""),
            is_favorite=bool(row["is_favorite"]),
        )

    def with_favorite(self, is_favorite: bool) -> "ImageRecord":
        """Return a copy with the favorite flag set, keeping the display handle."""
        return replace(self, is_favorite=is_favorite)

    def content_hash(self) -> str:
        return hashlib.sha256(self.binary_content).hexdigest()


@dataclass
class ImageCandidate:
    """An image a caller wants to add, before its content is materialized.

    Attributes:
        id: Identifier assigned by the caller.
        file_name: Name used for duplicate detection.
        category_id: Target category.
        source: Source reference the content is acquired from (session blob
            handle, data URL or local file path).
        is_favorite: Initial favorite flag.
        mime_type: Optional MIME type when the caller already knows it.
        binary_content: Optional bytes when the caller already holds them.
    """

    id: str
    file_name: str
    category_id: str
    source: str
    is_favorite: bool = False
    mime_type: Optional[str] = None
    binary_content: Optional[bytes] = None

    def content_hash(self) -> Optional[str]:
        if self.binary_content is None:
            return None
        return hashlib.sha256(self.binary_content).hexdigest()
