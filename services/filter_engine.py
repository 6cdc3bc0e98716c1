"""Pure views over the in-memory image collection."""

from __future__ import annotations

from typing import Iterable, List

from models.image_record import ALL_CATEGORIES, ImageRecord


def by_category(records: Iterable[ImageRecord], category_id: str) -> List[ImageRecord]:
    """Return all records for "all", otherwise those in exactly `category_id`."""
    if category_id == ALL_CATEGORIES:
        return list(records)
    return [record for record in records if record.category_id == category_id]


def by_search(records: Iterable[ImageRecord], query: str) -> List[ImageRecord]:
    """Filter by case-insensitive substring of the file name.

    A blank query leaves the input unchanged. A non-blank query is matched as
    given (surrounding whitespace included), only lowercased.
    """
    if not query or not query.strip():
        return list(records)
    needle = query.lower()
    return [record for record in records if needle in record.file_name.lower()]


def filtered(records: Iterable[ImageRecord], category_id: str, query: str) -> List[ImageRecord]:
    return by_search(by_category(records, category_id), query)


def favorites_only(records: Iterable[ImageRecord]) -> List[ImageRecord]:
    return [record for record in records if record.is_favorite]
