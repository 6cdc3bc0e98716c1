"""Per-category tallies recomputed after bulk loads."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Callable, Dict, Iterable, Protocol

from models.image_record import ALL_CATEGORIES, ImageRecord

LOGGER = logging.getLogger(__name__)


class CategoryCountNotifier(Protocol):
    def update_counts(self) -> None:
        ...


class CategoryCountTracker:
    """Recompute image counts per category from a records provider."""

    def __init__(self, records_provider: Callable[[], Iterable[ImageRecord]]) -> None:
        self._records_provider = records_provider
        self._counts: Dict[str, int] = {ALL_CATEGORIES: 0}

    def update_counts(self) -> None:
        records = list(self._records_provider())
        counts = Counter(record.category_id for record in records)
        self._counts = {ALL_CATEGORIES: len(records), **counts}
        LOGGER.debug("Category counts updated: %s", self._counts)

    @property
    def counts(self) -> Dict[str, int]:
        return dict(self._counts)

    def count_for(self, category_id: str) -> int:
        return self._counts.get(category_id, 0)
