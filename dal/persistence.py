"""Contract of the persistent store consumed by the image repository."""

from __future__ import annotations

from typing import List, Protocol, Sequence, runtime_checkable

from models.image_record import ImageRecord

IMAGES_COLLECTION = "images"


@runtime_checkable
class PersistenceAdapter(Protocol):
    """Async CRUD over named collections of records keyed by id.

    Every operation may fail independently; failures propagate to the caller
    and are never retried. `initialize()` must be awaited once before any
    other call.
    """

    async def initialize(self) -> None:
        ...

    async def read_all(self, collection: str) -> List[ImageRecord]:
        ...

    async def write_many(self, collection: str, records: Sequence[ImageRecord]) -> None:
        """Upsert `records` by id."""
        ...

    async def delete_one(self, collection: str, record_id: str) -> None:
        ...

    async def clear(self, collection: str) -> None:
        ...


@runtime_checkable
class TransactionalDeletes(Protocol):
    """Optional capability: delete several ids in one transaction."""

    async def delete_many(self, collection: str, record_ids: Sequence[str]) -> None:
        ...
