from typing import Dict, List, Sequence, Set, Tuple

from models.image_record import ImageRecord


class FakeStoreError(Exception):
    """Raised by FakeStore when a failure was injected."""


class FakeStore:
    """In-memory persistence adapter with failure injection for tests.

    Records are stored as persisted rows, so display handles never survive a
    round trip. Every call is appended to `calls`.
    """

    def __init__(self, rows: Sequence[ImageRecord] = ()) -> None:
        self.collections: Dict[str, Dict[str, dict]] = {"images": {r.id: r.to_row() for r in rows}}
        self.calls: List[Tuple] = []
        self.fail_initialize = False
        self.fail_read = False
        self.fail_write = False
        self.fail_clear = False
        self.fail_delete_ids: Set[str] = set()

    def rows(self, collection: str = "images") -> List[dict]:
        return list(self.collections.get(collection, {}).values())

    def ids(self, collection: str = "images") -> List[str]:
        return [row["id"] for row in self.rows(collection)]

    async def initialize(self) -> None:
        self.calls.append(("initialize",))
        if self.fail_initialize:
            raise FakeStoreError("store unavailable")

    async def read_all(self, collection: str) -> List[ImageRecord]:
        self.calls.append(("read_all", collection))
        if self.fail_read:
            raise FakeStoreError("read failed")
        return [ImageRecord.from_row(row) for row in self.rows(collection)]

    async def write_many(self, collection: str, records: Sequence[ImageRecord]) -> None:
        self.calls.append(("write_many", collection, [r.id for r in records]))
        if self.fail_write:
            raise FakeStoreError("write failed")
        target = self.collections.setdefault(collection, {})
        for record in records:
            target[record.id] = record.to_row()

    async def delete_one(self, collection: str, record_id: str) -> None:
        self.calls.append(("delete_one", collection, record_id))
        if record_id in self.fail_delete_ids:
            raise FakeStoreError(f"delete of {record_id} failed")
        self.collections.get(collection, {}).pop(record_id, None)

    async def clear(self, collection: str) -> None:
        self.calls.append(("clear", collection))
        if self.fail_clear:
            raise FakeStoreError("clear failed")
        self.collections[collection] = {}

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]


class RecordingSink:
    """Notification sink that remembers what it was told."""

    def __init__(self) -> None:
        self.warnings: List[str] = []
        self.errors: List[str] = []

    def warn(self, text: str) -> None:
        self.warnings.append(text)

    def error(self, text: str) -> None:
        self.errors.append(text)


class CountingNotifier:
    def __init__(self) -> None:
        self.calls = 0

    def update_counts(self) -> None:
        self.calls += 1
