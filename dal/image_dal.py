"""Async Data Access Layer for the images collection.

Provides ImageDAL, the SQLite implementation of the persistence contract,
built on `utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from dal.persistence import IMAGES_COLLECTION
from models.image_record import ImageRecord
from utils.database_init import AsyncDatabaseInitializer

LOGGER = logging.getLogger(__name__)


class ImageDAL:
    """Data access layer for image records.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing `ensure_database()` and an async `connection()` context manager
    that yields an `aiosqlite.Connection`).
    """

    _COLUMNS = (
        "id",
        "file_name",
        "category_id",
        "mime_type",
        "binary_content",
        "is_favorite",
    )
    _COLUMN_LIST = ", ".join(_COLUMNS)
    _PLACEHOLDERS = ", ".join("?" for _ in _COLUMNS)
    _UPDATE_SET = ", ".join(f"{col} = excluded.{col}" for col in _COLUMNS[1:])
    _TABLES = {IMAGES_COLLECTION: "images"}

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    def _table(self, collection: str) -> str:
        table = self._TABLES.get(collection)
        if table is None:
            raise ValueError(f"Unknown collection: {collection!r}")
        return table

    async def initialize(self) -> None:
        """Create the database file and schema if needed."""
        await self._db.ensure_database()

    async def read_all(self, collection: str) -> List[ImageRecord]:
        """Return every stored record of `collection`, in insertion order."""
        table = self._table(collection)
        async with self._db.connection() as conn:
            cur = await conn.execute(f"SELECT {self._COLUMN_LIST} FROM {table} ORDER BY rowid")
            rows = await cur.fetchall()
            return [self._row_to_record(r) for r in rows]

    async def write_many(self, collection: str, records: Sequence[ImageRecord]) -> None:
        """Upsert `records` by id in a single transaction.

        Args:
            collection: Target collection name.
            records: Records to insert or replace; display handles are not stored.
        """
        table = self._table(collection)
        if not records:
            return
        params = [self._record_to_params(r) for r in records]
        async with self._db.connection() as conn:
            try:
                await conn.executemany(
                    f"INSERT INTO {table} ({self._COLUMN_LIST}) VALUES ({self._PLACEHOLDERS}) "
                    f"ON CONFLICT(id) DO UPDATE SET {self._UPDATE_SET}",
                    params,
                )
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise
        LOGGER.debug("Wrote %d record(s) to %s", len(params), table)

    async def delete_one(self, collection: str, record_id: str) -> None:
        """Delete a record by id. Deleting a missing id is a no-op."""
        table = self._table(collection)
        async with self._db.connection() as conn:
            await conn.execute(f"DELETE FROM {table} WHERE id = ?", (record_id,))
            await conn.commit()

    async def delete_many(self, collection: str, record_ids: Sequence[str]) -> None:
        """Delete several ids in one transaction; nothing is deleted on failure."""
        table = self._table(collection)
        if not record_ids:
            return
        async with self._db.connection() as conn:
            try:
                await conn.executemany(
                    f"DELETE FROM {table} WHERE id = ?", [(record_id,) for record_id in record_ids]
                )
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    async def clear(self, collection: str) -> None:
        """Remove every record of `collection`."""
        table = self._table(collection)
        async with self._db.connection() as conn:
            await conn.execute(f"DELETE FROM {table}")
            await conn.commit()

    @staticmethod
    def _record_to_params(record: ImageRecord) -> tuple:
        row = record.to_row()
        row["is_favorite"] = int(row["is_favorite"])
        return tuple(row[col] for col in ImageDAL._COLUMNS)

    @staticmethod
    def _row_to_record(row) -> ImageRecord:
        """Convert a DB row into an ImageRecord without a display handle."""
        return ImageRecord.from_row(row)
