import os
import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

# Columns added after the first schema; ensured on older database files.
_LATE_COLUMNS = {
    "category_id": "TEXT NOT NULL DEFAULT 'uncategorized'",
    "is_favorite": "INTEGER NOT NULL DEFAULT 0",
}


class AsyncDatabaseInitializer:
    """
    Manage the async SQLite database that backs the image collection.

    - The database file is located at: <db_dir>/app.db, where `db_dir` is the
      explicit argument or, when omitted, the DATABASE_DIR environment variable.
    - A RuntimeError is raised if neither is set or the path is not a usable
      directory.
    - The first call to `ensure_database()` creates the file and the `images`
      table (adding late columns to older schemas). Existing rows are kept so
      the collection survives restarts.
    - Subsequent calls to `ensure_database()` on the same instance are no-ops,
      so it is safe for `connection()` to call it.
    """

    def __init__(self, db_dir: Optional[Path | str] = None) -> None:
        env_dir = str(db_dir) if db_dir is not None else os.getenv("DATABASE_DIR")

        if env_dir is None or not env_dir.strip():
            raise RuntimeError(
                "DATABASE_DIR environment variable must be set to a writable "
                "directory path where the SQLite database file will be stored."
            )

        path = Path(env_dir).expanduser()

        if path.exists() and not path.is_dir():
            raise RuntimeError(
                f"DATABASE_DIR={env_dir!r} points to a file, not a directory "
                f"({path}). Please set DATABASE_DIR to a directory path."
            )

        try:
            path.mkdir(parents=True, exist_ok=True)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to create or access database directory at {path}"
            ) from exc

        self.db_dir = path
        self.db_path = self.db_dir / "app.db"

        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def ensure_database(self) -> None:
        """
        Ensure the SQLite database and the `images` table exist at `self.db_path`.

        Subsequent calls on the same instance are no-ops.
        """
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return

            max_attempts = 3
            for attempt in range(1, max_attempts + 1):
                try:
                    async with aiosqlite.connect(self.db_path) as db:
                        await db.execute(
                            """
                            CREATE TABLE IF NOT EXISTS images (
                                id TEXT PRIMARY KEY,
                                file_name TEXT NOT NULL,
                                category_id TEXT NOT NULL DEFAULT 'uncategorized',
                                mime_type TEXT NOT NULL,
                                binary_content BLOB NOT NULL,
                                is_favorite INTEGER NOT NULL DEFAULT 0
                            )
                            """
                        )

                        cur = await db.execute("PRAGMA table_info(images)")
                        cols = await cur.fetchall()
                        col_names = {col[1] for col in cols}
                        for name, ddl in _LATE_COLUMNS.items():
                            if name not in col_names:
                                await db.execute(f"ALTER TABLE images ADD COLUMN {name} {ddl}")

                        await db.execute(
                            "CREATE INDEX IF NOT EXISTS idx_images_category_id ON images(category_id)"
                        )
                        await db.commit()
                    break
                except FileNotFoundError:
                    # On some platforms a transient missing file error may occur; retry a few times.
                    if attempt >= max_attempts:
                        raise
                    await asyncio.sleep(0.1 * attempt)

            self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Async context manager yielding an `aiosqlite.Connection`.

        Rows are returned as `aiosqlite.Row` so columns can be read by name.
        """
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        conn.row_factory = aiosqlite.Row
        try:
            yield conn
        finally:
            await conn.close()
