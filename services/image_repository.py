"""Authoritative in-memory image collection mirrored to a persistent store.

`ImageRepository` owns the records, the search query and the advisory busy
flag. Every mutating operation runs under one per-instance `asyncio.Lock`, so
persistence calls and in-memory replacements of two operations never
interleave. The busy flag is only observable state for the UI and is never
checked before starting an operation.

In-memory state changes only after the matching persistence call succeeded.
Two gaps are kept on purpose and documented in DESIGN.md:
    - batch deletes without a transactional store may leave ids deleted in the
      store while memory still holds them;
    - `clear_all(True)` clears and then rewrites, so a failing rewrite leaves
      the store emptier than memory.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from dal.persistence import IMAGES_COLLECTION, PersistenceAdapter, TransactionalDeletes
from models.errors import RepositoryError, RepositoryErrorKind
from models.image_record import ImageCandidate, ImageRecord
from services import filter_engine
from services.category_counts import CategoryCountNotifier
from services.display_handles import DisplayHandleRegistry
from services.duplicate_detector import FILE_NAME_POLICY, Candidate, DuplicatePolicy
from services.media_source import MediaSourceResolver, sniff_mime_type
from services.notifications import NotificationSink

LOGGER = logging.getLogger(__name__)

FAVORITE_WRITE_MODES = ("collection", "record")


class ImageRepository:
    """Coordinate the image collection between callers and the persistent store."""

    def __init__(
        self,
        store: PersistenceAdapter,
        handles: DisplayHandleRegistry,
        sources: MediaSourceResolver,
        notifier: NotificationSink,
        count_notifier: Optional[CategoryCountNotifier] = None,
        *,
        policy: DuplicatePolicy = FILE_NAME_POLICY,
        favorite_write_mode: str = "collection",
        collection: str = IMAGES_COLLECTION,
    ) -> None:
        """
        Args:
            store: Persistent store the collection is mirrored to.
            handles: Registry deriving session display handles from content.
            sources: Resolver materializing candidate content from source references.
            notifier: Channel for user-facing warnings and errors.
            count_notifier: Optional collaborator told to recompute category counts after a load.
            policy: Active duplicate detection policy.
            favorite_write_mode: "collection" rewrites every record on a favorite
                toggle; "record" upserts only the toggled one.
            collection: Name of the persisted collection.
        """
        if favorite_write_mode not in FAVORITE_WRITE_MODES:
            raise ValueError(
                f"favorite_write_mode must be one of {FAVORITE_WRITE_MODES}, got {favorite_write_mode!r}"
            )
        self._store = store
        self._handles = handles
        self._sources = sources
        self._notifier = notifier
        self.count_notifier = count_notifier
        self.policy = policy
        self.favorite_write_mode = favorite_write_mode
        self._collection = collection

        self._records: Dict[str, ImageRecord] = {}
        self._lock = asyncio.Lock()
        self.search_query = ""
        self.busy = False

    # ------------------------------------------------------------------ reads

    @property
    def records(self) -> List[ImageRecord]:
        """Point-in-time snapshot of the collection, in insertion order."""
        return list(self._records.values())

    def get(self, record_id: str) -> Optional[ImageRecord]:
        return self._records.get(record_id)

    def is_duplicate(self, candidate: Candidate) -> bool:
        """Check `candidate` against the current collection with the active policy."""
        return self.policy.is_duplicate(candidate, self._records.values())

    def set_search_query(self, query: str) -> None:
        self.search_query = query

    def set_busy(self, busy: bool) -> None:
        self.busy = busy

    def query_by_category(self, category_id: str) -> List[ImageRecord]:
        return filter_engine.by_category(self.records, category_id)

    def query_favorites(self) -> List[ImageRecord]:
        return filter_engine.favorites_only(self.records)

    def query_filtered(self, category_id: str) -> List[ImageRecord]:
        """Category view narrowed by the current search query."""
        return filter_engine.filtered(self.records, category_id, self.search_query)

    # ------------------------------------------------------------- mutations

    async def load(self) -> bool:
        """Replace the collection with the persisted one.

        Store failures are reported through the notifier as an
        INITIALIZATION_FAILURE and leave the collection untouched; nothing is
        raised. Returns True when the load was applied, even if recomputing
        category counts afterwards fails (that failure is reported on its own).
        """
        async with self._lock:
            self.busy = True
            created: List[str] = []
            try:
                try:
                    await self._store.initialize()
                    stored = await self._store.read_all(self._collection)

                    loaded: Dict[str, ImageRecord] = {}
                    for record in stored:
                        record.display_handle = self._handles.create(record.binary_content, record.mime_type)
                        created.append(record.display_handle)
                        loaded[record.id] = record
                except Exception as exc:
                    LOGGER.exception("Loading images failed")
                    for handle in created:
                        self._handles.revoke(handle)
                    error = RepositoryError(
                        RepositoryErrorKind.INITIALIZATION_FAILURE, f"Failed to load images: {exc}"
                    )
                    self._notifier.error(str(error))
                    return False

                previous = self._records
                self._records = loaded
                self._revoke(previous.values())
                LOGGER.info("Loaded %d image(s) from %s", len(loaded), self._collection)

                if self.count_notifier is not None:
                    try:
                        self.count_notifier.update_counts()
                    except Exception as exc:
                        LOGGER.exception("Updating category counts failed")
                        self._notifier.error(f"Failed to update category counts: {exc}")
                return True
            finally:
                self.busy = False

    async def add_many(self, candidates: Sequence[ImageCandidate]) -> List[ImageRecord]:
        """Materialize, persist and append the non-duplicate candidates.

        Candidates are only checked against records already in the collection,
        not against each other. Each duplicate produces one warning and is
        dropped. Returns the records that were added.

        Raises:
            RepositoryError: SOURCE_UNAVAILABLE if content cannot be acquired,
                PERSISTENCE_WRITE_FAILURE if the store rejects the write. The
                collection is unchanged in both cases.
        """
        async with self._lock:
            self.busy = True
            try:
                return await self._add_many(list(candidates))
            finally:
                self.busy = False

    async def _add_many(self, candidates: List[ImageCandidate]) -> List[ImageRecord]:
        existing = list(self._records.values())

        if self.policy.needs_content:
            prepared = await self._materialize_all(candidates)
            unique = []
            for record in prepared:
                if self.policy.is_duplicate(record, existing):
                    self._skip_duplicate(record)
                    self._handles.revoke(record.display_handle)
                else:
                    unique.append(record)
        else:
            survivors = []
            for candidate in candidates:
                if self.policy.is_duplicate(candidate, existing):
                    self._skip_duplicate(candidate)
                else:
                    survivors.append(candidate)
            unique = await self._materialize_all(survivors)

        if not unique:
            return []

        try:
            await self._store.write_many(self._collection, unique)
        except Exception as exc:
            self._revoke(unique)
            LOGGER.error("Persisting %d new image(s) failed: %s", len(unique), exc)
            raise RepositoryError(
                RepositoryErrorKind.PERSISTENCE_WRITE_FAILURE, f"Failed to store {len(unique)} image(s): {exc}"
            ) from exc

        for record in unique:
            replaced = self._records.get(record.id)
            if replaced is not None:
                self._handles.revoke(replaced.display_handle)
            self._records[record.id] = record
        LOGGER.info("Added %d image(s)", len(unique))
        return unique

    async def delete_one(self, record_id: str) -> None:
        """Delete a record from the store, then from memory.

        Raises:
            RepositoryError: PERSISTENCE_DELETE_FAILURE; memory is not touched.
        """
        async with self._lock:
            try:
                await self._store.delete_one(self._collection, record_id)
            except Exception as exc:
                raise RepositoryError(
                    RepositoryErrorKind.PERSISTENCE_DELETE_FAILURE, f"Failed to delete image {record_id}: {exc}"
                ) from exc
            removed = self._records.pop(record_id, None)
            if removed is not None:
                self._handles.revoke(removed.display_handle)

    async def delete_many(self, record_ids: Iterable[str]) -> None:
        """Delete several records; memory changes only if every delete succeeded.

        A store offering transactional `delete_many` deletes all or nothing.
        Otherwise one delete per id is issued concurrently and the ones that
        succeeded stay deleted even when another failed.

        Raises:
            RepositoryError: PERSISTENCE_DELETE_FAILURE, after an error notification.
        """
        ids = list(dict.fromkeys(record_ids))
        async with self._lock:
            try:
                if isinstance(self._store, TransactionalDeletes):
                    await self._store.delete_many(self._collection, ids)
                else:
                    results = await asyncio.gather(
                        *(self._store.delete_one(self._collection, record_id) for record_id in ids),
                        return_exceptions=True,
                    )
                    failures = [r for r in results if isinstance(r, Exception)]
                    if failures:
                        raise failures[0]
            except Exception as exc:
                self._notifier.error(f"Batch delete failed: {exc}")
                raise RepositoryError(
                    RepositoryErrorKind.PERSISTENCE_DELETE_FAILURE, f"Failed to delete {len(ids)} image(s): {exc}"
                ) from exc

            for record_id in ids:
                removed = self._records.pop(record_id, None)
                if removed is not None:
                    self._handles.revoke(removed.display_handle)

    async def clear_all(self, only_favorites: bool) -> None:
        """Delete every record, or only the favorites when `only_favorites` is True.

        Deleting favorites clears the whole store and rewrites the remaining
        records.

        Raises:
            RepositoryError: PERSISTENCE_DELETE_FAILURE if the clear fails,
                PERSISTENCE_WRITE_FAILURE if the rewrite fails.
        """
        async with self._lock:
            remaining = [r for r in self._records.values() if not r.is_favorite] if only_favorites else []
            try:
                await self._store.clear(self._collection)
            except Exception as exc:
                raise RepositoryError(
                    RepositoryErrorKind.PERSISTENCE_DELETE_FAILURE, f"Failed to clear images: {exc}"
                ) from exc

            if only_favorites:
                try:
                    await self._store.write_many(self._collection, remaining)
                except Exception as exc:
                    LOGGER.error("Rewriting %d image(s) after clear failed: %s", len(remaining), exc)
                    raise RepositoryError(
                        RepositoryErrorKind.PERSISTENCE_WRITE_FAILURE,
                        f"Failed to restore {len(remaining)} image(s) after clear: {exc}",
                    ) from exc

            keep = {r.id for r in remaining}
            self._revoke(r for r in self._records.values() if r.id not in keep)
            self._records = {r.id: r for r in remaining}

    async def toggle_favorite(self, record_id: str) -> Optional[ImageRecord]:
        """Flip the favorite flag of `record_id` and persist the change.

        In "collection" mode the entire collection is written; in "record"
        mode only the toggled record. Returns the updated record, or None when
        the id is unknown.

        Raises:
            RepositoryError: PERSISTENCE_WRITE_FAILURE; memory is not touched.
        """
        async with self._lock:
            updated = [
                r.with_favorite(not r.is_favorite) if r.id == record_id else r for r in self._records.values()
            ]
            changed = [r for r in updated if r.id == record_id]
            payload = updated if self.favorite_write_mode == "collection" else changed
            try:
                await self._store.write_many(self._collection, payload)
            except Exception as exc:
                raise RepositoryError(
                    RepositoryErrorKind.PERSISTENCE_WRITE_FAILURE, f"Failed to update favorite {record_id}: {exc}"
                ) from exc
            self._records = {r.id: r for r in updated}
            return changed[0] if changed else None

    # --------------------------------------------------------------- helpers

    async def _materialize_all(self, candidates: List[ImageCandidate]) -> List[ImageRecord]:
        results = await asyncio.gather(*(self._materialize(c) for c in candidates), return_exceptions=True)
        records = [r for r in results if isinstance(r, ImageRecord)]
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            self._revoke(records)
            raise failures[0]
        return records

    async def _materialize(self, candidate: ImageCandidate) -> ImageRecord:
        if candidate.binary_content is not None:
            data = candidate.binary_content
            mime_type = candidate.mime_type or sniff_mime_type(data, candidate.file_name)
        else:
            mime_type, data = await self._sources.acquire(candidate.source)
        return ImageRecord(
            id=candidate.id,
            file_name=candidate.file_name,
            category_id=candidate.category_id,
            mime_type=mime_type,
            binary_content=data,
            is_favorite=candidate.is_favorite,
            display_handle=self._handles.create(data, mime_type),
        )

    def _skip_duplicate(self, candidate: Candidate) -> None:
        LOGGER.info("Skipping duplicate image %r", candidate.file_name)
        self._notifier.warn(f"Skipped duplicate image: {candidate.file_name}")

    def _revoke(self, records: Iterable[ImageRecord]) -> None:
        for record in records:
            self._handles.revoke(record.display_handle)
