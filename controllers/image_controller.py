from fastapi import HTTPException, Request, UploadFile
from fastapi.responses import Response
from typing import Any, Dict, List, Optional
from uuid import uuid4

from models.errors import RepositoryError, RepositoryErrorKind
from models.image_record import ALL_CATEGORIES, ImageCandidate, ImageRecord
from services import filter_engine
from services.category_counts import CategoryCountTracker
from services.display_handles import DisplayHandleRegistry
from services.image_repository import ImageRepository
from services.notifications import LoggingNotificationSink
from services.thumbnail_generator import ThumbnailGenerator


def _repository(request: Request) -> ImageRepository:
    """Retrieve the shared image repository from the app state."""
    repository = getattr(request.app.state, "image_repository", None)
    if repository is None:
        raise HTTPException(status_code=500, detail="Image repository not initialized.")
    return repository


def _as_http_error(exc: RepositoryError) -> HTTPException:
    status = 400 if exc.kind is RepositoryErrorKind.SOURCE_UNAVAILABLE else 500
    return HTTPException(status_code=status, detail={"kind": exc.kind.value, "message": exc.message})


def serialize_record(record: ImageRecord) -> Dict[str, Any]:
    """Public view of a record; the binary content is served separately."""
    return {
        "id": record.id,
        "file_name": record.file_name,
        "category_id": record.category_id,
        "mime_type": record.mime_type,
        "size": len(record.binary_content),
        "is_favorite": record.is_favorite,
        "display_handle": record.display_handle,
    }


def _require_record(repository: ImageRepository, image_id: str) -> ImageRecord:
    record = repository.get(image_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Image not found")
    return record


async def list_images(request: Request, category_id: str = ALL_CATEGORIES, query: Optional[str] = None) -> Dict[str, Any]:
    """Return the category view, narrowed by `query` or the stored search query.

    Args:
        request: FastAPI Request (to access app.state.image_repository).
        category_id: Category to show; "all" disables the category filter.
        query: Optional search query used for this request only; the stored
            query (set through PUT /search) is left unchanged.
    """
    repository = _repository(request)
    if query is None:
        query = repository.search_query
        records = repository.query_filtered(category_id)
    else:
        records = filter_engine.filtered(repository.records, category_id, query)
    return {
        "category_id": category_id,
        "search_query": query,
        "busy": repository.busy,
        "images": [serialize_record(r) for r in records],
    }


async def list_favorites(request: Request) -> Dict[str, Any]:
    repository = _repository(request)
    return {"images": [serialize_record(r) for r in repository.query_favorites()]}


async def upload_images(request: Request, files: List[UploadFile], category_id: str) -> Dict[str, Any]:
    """Register uploads as session blobs and add them to the collection.

    Args:
        request: FastAPI Request object (used to access app.state for shared clients).
        files: Uploaded image files.
        category_id: Category assigned to every uploaded image.

    Returns:
        A dict with the added records and the number of skipped duplicates.
    """
    if not files:
        raise HTTPException(status_code=400, detail="At least one image is required.")
    if category_id == ALL_CATEGORIES:
        raise HTTPException(status_code=400, detail="'all' is not a valid category for new images.")

    repository = _repository(request)
    registry: DisplayHandleRegistry = request.app.state.display_handles

    # Each upload becomes a session blob the repository acquires like any other source.
    upload_handles: List[str] = []
    candidates: List[ImageCandidate] = []
    try:
        for upload in files:
            data = await upload.read()
            if not data:
                raise HTTPException(status_code=400, detail=f"Uploaded image {upload.filename!r} is empty.")
            handle = registry.create(data, upload.content_type or "application/octet-stream")
            upload_handles.append(handle)
            candidates.append(
                ImageCandidate(
                    id=uuid4().hex,
                    file_name=upload.filename or "uploaded_image",
                    category_id=category_id,
                    source=handle,
                )
            )

        added = await repository.add_many(candidates)
    except RepositoryError as exc:
        raise _as_http_error(exc) from exc
    finally:
        for handle in upload_handles:
            registry.revoke(handle)

    return {
        "added": [serialize_record(r) for r in added],
        "skipped": len(candidates) - len(added),
    }


async def delete_image(request: Request, image_id: str) -> Dict[str, Any]:
    repository = _repository(request)
    _require_record(repository, image_id)
    try:
        await repository.delete_one(image_id)
    except RepositoryError as exc:
        raise _as_http_error(exc) from exc
    return {"deleted": [image_id]}


async def delete_images(request: Request, image_ids: List[str]) -> Dict[str, Any]:
    repository = _repository(request)
    try:
        await repository.delete_many(image_ids)
    except RepositoryError as exc:
        raise _as_http_error(exc) from exc
    return {"deleted": list(image_ids)}


async def clear_images(request: Request, only_favorites: bool) -> Dict[str, Any]:
    repository = _repository(request)
    try:
        await repository.clear_all(only_favorites)
    except RepositoryError as exc:
        raise _as_http_error(exc) from exc
    return {"remaining": len(repository.records)}


async def toggle_favorite(request: Request, image_id: str) -> Dict[str, Any]:
    repository = _repository(request)
    _require_record(repository, image_id)
    try:
        record = await repository.toggle_favorite(image_id)
    except RepositoryError as exc:
        raise _as_http_error(exc) from exc
    if record is None:
        raise HTTPException(status_code=404, detail="Image not found")
    return serialize_record(record)


async def get_content(request: Request, image_id: str) -> Response:
    """Return the stored bytes of an image with its MIME type."""
    record = _require_record(_repository(request), image_id)
    return Response(content=record.binary_content, media_type=record.mime_type)


async def get_thumbnail(request: Request, image_id: str) -> Response:
    """Controller to render a PNG thumbnail of a stored image.

    Raises:
        HTTPException(404) if the image is not found.
        HTTPException(415) if its bytes are not a supported image.
    """
    record = _require_record(_repository(request), image_id)
    thumb_gen: ThumbnailGenerator = request.app.state.thumbnail_generator
    try:
        png_bytes = thumb_gen.create_thumbnail(record.binary_content)
    except ValueError as exc:
        raise HTTPException(status_code=415, detail=str(exc)) from exc
    return Response(content=png_bytes, media_type="image/png")


async def get_blob(request: Request, token: str) -> Response:
    """Serve the bytes behind a live session display handle."""
    registry: DisplayHandleRegistry = request.app.state.display_handles
    resolved = registry.resolve(f"/blobs/{token}")
    if resolved is None:
        raise HTTPException(status_code=404, detail="Handle is not live in this session")
    mime_type, data = resolved
    return Response(content=data, media_type=mime_type)


async def set_search_query(request: Request, query: str) -> Dict[str, Any]:
    repository = _repository(request)
    repository.set_search_query(query)
    return {"search_query": repository.search_query}


async def category_counts(request: Request) -> Dict[str, int]:
    tracker: CategoryCountTracker = request.app.state.category_counts
    tracker.update_counts()
    return tracker.counts


async def notifications(request: Request, drain: bool = False) -> Dict[str, Any]:
    sink: LoggingNotificationSink = request.app.state.notifications
    items = sink.drain() if drain else sink.recent()
    return {
        "notifications": [
            {"level": n.level, "text": n.text, "created_at": n.created_at} for n in items
        ]
    }
