import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from dal.image_dal import ImageDAL
from routes.image_route import router as image_router
from services.category_counts import CategoryCountTracker
from services.display_handles import DisplayHandleRegistry
from services.duplicate_detector import policy_from_name
from services.image_repository import ImageRepository
from services.media_source import MediaSourceResolver
from services.notifications import LoggingNotificationSink
from services.thumbnail_generator import ThumbnailGenerator
from utils.database_init import AsyncDatabaseInitializer
from utils.logging_config import setup_logging
from utils.settings import Settings

LOGGER = logging.getLogger(__name__)


def build_repository(app: FastAPI, settings: Settings) -> ImageRepository:
    """
    Wire the repository and its collaborators and attach them to `app.state`.
    """
    db_initializer = AsyncDatabaseInitializer(settings.database_dir)
    registry = DisplayHandleRegistry()
    notifications = LoggingNotificationSink(history=settings.notification_history)
    counts = CategoryCountTracker(lambda: repository.records)

    repository = ImageRepository(
        ImageDAL(db_initializer),
        registry,
        MediaSourceResolver(registry, base_dir=settings.source_dir),
        notifications,
        counts,
        policy=policy_from_name(settings.duplicate_policy),
        favorite_write_mode=settings.favorite_write_mode,
    )

    app.state.db_initializer = db_initializer
    app.state.display_handles = registry
    app.state.notifications = notifications
    app.state.category_counts = counts
    app.state.thumbnail_generator = ThumbnailGenerator(
        max_size=(settings.thumbnail_size, settings.thumbnail_size)
    )
    app.state.image_repository = repository
    return repository


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to build the image repository and load the persisted
    collection into memory before serving requests.
    """
    settings: Settings = app.state.settings
    repository = build_repository(app, settings)

    # Failures are reported as notifications; the app still starts with an empty collection.
    if not await repository.load():
        LOGGER.warning("Starting with an empty collection; see /notifications")

    try:
        yield
    finally:
        app.state.display_handles.clear()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check reporting repository presence and busy state.
        """
        repository = getattr(request.app.state, "image_repository", None)
        return {
            "ok": True,
            "repository_ready": repository is not None,
            "busy": bool(repository and repository.busy),
            "images": len(repository.records) if repository else 0,
        }

    app.include_router(image_router)

    return app


app = create_app()
