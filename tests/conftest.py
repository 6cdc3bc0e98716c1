"""
Pytest fixtures and test configuration
"""
import base64
import io

import pytest
from PIL import Image

from models.image_record import ImageCandidate, ImageRecord
from services.display_handles import DisplayHandleRegistry
from services.image_repository import ImageRepository
from services.media_source import MediaSourceResolver
from tests.fakes.fake_store import CountingNotifier, FakeStore, RecordingSink


def png_bytes(color=(255, 0, 0), size=(8, 8)) -> bytes:
    """Encode a small solid PNG."""
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def make_record(record_id, file_name=None, category_id="c1", is_favorite=False, content=None) -> ImageRecord:
    return ImageRecord(
        id=record_id,
        file_name=file_name or f"{record_id}.png",
        category_id=category_id,
        mime_type="image/png",
        binary_content=content if content is not None else record_id.encode(),
        is_favorite=is_favorite,
    )


def make_candidate(record_id, file_name=None, category_id="c1", content=None) -> ImageCandidate:
    data = content if content is not None else png_bytes()
    return ImageCandidate(
        id=record_id,
        file_name=file_name or f"{record_id}.png",
        category_id=category_id,
        source="data:image/png;base64," + base64.b64encode(data).decode("ascii"),
    )


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def counts():
    return CountingNotifier()


@pytest.fixture
def registry():
    return DisplayHandleRegistry()


@pytest.fixture
def make_repository(store, sink, counts, registry):
    """Factory building a repository over the shared fakes."""

    def _make(**kwargs):
        return ImageRepository(
            kwargs.pop("store", store),
            registry,
            MediaSourceResolver(registry),
            sink,
            counts,
            **kwargs,
        )

    return _make


@pytest.fixture
def repository(make_repository):
    return make_repository()
