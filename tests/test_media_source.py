"""
Tests for source acquisition and session display handles
"""
import base64

import pytest

from models.errors import RepositoryError, RepositoryErrorKind
from services.media_source import MediaSourceResolver, parse_data_url, sniff_mime_type
from tests.conftest import png_bytes


@pytest.fixture
def resolver(registry):
    return MediaSourceResolver(registry)


@pytest.mark.asyncio
async def test_acquire_from_live_handle(resolver, registry):
    handle = registry.create(b"raw", "image/webp")
    assert await resolver.acquire(handle) == ("image/webp", b"raw")


@pytest.mark.asyncio
async def test_revoked_handle_is_unavailable(resolver, registry):
    handle = registry.create(b"raw", "image/webp")
    registry.revoke(handle)

    with pytest.raises(RepositoryError) as excinfo:
        await resolver.acquire(handle)
    assert excinfo.value.kind is RepositoryErrorKind.SOURCE_UNAVAILABLE


@pytest.mark.asyncio
async def test_acquire_from_data_url(resolver):
    url = "data:image/gif;base64," + base64.b64encode(b"GIF89a").decode()
    assert await resolver.acquire(url) == ("image/gif", b"GIF89a")


@pytest.mark.asyncio
async def test_acquire_from_file_sniffs_mime(tmp_path, registry):
    path = tmp_path / "photo.bin"
    path.write_bytes(png_bytes())
    resolver = MediaSourceResolver(registry, base_dir=tmp_path)

    assert await resolver.acquire("photo.bin") == ("image/png", png_bytes())
    assert (await resolver.acquire(path.as_uri()))[0] == "image/png"


@pytest.mark.asyncio
async def test_missing_file_is_unavailable(tmp_path, resolver):
    with pytest.raises(RepositoryError) as excinfo:
        await resolver.acquire(str(tmp_path / "nope.png"))
    assert excinfo.value.kind is RepositoryErrorKind.SOURCE_UNAVAILABLE


def test_parse_data_url_rejects_non_base64():
    with pytest.raises(ValueError):
        parse_data_url("data:text/plain,hello")
    with pytest.raises(ValueError):
        parse_data_url("data:image/png;base64,***")


def test_sniff_falls_back_to_extension():
    assert sniff_mime_type(b"not an image", "notes.jpg") == "image/jpeg"
    assert sniff_mime_type(b"not an image") == "application/octet-stream"


def test_handles_are_unique_per_create(registry):
    first = registry.create(b"x", "image/png")
    second = registry.create(b"x", "image/png")
    assert first != second
    assert first.startswith("/blobs/")
    registry.clear()
    assert registry.resolve(first) is None

