from typing import Callable, Optional

import httpx
import pytest

from pixelpipe.cache.artifact_cache import ArtifactCache
from pixelpipe.core.request import ImageRequest
from pixelpipe.core.response import ImageResponse
from pixelpipe.image.engine import PillowImageEngine
from pixelpipe.storage.asset_store import FilesystemAssetStore
from tests.helpers import crop, flip, make_image_bytes, md5


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes()


@pytest.fixture
def png_identifier(png_bytes: bytes) -> str:
    return md5(png_bytes)


@pytest.fixture
def cache(tmp_path) -> ArtifactCache:
    return ArtifactCache(tmp_path / "cache")


@pytest.fixture
def asset_store(tmp_path) -> FilesystemAssetStore:
    return FilesystemAssetStore(tmp_path / "assets")


@pytest.fixture
def engine() -> PillowImageEngine:
    """A Pillow engine with a couple of simple transformations registered."""
    return PillowImageEngine(transformations={"flip": flip, "crop": crop})


@pytest.fixture
def make_request() -> Callable[..., ImageRequest]:
    """Factory for request contexts with sensible defaults."""

    def _make(
        owner_id: str = "abc",
        image_identifier: str = "d41d8cd98f00b204e9800998ecf8427e",
        method: str = "GET",
        extension: Optional[str] = None,
        transformations: Optional[list] = None,
        accept: Optional[str] = None,
        body: bytes = b"",
    ) -> ImageRequest:
        headers = httpx.Headers({"Accept": accept} if accept is not None else {})
        return ImageRequest(
            method=method,
            owner_id=owner_id,
            image_identifier=image_identifier,
            extension=extension,
            transformations=transformations or [],
            headers=headers,
            body=body,
        )

    return _make


@pytest.fixture
def image_response() -> ImageResponse:
    return ImageResponse()
