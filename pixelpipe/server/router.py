import logging
from typing import List, Optional, Tuple

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.concurrency import run_in_threadpool

from pixelpipe.cache.fingerprint import validate_identifier
from pixelpipe.core.dependencies import get_dependencies
from pixelpipe.core.dependency_container import DependencyContainer
from pixelpipe.core.events import IMAGE_DELETE, IMAGE_GET, IMAGE_HEAD, IMAGE_PUT
from pixelpipe.core.request import ImageRequest
from pixelpipe.image.model import get_mime_type
from pixelpipe.server.orchestration import run_event_flow

logger = logging.getLogger(__name__)

router = APIRouter()

IMAGE_PATH = "/users/{owner_id}/images/{image}"

# Query parameter names carrying the transformation chain.
TRANSFORMATION_PARAMS = ("t", "t[]")


def _parse_image_path(owner_id: str, image: str) -> Tuple[str, Optional[str]]:
    """Splits ``<identifier>[.<extension>]`` and validates both ids."""
    identifier, sep, extension = image.partition(".")
    if sep and get_mime_type(extension) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unsupported extension: {extension}")
    try:
        validate_identifier("owner_id", owner_id)
        validate_identifier("image_identifier", identifier)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return identifier, extension or None


def _get_transformations(request: Request) -> List[str]:
    # Keep the order the client listed them in, transformations do not commute
    return [value for key, value in request.query_params.multi_items() if key in TRANSFORMATION_PARAMS]


def _build_image_request(request: Request, owner_id: str, image: str, body: bytes = b"") -> ImageRequest:
    identifier, extension = _parse_image_path(owner_id, image)
    return ImageRequest(
        method=request.method,
        owner_id=owner_id,
        image_identifier=identifier,
        extension=extension,
        transformations=_get_transformations(request),
        headers=httpx.Headers(request.headers.raw),
        body=body,
    )


async def _handle(event_name: str, image_request: ImageRequest, dependencies: DependencyContainer) -> Response:
    logger.info(
        "Image request received",
        extra={
            "event_name": event_name,
            "owner_id": image_request.owner_id,
            "image_identifier": image_request.image_identifier,
            "extension": image_request.extension,
            "transformations": len(image_request.transformations),
        },
    )
    return await run_in_threadpool(
        run_event_flow,
        event_name,
        image_request,
        dependencies.event_manager,
        dependencies.settings.dev_mode(),
    )


@router.get(IMAGE_PATH)
async def get_image(
    owner_id: str,
    image: str,
    request: Request,
    dependencies: DependencyContainer = Depends(get_dependencies),
):
    """
    Fetch an image, optionally transformed and converted.

    The path segment is ``<identifier>[.<extension>]``. Transformations are
    read from repeated ``t`` (or ``t[]``) query parameters and applied in order.
    """
    return await _handle(IMAGE_GET, _build_image_request(request, owner_id, image), dependencies)


@router.head(IMAGE_PATH)
async def head_image(
    owner_id: str,
    image: str,
    request: Request,
    dependencies: DependencyContainer = Depends(get_dependencies),
):
    """Same as GET without the body."""
    return await _handle(IMAGE_HEAD, _build_image_request(request, owner_id, image), dependencies)


@router.put(IMAGE_PATH, status_code=status.HTTP_201_CREATED)
async def put_image(
    owner_id: str,
    image: str,
    request: Request,
    dependencies: DependencyContainer = Depends(get_dependencies),
):
    """Store an original image. The identifier must be the MD5 of the body."""
    body = await request.body()
    return await _handle(IMAGE_PUT, _build_image_request(request, owner_id, image, body), dependencies)


@router.delete(IMAGE_PATH)
async def delete_image(
    owner_id: str,
    image: str,
    request: Request,
    dependencies: DependencyContainer = Depends(get_dependencies),
):
    """Delete an original image and every cached variant of it."""
    return await _handle(IMAGE_DELETE, _build_image_request(request, owner_id, image), dependencies)
