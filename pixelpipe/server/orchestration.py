import logging
import time

from fastapi import Response, status
from fastapi.responses import JSONResponse

from pixelpipe.core.event_manager import EventManager
from pixelpipe.core.events import RESPONSE_SEND
from pixelpipe.core.logging import create_error_response
from pixelpipe.core.request import ImageRequest
from pixelpipe.core.response import ImageResponse
from pixelpipe.exceptions import PixelPipeError

logger = logging.getLogger(__name__)

# Headers Starlette computes itself when rendering the response.
_RENDERED_HEADERS = (b"content-type", b"content-length")


def run_event_flow(
    event_name: str,
    request: ImageRequest,
    event_manager: EventManager,
    dev_mode: bool = False,
) -> Response:
    """
    Dispatches the operation event followed by ``response.send`` and renders the result.

    Dispatch is synchronous and blocking, so callers on the event loop should
    run this in a worker thread.

    Args:
        event_name: The operation event, e.g. "image.get".
        request: The request context for this operation.
        event_manager: The manager holding the registered listeners.
        dev_mode: Whether to include debug details in error bodies.

    Returns:
        The final FastAPI response.
    """
    response = ImageResponse()
    start_time = time.time()
    log_extra = {
        "event_name": event_name,
        "owner_id": request.owner_id,
        "image_identifier": request.image_identifier,
    }

    try:
        event_manager.dispatch(event_name, request, response)
        event_manager.dispatch(RESPONSE_SEND, request, response)
    except PixelPipeError as e:
        logger.warning(
            f"Operation {event_name} failed for {request.owner_id}/{request.image_identifier}: {e}",
            extra={**log_extra, "error_type": e.__class__.__name__, "status_code": e.status_code},
        )
        return JSONResponse(
            status_code=e.status_code,
            content=create_error_response(
                status_code=e.status_code,
                message=str(e.detail or e),
                error_code=e.error_code,
                details={"error_type": e.__class__.__name__, "event_name": event_name},
                include_debug_info=dev_mode,
            ),
        )
    except Exception as e:
        logger.exception(
            f"Unhandled exception during {event_name} for {request.owner_id}/{request.image_identifier}",
            extra={**log_extra, "error": str(e), "error_type": e.__class__.__name__},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=create_error_response(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                message="Internal Server Error",
                details={"error": str(e), "error_type": e.__class__.__name__},
                include_debug_info=dev_mode,
            ),
        )

    logger.info(
        f"Operation {event_name} complete",
        extra={**log_extra, "status_code": response.status_code, "duration_seconds": time.time() - start_time},
    )
    return render_response(request, response)


def render_response(request: ImageRequest, response: ImageResponse) -> Response:
    """Converts the response context into a FastAPI response, keeping repeated headers."""
    image = response.image
    if image is not None:
        body = b"" if request.method == "HEAD" else image.blob
        rendered: Response = Response(content=body, status_code=response.status_code, media_type=image.mime_type)
        if request.method == "HEAD":
            rendered.headers["content-length"] = str(len(image.blob))
    elif response.model is not None:
        rendered = JSONResponse(content=response.model, status_code=response.status_code)
    else:
        logger.error(f"No listener produced a response model for {request.owner_id}/{request.image_identifier}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=create_error_response(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                message="Internal Server Error: No response model",
            ),
        )

    encoding = response.headers.encoding
    for name, value in response.headers.raw:
        if name.lower() in _RENDERED_HEADERS:
            continue
        rendered.headers.append(name.decode(encoding), value.decode(encoding))
    return rendered
