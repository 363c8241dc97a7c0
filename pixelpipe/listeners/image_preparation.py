# Validates uploaded images and attaches them to the request.

import hashlib
import logging
from typing import Dict

from pixelpipe.core.events import IMAGE_PUT, Event
from pixelpipe.exceptions import ImageError
from pixelpipe.image.engine import ImageEngine
from pixelpipe.image.model import Image, get_file_extension, supported_mime_type

logger = logging.getLogger(__name__)


class ImagePreparationListener:
    """Turns the raw body of an upload into an Image on the request."""

    def __init__(self, engine: ImageEngine) -> None:
        self.engine = engine

    @staticmethod
    def get_subscribed_events() -> Dict[str, Dict[str, int]]:
        return {IMAGE_PUT: {"prepare_image": 50}}

    def prepare_image(self, event: Event) -> None:
        """
        Validates the upload and sets ``request.image``.

        Raises:
            ImageError: If no image is attached, the identifier does not match
                the MD5 of the body, or the body is not a supported, readable image.
        """
        request = event.request
        blob = request.body

        if not blob:
            raise ImageError("No image attached", status_code=400, error_code=ImageError.NO_IMAGE_ATTACHED)

        actual_hash = hashlib.md5(blob).hexdigest()
        if actual_hash != request.image_identifier:
            logger.info(f"Hash mismatch for upload {request.owner_id}/{request.image_identifier}: got {actual_hash}")
            raise ImageError("Hash mismatch", status_code=400, error_code=ImageError.HASH_MISMATCH)

        metadata = self.engine.decode_metadata(blob)
        if not supported_mime_type(metadata.mime_type):
            raise ImageError(
                f"Unsupported image type: {metadata.mime_type}",
                status_code=415,
                error_code=ImageError.UNSUPPORTED_MIMETYPE,
            )

        request.image = Image(
            blob=blob,
            mime_type=metadata.mime_type,
            extension=get_file_extension(metadata.mime_type),
            width=metadata.width,
            height=metadata.height,
        )
