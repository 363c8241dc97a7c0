# Reads, writes and deletes originals in the asset store.

import logging
from typing import Dict

from pixelpipe.core.events import IMAGE_DELETE, IMAGE_GET, IMAGE_HEAD, IMAGE_PUT, Event
from pixelpipe.exceptions import AssetNotFoundError, ImageError
from pixelpipe.image.engine import ImageEngine
from pixelpipe.image.model import Image, get_file_extension
from pixelpipe.listeners.headers import (
    HEIGHT_HEADER,
    ORIGINAL_EXTENSION_HEADER,
    ORIGINAL_HEIGHT_HEADER,
    ORIGINAL_MIME_TYPE_HEADER,
    ORIGINAL_WIDTH_HEADER,
    WIDTH_HEADER,
)
from pixelpipe.storage.asset_store import AssetStore

logger = logging.getLogger(__name__)


class StorageOperationsListener:
    """Connects the image events to the asset store.

    Registered at priority 0 so that listeners able to answer a request
    without touching the store, such as the transformation cache, run first.
    """

    def __init__(self, asset_store: AssetStore, engine: ImageEngine) -> None:
        self.asset_store = asset_store
        self.engine = engine

    @staticmethod
    def get_subscribed_events() -> Dict[str, Dict[str, int]]:
        return {
            IMAGE_GET: {"load_image": 0},
            IMAGE_HEAD: {"load_image": 0},
            IMAGE_PUT: {"insert_image": 0},
            IMAGE_DELETE: {"delete_image": 0},
        }

    def load_image(self, event: Event) -> None:
        """Loads the original, applies the requested transformations and sets the response image."""
        request = event.request
        response = event.response

        blob = self.asset_store.fetch(request.owner_id, request.image_identifier)
        if blob is None:
            raise AssetNotFoundError("Image not found")

        original = self.engine.decode_metadata(blob)
        derived_blob = self.engine.transform(blob, request.transformations, request.extension)
        derived = original if derived_blob == blob else self.engine.decode_metadata(derived_blob)

        image = Image(
            blob=derived_blob,
            mime_type=derived.mime_type,
            extension=get_file_extension(derived.mime_type) or request.extension or "",
            width=derived.width,
            height=derived.height,
        )

        headers = response.headers
        headers["Content-Type"] = image.mime_type
        headers[WIDTH_HEADER] = str(image.width)
        headers[HEIGHT_HEADER] = str(image.height)
        headers[ORIGINAL_WIDTH_HEADER] = str(original.width)
        headers[ORIGINAL_HEIGHT_HEADER] = str(original.height)
        headers[ORIGINAL_MIME_TYPE_HEADER] = original.mime_type
        headers[ORIGINAL_EXTENSION_HEADER] = get_file_extension(original.mime_type) or ""

        response.model = image
        response.status_code = 200

    def insert_image(self, event: Event) -> None:
        request = event.request
        response = event.response
        image = request.image

        if image is None:
            raise ImageError("No image attached", status_code=400, error_code=ImageError.NO_IMAGE_ATTACHED)

        self.asset_store.store(request.owner_id, request.image_identifier, image.blob)

        response.status_code = 201
        response.model = {
            "imageIdentifier": request.image_identifier,
            "width": image.width,
            "height": image.height,
            "extension": image.extension,
        }

    def delete_image(self, event: Event) -> None:
        request = event.request
        response = event.response

        if not self.asset_store.delete(request.owner_id, request.image_identifier):
            raise AssetNotFoundError("Image not found")

        response.status_code = 200
        response.model = {"imageIdentifier": request.image_identifier}
