"""Image transformation cache listener.

Stores transformed images on disk so each transformation only has to be
generated once, and drops every cached variant of an image when the original
is deleted.
"""

import logging
from typing import Dict, Optional

from pixelpipe.cache.artifact_cache import ArtifactCache
from pixelpipe.cache.fingerprint import FingerprintInput
from pixelpipe.cache.record import CacheEntry
from pixelpipe.core.events import IMAGE_DELETE, IMAGE_GET, RESPONSE_SEND, Event
from pixelpipe.image.model import Image, get_file_extension
from pixelpipe.listeners.headers import CACHE_HEADER, HEIGHT_HEADER, WIDTH_HEADER

logger = logging.getLogger(__name__)


class ImageTransformationCacheListener:
    """Serves, stores and invalidates cached derived images."""

    def __init__(self, cache: ArtifactCache) -> None:
        self.cache = cache

    @staticmethod
    def get_subscribed_events() -> Dict[str, Dict[str, int]]:
        return {
            # Look for images in the cache before transformations occur
            IMAGE_GET: {"load_from_cache": 20},
            # Store images in the cache before they are sent to the client
            RESPONSE_SEND: {"store_in_cache": 10},
            # Remove from the cache when an image is deleted
            IMAGE_DELETE: {"delete_from_cache": 10},
        }

    def load_from_cache(self, event: Event) -> None:
        request = event.request
        response = event.response

        entry = self.cache.lookup(FingerprintInput.from_request(request))
        if entry is not None:
            image = self._image_from_entry(entry)
            if image is not None:
                headers = entry.to_headers()
                headers[CACHE_HEADER] = "Hit"

                response.headers = headers
                response.model = image
                response.status_code = 200

                logger.debug(f"Cache hit for {request.owner_id}/{request.image_identifier}")
                event.stop_propagation()
                return

        response.headers[CACHE_HEADER] = "Miss"

    def store_in_cache(self, event: Event) -> None:
        request = event.request
        response = event.response
        image = response.image

        # Only successful image responses to GET requests are cached
        if request.method != "GET" or image is None or response.status_code != 200:
            return
        if response.headers.get(CACHE_HEADER) == "Hit":
            return

        headers = response.headers.copy()
        if CACHE_HEADER in headers:
            del headers[CACHE_HEADER]

        self.cache.store(FingerprintInput.from_request(request), CacheEntry.from_headers(image.blob, headers))

    def delete_from_cache(self, event: Event) -> None:
        request = event.request
        self.cache.invalidate(request.owner_id, request.image_identifier)

    @staticmethod
    def _image_from_entry(entry: CacheEntry) -> Optional[Image]:
        headers = entry.to_headers()
        mime_type = headers.get("Content-Type")
        extension = get_file_extension(mime_type) if mime_type else None
        if extension is None:
            logger.warning(f"Ignoring cache entry with unusable Content-Type {mime_type!r}")
            return None
        try:
            width = int(headers.get(WIDTH_HEADER, "0"))
            height = int(headers.get(HEIGHT_HEADER, "0"))
        except ValueError:
            return None
        return Image(blob=entry.payload, mime_type=mime_type, extension=extension, width=width, height=height)
