from typing import List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from pixelpipe.image.model import Image


class ImageRequest(BaseModel):
    """The request context shared by all listeners of one operation.

    Attributes:
        method: The HTTP method of the inbound request.
        owner_id: The account that owns the image.
        image_identifier: The MD5 hex digest of the original image bytes.
        extension: The requested output extension, if any.
        transformations: Transformation descriptors, in the order they must be applied.
        headers: The inbound request headers.
        body: The raw request body (uploads only).
        image: The prepared image attached by the upload listeners.
    """

    method: str = Field(default="GET")
    owner_id: str = Field()
    image_identifier: str = Field()
    extension: Optional[str] = Field(default=None)
    transformations: List[str] = Field(default_factory=list)
    headers: httpx.Headers = Field(default_factory=httpx.Headers)
    body: bytes = Field(default=b"", repr=False)
    image: Optional[Image] = Field(default=None)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def accept(self) -> str:
        """The raw Accept header value, defaulting to ``*/*``."""
        return self.headers.get("Accept", "*/*")
