from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from pixelpipe.image.model import Image


class ImageResponse(BaseModel):
    """The response context listeners build up while handling an operation.

    ``headers`` is an ordered multimap: repeated headers keep every value in
    the order they were added.
    """

    status_code: int = Field(default=200)
    headers: httpx.Headers = Field(default_factory=httpx.Headers)
    model: Optional[Any] = Field(default=None)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def image(self) -> Optional[Image]:
        """The response model when it is an image, otherwise None."""
        return self.model if isinstance(self.model, Image) else None
