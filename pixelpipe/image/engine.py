"""Image processing engine used by the pipeline.

The pipeline only needs two capabilities from an engine: reading basic
metadata out of an encoded image, and producing a derived image from an
original plus a transformation chain. Transformation algorithms themselves
are plugged into ``PillowImageEngine`` by name.
"""

import abc
import io
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple

from PIL import Image as PILImage
from PIL import UnidentifiedImageError

from pixelpipe.exceptions import ImageError, TransformationError
from pixelpipe.image.model import PILLOW_FORMATS

logger = logging.getLogger(__name__)

# A transformation receives the decoded image and its parameters and returns the new image.
TransformationFunc = Callable[[PILImage.Image, Dict[str, str]], PILImage.Image]


@dataclass(frozen=True)
class ImageMetadata:
    width: int
    height: int
    mime_type: str


def parse_transformation(descriptor: str) -> Tuple[str, Dict[str, str]]:
    """Splits a descriptor such as ``border:width=3,color=fff`` into name and parameters.

    Raises:
        TransformationError: If the name is empty or a parameter has no value.
    """
    name, _, raw_params = descriptor.partition(":")
    name = name.strip()
    if not name:
        raise TransformationError(f"Invalid transformation: '{descriptor}'")

    params: Dict[str, str] = {}
    if raw_params:
        for pair in raw_params.split(","):
            key, sep, value = pair.partition("=")
            if not sep or not key.strip():
                raise TransformationError(f"Invalid parameter '{pair}' in transformation '{name}'")
            params[key.strip()] = value.strip()
    return name, params


class ImageEngine(abc.ABC):
    """Interface to the component that decodes and transforms images."""

    @abc.abstractmethod
    def decode_metadata(self, blob: bytes) -> ImageMetadata:
        """Returns width, height and mime type of an encoded image.

        Raises:
            ImageError: If the bytes are not a readable image.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def transform(self, blob: bytes, transformations: Sequence[str], extension: Optional[str] = None) -> bytes:
        """Applies the transformations in order and encodes the result.

        Args:
            blob: The encoded source image.
            transformations: Transformation descriptors, applied first to last.
            extension: Output format. None keeps the source format.

        Raises:
            TransformationError: If a transformation is unknown or fails.
        """
        raise NotImplementedError


class PillowImageEngine(ImageEngine):
    """Engine backed by Pillow with a registry of named transformations."""

    def __init__(self, transformations: Optional[Dict[str, TransformationFunc]] = None) -> None:
        self._transformations: Dict[str, TransformationFunc] = dict(transformations or {})

    def register_transformation(self, name: str, func: TransformationFunc) -> None:
        if not name:
            raise ValueError("Transformation name cannot be empty.")
        self._transformations[name] = func

    @property
    def transformation_names(self) -> Iterable[str]:
        return tuple(self._transformations)

    def decode_metadata(self, blob: bytes) -> ImageMetadata:
        try:
            with PILImage.open(io.BytesIO(blob)) as img:
                image_format = img.format
                width, height = img.size
                img.load()
        except UnidentifiedImageError as e:
            raise ImageError(
                "Unsupported image type", status_code=415, error_code=ImageError.UNSUPPORTED_MIMETYPE
            ) from e
        except (OSError, ValueError) as e:
            raise ImageError("Broken image", status_code=415, error_code=ImageError.BROKEN_IMAGE) from e

        mime_type = PILImage.MIME.get(image_format or "", "application/octet-stream")
        return ImageMetadata(width=width, height=height, mime_type=mime_type)

    def transform(self, blob: bytes, transformations: Sequence[str], extension: Optional[str] = None) -> bytes:
        parsed = [parse_transformation(t) for t in transformations]
        unknown = [name for name, _ in parsed if name not in self._transformations]
        if unknown:
            raise TransformationError(f"Unknown transformation(s): {', '.join(unknown)}")

        try:
            with PILImage.open(io.BytesIO(blob)) as source:
                source_format = source.format
                if not parsed and (extension is None or PILLOW_FORMATS.get(extension) == source_format):
                    return blob

                img: PILImage.Image = source.copy()
        except (OSError, ValueError) as e:
            raise TransformationError(f"Could not decode source image: {e}") from e

        for name, params in parsed:
            logger.debug(f"Applying transformation '{name}' with {params}")
            try:
                img = self._transformations[name](img, params)
            except TransformationError:
                raise
            except Exception as e:
                raise TransformationError(f"Transformation '{name}' failed: {e}") from e

        output_format = PILLOW_FORMATS.get(extension) if extension else source_format
        if output_format is None:
            raise TransformationError(f"Unsupported output extension: {extension}")
        if output_format == "JPEG" and img.mode not in ("RGB", "L"):
            img = img.convert("RGB")

        buffer = io.BytesIO()
        try:
            img.save(buffer, format=output_format)
        except (OSError, ValueError) as e:
            raise TransformationError(f"Could not encode image as {output_format}: {e}") from e
        return buffer.getvalue()
