import hashlib
import io
import os

from PIL import Image as PILImage
from PIL import ImageOps


def make_image_bytes(width: int = 4, height: int = 3, color: str = "red", image_format: str = "PNG") -> bytes:
    """Encodes a solid-colour image."""
    buffer = io.BytesIO()
    PILImage.new("RGB", (width, height), color).save(buffer, format=image_format)
    return buffer.getvalue()


def md5(blob: bytes) -> str:
    return hashlib.md5(blob).hexdigest()


def flip(img, params):
    return ImageOps.flip(img)


def crop(img, params):
    return img.crop((0, 0, int(params.get("width", img.width)), int(params.get("height", img.height))))


def make_noisy_image_bytes(width: int = 32, height: int = 32, image_format: str = "PNG") -> bytes:
    """Encodes random pixels, which compress poorly and give a large pixel data chunk."""
    buffer = io.BytesIO()
    PILImage.frombytes("RGB", (width, height), os.urandom(width * height * 3)).save(buffer, format=image_format)
    return buffer.getvalue()
