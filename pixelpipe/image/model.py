from typing import Dict, Optional

from pydantic import BaseModel, Field

# Supported mime types and the file extension each one is served with.
MIME_TYPES: Dict[str, str] = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
}

# Pillow format names for each extension.
PILLOW_FORMATS: Dict[str, str] = {
    "png": "PNG",
    "jpg": "JPEG",
    "gif": "GIF",
}


def supported_mime_type(mime_type: str) -> bool:
    return mime_type in MIME_TYPES


def get_file_extension(mime_type: str) -> Optional[str]:
    """Returns the file extension for a supported mime type, or None."""
    return MIME_TYPES.get(mime_type)


def get_mime_type(extension: str) -> Optional[str]:
    """Returns the mime type served for an extension, or None if unsupported."""
    for mime_type, ext in MIME_TYPES.items():
        if ext == extension:
            return mime_type
    return None


class Image(BaseModel):
    """An image travelling through the pipeline, original or derived."""

    blob: bytes = Field(repr=False)
    mime_type: str = Field()
    extension: str = Field()
    width: int = Field(ge=0)
    height: int = Field(ge=0)

    @property
    def filesize(self) -> int:
        return len(self.blob)
