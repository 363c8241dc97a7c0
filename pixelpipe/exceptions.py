# PixelPipe exceptions


class PixelPipeError(Exception):
    """Base exception for all errors surfaced by the image pipeline."""

    status_code: int = 500

    def __init__(self, *args, status_code: int | None = None, detail: str | None = None, error_code: int | None = None):
        super().__init__(*args)
        if status_code is not None:
            self.status_code = status_code
        # Use the first arg as detail if detail kwarg is not provided and args exist
        self.detail = detail or (args[0] if args else None)
        self.error_code = error_code


class ImageError(PixelPipeError):
    """Exception raised when an uploaded image is rejected."""

    status_code = 400

    NO_IMAGE_ATTACHED = 201
    HASH_MISMATCH = 202
    UNSUPPORTED_MIMETYPE = 203
    BROKEN_IMAGE = 204


class TransformationError(PixelPipeError):
    """Exception raised when a transformation chain cannot be applied."""

    status_code = 400


class AssetNotFoundError(PixelPipeError):
    """Exception raised when the original image does not exist in the asset store."""

    status_code = 404


class ListenerRegistrationError(ValueError, PixelPipeError):
    """Exception raised for invalid listener registrations."""

    # Inherit from ValueError for semantic meaning (bad value/config)
    def __init__(self, *args, detail: str | None = None):
        PixelPipeError.__init__(self, *args, detail=detail)


class CachePathNotWritableError(ValueError, PixelPipeError):
    """Exception raised when the cache root cannot be written by the server."""

    def __init__(self, *args, detail: str | None = None):
        PixelPipeError.__init__(self, *args, status_code=500, detail=detail)


class InvalidCacheRecordError(PixelPipeError):
    """Exception raised when a stored cache record is structurally invalid."""

    pass
