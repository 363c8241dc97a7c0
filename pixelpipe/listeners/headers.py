# Response header names set by the pipeline listeners.

CACHE_HEADER = "X-PixelPipe-TransformationCache"
WIDTH_HEADER = "X-PixelPipe-Width"
HEIGHT_HEADER = "X-PixelPipe-Height"
ORIGINAL_WIDTH_HEADER = "X-PixelPipe-OriginalWidth"
ORIGINAL_HEIGHT_HEADER = "X-PixelPipe-OriginalHeight"
ORIGINAL_MIME_TYPE_HEADER = "X-PixelPipe-OriginalMimeType"
ORIGINAL_EXTENSION_HEADER = "X-PixelPipe-OriginalExtension"
