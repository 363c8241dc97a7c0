"""
Main entry point for running the PixelPipe image server.
"""

import uvicorn

from pixelpipe.settings import Settings


def main():
    """Run the image server."""
    settings = Settings()
    uvicorn.run(
        "pixelpipe.main:app",
        host=settings.get_app_host(),
        port=settings.get_app_port(),
        reload=settings.get_app_reload(),
        log_level=settings.get_log_level().lower(),
    )


if __name__ == "__main__":
    main()
