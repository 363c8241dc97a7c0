import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from pixelpipe.core.dependencies import initialize_app_dependencies
from pixelpipe.core.logging import setup_logging
from pixelpipe.server.router import router as image_router
from pixelpipe.settings import Settings

setup_logging()


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage the lifespan of the application resources.

    Builds the dependency container, including the event manager with every
    listener registered, and stores it on ``app.state``. Listener registration
    happens here and nowhere else.

    Args:
        app: The FastAPI application instance.

    Yields:
        None: After startup procedures are complete, allowing the application to run.

    Raises:
        RuntimeError: If critical application dependencies fail to initialize during startup.
    """
    logger.info("Application startup sequence initiated.")

    app_settings = Settings()
    logger.info("Settings loaded.")

    try:
        app.state.dependencies = initialize_app_dependencies(app_settings)
        logger.info("Core application dependencies initialized and stored in app state.")
    except Exception as init_exc:
        logger.critical(f"Fatal error during application dependency initialization: {init_exc}", exc_info=True)
        raise RuntimeError(
            f"Application startup failed due to dependency initialization error: {init_exc}"
        ) from init_exc

    yield  # Application runs here

    logger.info("Application shutdown complete.")


app = FastAPI(
    title="PixelPipe",
    description="An image server with an event driven request pipeline and a derived image cache.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/health", tags=["General"], status_code=200)
async def health_check():
    """Perform a basic health check.

    Returns:
        A dictionary indicating the application status.
    """
    return {"status": "ok"}


app.include_router(image_router)
