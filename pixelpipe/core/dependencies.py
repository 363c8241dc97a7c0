import logging
from typing import Optional

from fastapi import HTTPException, Request, status

from pixelpipe.cache.artifact_cache import ArtifactCache
from pixelpipe.core.dependency_container import DependencyContainer
from pixelpipe.core.event_manager import EventManager
from pixelpipe.exceptions import CachePathNotWritableError
from pixelpipe.image.engine import ImageEngine, PillowImageEngine
from pixelpipe.listeners.image_preparation import ImagePreparationListener
from pixelpipe.listeners.storage_operations import StorageOperationsListener
from pixelpipe.listeners.transformation_cache import ImageTransformationCacheListener
from pixelpipe.settings import Settings
from pixelpipe.storage.asset_store import AssetStore, FilesystemAssetStore

logger = logging.getLogger(__name__)

# --- Dependency Providers --- #


def get_dependencies(request: Request) -> DependencyContainer:
    """Dependency to retrieve the DependencyContainer from application state."""
    dependencies: DependencyContainer | None = getattr(request.app.state, "dependencies", None)
    if dependencies is None:
        logger.critical(
            "DependencyContainer not found in application state. "
            "This indicates a critical setup error in the application lifespan."
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error: Application dependencies not initialized.",
        )
    return dependencies


def build_event_manager(
    asset_store: AssetStore,
    image_engine: ImageEngine,
    cache: Optional[ArtifactCache] = None,
) -> EventManager:
    """Creates an EventManager with the standard listeners subscribed."""
    event_manager = EventManager()
    event_manager.add_subscriber(ImagePreparationListener(image_engine))
    event_manager.add_subscriber(StorageOperationsListener(asset_store, image_engine))
    if cache is not None:
        event_manager.add_subscriber(ImageTransformationCacheListener(cache))
    logger.info(f"Event manager initialized with {event_manager.listener_count} listener registration(s).")
    return event_manager


def initialize_app_dependencies(app_settings: Settings) -> DependencyContainer:
    """Initialize and configure core application dependencies.

    Args:
        app_settings: The application settings instance.

    Returns:
        A DependencyContainer instance populated with initialized dependencies.

    Raises:
        RuntimeError: If the cache directory cannot be used.
    """
    logger.info("Initializing core application dependencies...")

    image_engine = PillowImageEngine()
    asset_store = FilesystemAssetStore(app_settings.get_asset_store_path())
    logger.info(f"Asset store rooted at {asset_store.root}.")

    cache: Optional[ArtifactCache] = None
    if app_settings.get_cache_enabled():
        try:
            cache = ArtifactCache(app_settings.get_cache_path())
        except CachePathNotWritableError as e:
            logger.critical(f"Failed to initialize transformation cache: {e}")
            raise RuntimeError(f"Failed to initialize transformation cache: {e}") from e
        logger.info(f"Transformation cache rooted at {cache.path}.")
    else:
        logger.info("Transformation cache disabled.")

    return DependencyContainer(
        settings=app_settings,
        event_manager=build_event_manager(asset_store, image_engine, cache),
        asset_store=asset_store,
        image_engine=image_engine,
        cache=cache,
    )
