# Dependency Injection Container.

from typing import Optional

from pixelpipe.cache.artifact_cache import ArtifactCache
from pixelpipe.core.event_manager import EventManager
from pixelpipe.image.engine import ImageEngine
from pixelpipe.settings import Settings
from pixelpipe.storage.asset_store import AssetStore


class DependencyContainer:
    """Holds shared dependencies for the application.

    This class is responsible for holding all shared dependencies for the application.
    It is used to inject dependencies into the application and to make it easier to mock dependencies for testing.
    """

    def __init__(
        self,
        settings: Settings,
        event_manager: EventManager,
        asset_store: AssetStore,
        image_engine: ImageEngine,
        cache: Optional[ArtifactCache] = None,
    ) -> None:
        """
        Initializes the container.

        Args:
            settings: Application settings.
            event_manager: The event manager with every listener registered.
            asset_store: Storage holding the original images.
            image_engine: Engine used to decode and transform images.
            cache: The derived artifact cache, or None when caching is disabled.
        """
        self.settings = settings
        self.event_manager = event_manager
        self.asset_store = asset_store
        self.image_engine = image_engine
        self.cache = cache
