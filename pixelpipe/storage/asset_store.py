"""Storage for original images.

Originals are addressed by owner and image identifier. The filesystem store
uses the same sharded layout as the artifact cache.
"""

import abc
import contextlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from pixelpipe.cache.artifact_cache import shard
from pixelpipe.cache.fingerprint import validate_identifier

logger = logging.getLogger(__name__)


class AssetStore(abc.ABC):
    """Interface to the backend holding original images."""

    @abc.abstractmethod
    def fetch(self, owner_id: str, image_identifier: str) -> Optional[bytes]:
        """Returns the original bytes, or None if the image does not exist."""
        raise NotImplementedError

    @abc.abstractmethod
    def store(self, owner_id: str, image_identifier: str, blob: bytes) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def delete(self, owner_id: str, image_identifier: str) -> bool:
        """Deletes an original. Returns False if there was nothing to delete."""
        raise NotImplementedError

    def exists(self, owner_id: str, image_identifier: str) -> bool:
        return self.fetch(owner_id, image_identifier) is not None


class FilesystemAssetStore(AssetStore):
    """Keeps originals as plain files below a root directory."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    def get_image_path(self, owner_id: str, image_identifier: str) -> Path:
        validate_identifier("owner_id", owner_id)
        validate_identifier("image_identifier", image_identifier)
        return self.root.joinpath(*shard(owner_id), *shard(image_identifier))

    def fetch(self, owner_id: str, image_identifier: str) -> Optional[bytes]:
        path = self.get_image_path(owner_id, image_identifier)
        try:
            return path.read_bytes()
        except (FileNotFoundError, NotADirectoryError):
            return None

    def store(self, owner_id: str, image_identifier: str, blob: bytes) -> None:
        """Writes the original atomically.

        Raises:
            OSError: If the image could not be written. Unlike the cache,
                losing an original is an error for the caller.
        """
        path = self.get_image_path(owner_id, image_identifier)
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(blob)
            os.replace(temp_name, path)
        except OSError:
            with contextlib.suppress(OSError):
                os.unlink(temp_name)
            raise
        logger.info(f"Stored original {owner_id}/{image_identifier} ({len(blob)} bytes)")

    def delete(self, owner_id: str, image_identifier: str) -> bool:
        path = self.get_image_path(owner_id, image_identifier)
        try:
            path.unlink()
        except (FileNotFoundError, NotADirectoryError):
            return False
        logger.info(f"Deleted original {owner_id}/{image_identifier}")
        return True

    def exists(self, owner_id: str, image_identifier: str) -> bool:
        return self.get_image_path(owner_id, image_identifier).is_file()
