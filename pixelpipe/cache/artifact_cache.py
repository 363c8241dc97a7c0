# On-disk cache of derived artifacts, sharded by owner, asset and fingerprint.

import contextlib
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from pixelpipe.cache.fingerprint import FingerprintInput, compute_fingerprint, validate_identifier
from pixelpipe.cache.record import CacheEntry, decode_record, encode_record
from pixelpipe.exceptions import CachePathNotWritableError, InvalidCacheRecordError

logger = logging.getLogger(__name__)

# Number of single-character directory levels placed in front of each key.
SHARD_DEPTH = 3

TEMP_SUFFIX = ".tmp"


def shard(value: str, depth: int = SHARD_DEPTH) -> List[str]:
    """Returns the prefix directories followed by the full value."""
    return [*value[:depth], value]


def is_writable(path: Union[str, Path]) -> bool:
    """Checks whether a directory, or its closest existing ancestor, is writable."""
    current = Path(path).absolute()
    while not current.is_dir():
        if current.exists() or current.parent == current:
            return False
        current = current.parent
    return os.access(current, os.W_OK)


class ArtifactCache:
    """Stores derived artifacts so each transformation only has to be computed once.

    Entries live at::

        <root>/o/w/n/<owner>/a/s/s/<asset>/f/i/n/<fingerprint>

    Every variant derived from one asset sits below the asset's directory, so
    dropping all of them is a single subtree removal.

    No locks are taken. Writers publish entries by renaming a temporary file in
    the target directory, so readers either see a complete record or nothing.
    Every filesystem failure is downgraded: ``store`` gives up, ``lookup``
    reports a miss and ``invalidate`` skips what it cannot remove.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        """
        Args:
            path: Root directory of the cache. Created lazily on first store.

        Raises:
            CachePathNotWritableError: If the path cannot be written.
        """
        if not is_writable(path):
            raise CachePathNotWritableError(f"Image transformation cache path is not writable: {path}")
        self.path = Path(path)

    def get_cache_dir(self, owner_id: str, asset_id: str) -> Path:
        """Returns the directory holding every artifact derived from one asset."""
        validate_identifier("owner_id", owner_id)
        validate_identifier("asset_id", asset_id)
        return self.path.joinpath(*shard(owner_id), *shard(asset_id))

    def get_cache_file_path(self, fingerprint_input: FingerprintInput) -> Path:
        """Returns the file path of the artifact identified by the input."""
        fingerprint = compute_fingerprint(fingerprint_input)
        cache_dir = self.get_cache_dir(fingerprint_input.owner_id, fingerprint_input.asset_id)
        return cache_dir.joinpath(*shard(fingerprint))

    def lookup(self, fingerprint_input: FingerprintInput) -> Optional[CacheEntry]:
        """Returns the cached entry for the input, or None on a miss.

        A record that cannot be decoded is removed so the next store can
        replace it.
        """
        path = self.get_cache_file_path(fingerprint_input)
        try:
            data = path.read_bytes()
        except (FileNotFoundError, NotADirectoryError):
            return None
        except OSError as e:
            logger.warning(f"Could not read cache entry {path}: {e}")
            return None

        try:
            return decode_record(data)
        except InvalidCacheRecordError as e:
            logger.warning(f"Removing invalid cache entry {path}: {e}")
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as unlink_error:
                logger.warning(f"Could not remove invalid cache entry {path}: {unlink_error}")
            return None

    def store(self, fingerprint_input: FingerprintInput, entry: CacheEntry) -> bool:
        """Writes an entry so it appears at its final path in one step.

        Returns:
            True if the entry was published, False if the attempt was abandoned.
        """
        path = self.get_cache_file_path(fingerprint_input)
        directory = path.parent

        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Could not create cache directory {directory}: {e}")
            return False

        data = encode_record(entry)
        temp_name = None
        try:
            fd, temp_name = tempfile.mkstemp(dir=directory, prefix=f".{path.name}.", suffix=TEMP_SUFFIX)
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(temp_name, path)
        except OSError as e:
            logger.warning(f"Could not store cache entry {path}: {e}")
            if temp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(temp_name)
            return False

        logger.debug(f"Stored cache entry {path} ({len(entry.payload)} bytes)")
        return True

    def invalidate(self, owner_id: str, asset_id: str) -> int:
        """Removes every cached artifact derived from an asset.

        Files are removed before the directories containing them. Anything that
        has already vanished is skipped, so concurrent invalidations are safe.

        Returns:
            The number of files removed by this call.
        """
        cache_dir = self.get_cache_dir(owner_id, asset_id)
        removed = 0

        for root, dirs, files in os.walk(cache_dir, topdown=False):
            for name in files:
                if self._remove_file(os.path.join(root, name)):
                    removed += 1
            for name in dirs:
                self._remove_dir(os.path.join(root, name))
        self._remove_dir(str(cache_dir))

        if removed:
            logger.info(f"Invalidated {removed} cached artifact(s) for {owner_id}/{asset_id}")
        return removed

    def _remove_file(self, path: str) -> bool:
        try:
            os.unlink(path)
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Could not remove cache file {path}: {e}")
            return False
        return True

    def _remove_dir(self, path: str) -> None:
        try:
            os.rmdir(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            # A concurrent store may have repopulated the directory
            logger.debug(f"Could not remove cache directory {path}: {e}")
