"""Local tier: a flat directory of files named by identifier."""

import logging
import shutil
from pathlib import Path
from typing import BinaryIO, Optional, Tuple, Union

from files_proxy.storage.locator import current_time_ms, identifier_to_path, make_identifier

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 1024 * 1024


class LocalStorage:
    """Files stored under ``root``, one per identifier."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    def ensure_root(self) -> Path:
        """Create the storage directory if absent. Safe to call on every request."""
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def path_for(self, identifier: str) -> Path:
        return identifier_to_path(self.root, identifier)

    def exists(self, identifier: str) -> bool:
        return self.path_for(identifier).is_file()

    def save_new(
        self,
        filename: str,
        source: BinaryIO,
        timestamp_ms: Optional[int] = None,
    ) -> Tuple[str, Path]:
        """
        Write ``source`` to a freshly named file and return its identifier and path.

        The file is created exclusively. When the identifier for this millisecond
        is already taken, the timestamp is bumped until a free name is found, so
        two uploads of the same filename never overwrite each other.

        :param filename: Original filename supplied by the client.
        :param source: Readable binary stream with the file content.
        :param timestamp_ms: Upload time in milliseconds; defaults to now.
        """
        self.ensure_root()
        timestamp_ms = current_time_ms() if timestamp_ms is None else timestamp_ms

        while True:
            identifier = make_identifier(filename, timestamp_ms)
            path = self.path_for(identifier)
            try:
                target = path.open("xb")
            except FileExistsError:
                logger.debug(f"Identifier {identifier} already taken, bumping timestamp")
                timestamp_ms += 1
                continue
            break

        try:
            with target:
                shutil.copyfileobj(source, target, COPY_CHUNK_SIZE)
        except Exception:
            path.unlink(missing_ok=True)
            raise

        logger.info(f"Stored {identifier} locally at {path}")
        return identifier, path

    def remove(self, identifier: str) -> None:
        """Delete the local copy of ``identifier`` if it exists."""
        self.path_for(identifier).unlink(missing_ok=True)
