"""Local file storage access for removing orphaned attachments.

Only the ``local`` storage driver is supported: any other driver is a
configuration error, reported before the purge deletes anything.
"""

from __future__ import annotations

import logging
from pathlib import Path

from bulkpurge.foundation.domain.exceptions import ConfigurationError
from bulkpurge.infra.mattermost.settings import (
    LOCAL_FILE_DRIVER,
    FileSettings,
    get_file_settings,
)

logger = logging.getLogger(__name__)


class FileRemovalError(OSError):
    """Raised when a stored file exists but cannot be removed."""


class LocalFileStore:
    """Files stored by the server's local driver, addressed by relative path.

    Attributes:
        root: Directory all stored paths are relative to.
    """

    def __init__(self, directory: str | Path) -> None:
        self.root = Path(directory)

    def resolve(self, path: str) -> Path:
        """Location of a stored file, always under :attr:`root`.

        Leading slashes are stripped, so absolute stored paths are read
        relative to the root.

        Raises:
            FileRemovalError: If the path escapes the root (``..`` or a
                symlink pointing outside it).
        """
        root = self.root.resolve()
        resolved = (root / path.lstrip("/")).resolve()
        if not resolved.is_relative_to(root):
            msg = f"file {path} is outside the storage directory {root}"
            raise FileRemovalError(msg)
        return resolved

    def exists(self, path: str) -> bool:
        """Check whether a stored file is present.

        Raises:
            FileRemovalError: If the file's status cannot be determined, or
                the path escapes the storage root.
        """
        resolved = self.resolve(path)
        try:
            resolved.stat()
        except FileNotFoundError:
            return False
        except OSError as exc:
            msg = f"unable to know if file {path} exists: {exc}"
            raise FileRemovalError(msg) from exc
        return True

    def remove(self, path: str) -> None:
        """Remove a stored file.

        Raises:
            FileRemovalError: If the file cannot be removed, or the path
                escapes the storage root.
        """
        resolved = self.resolve(path)
        try:
            resolved.unlink()
        except OSError as exc:
            msg = f"unable to remove the file {path}: {exc}"
            raise FileRemovalError(msg) from exc

    def remove_if_exists(self, path: str) -> bool:
        """Remove a stored file, skipping (with a warning) files already gone.

        Returns:
            True if a file was removed.
        """
        if not self.exists(path):
            logger.warning("file_store_missing_file", extra={"path": path})
            return False
        self.remove(path)
        return True


def file_store_from_settings(settings: FileSettings | None = None) -> LocalFileStore:
    """Build the file store for the configured driver.

    Raises:
        ConfigurationError: If the driver is not ``local``.
    """
    settings = settings or get_file_settings()
    if settings.driver_name != LOCAL_FILE_DRIVER:
        raise ConfigurationError(
            "file_driver_name",
            "only local storage file drivers are supported",
        )
    return LocalFileStore(settings.directory)
