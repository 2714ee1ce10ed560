"""Bulkpurge Infra Mattermost: account/channel API client and file store."""

from bulkpurge.infra.mattermost.client import MattermostClient
from bulkpurge.infra.mattermost.file_store import (
    FileRemovalError,
    LocalFileStore,
    file_store_from_settings,
)
from bulkpurge.infra.mattermost.settings import (
    FileSettings,
    MattermostSettings,
    get_file_settings,
    get_mattermost_settings,
)

__all__ = [
    "FileRemovalError",
    "FileSettings",
    "LocalFileStore",
    "MattermostClient",
    "MattermostSettings",
    "file_store_from_settings",
    "get_file_settings",
    "get_mattermost_settings",
]
