"""Mattermost server and file storage configuration.

Two settings groups:
- ``MATTERMOST_*``: how to reach the account/channel management API.
- ``FILE_*``: where the server keeps uploaded files (only the ``local``
  driver can be purged).
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SOCKET_PATH = "/var/tmp/mattermost_local.socket"
LOCAL_FILE_DRIVER = "local"


class MattermostSettings(BaseSettings):
    """Connection settings for the account/channel management API.

    Some of the APIs the purge needs (permanent user and channel deletion)
    are only exposed over the server's local-mode unix socket, which is
    the default transport. Set ``MATTERMOST_SOCKET_PATH`` to an empty
    string to talk to ``MATTERMOST_BASE_URL`` over TCP instead.

    Environment Variables:
        MATTERMOST_SOCKET_PATH: Local-mode unix socket path
        MATTERMOST_BASE_URL: Server URL (default: http://localhost)
        MATTERMOST_TOKEN: Optional bearer token (hidden in logs)
        MATTERMOST_TIMEOUT: Per-request timeout in seconds (default: 30)
        MATTERMOST_PER_PAGE: Page size when listing users (default: 100)
    """

    model_config = SettingsConfigDict(
        env_prefix="MATTERMOST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    socket_path: str | None = Field(default=DEFAULT_SOCKET_PATH)
    base_url: str = Field(default="http://localhost")
    token: str | None = Field(default=None, repr=False)
    timeout: float = Field(default=30.0, gt=0, le=600)
    per_page: int = Field(default=100, ge=1, le=200)


class FileSettings(BaseSettings):
    """File storage settings mirrored from the server configuration.

    Environment Variables:
        FILE_DRIVER_NAME: Storage driver (default: local)
        FILE_DIRECTORY: Root directory of the local driver (default: ./data/)
    """

    model_config = SettingsConfigDict(
        env_prefix="FILE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    driver_name: str | None = Field(default=LOCAL_FILE_DRIVER)
    directory: str = Field(default="./data/")


@lru_cache(maxsize=1)
def get_mattermost_settings() -> MattermostSettings:
    return MattermostSettings()


@lru_cache(maxsize=1)
def get_file_settings() -> FileSettings:
    return FileSettings()
