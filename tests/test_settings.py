"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from bulkpurge.domain.purge.settings import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_GATE_KEY,
    PurgeSettings,
)
from bulkpurge.infra.fastapi.settings import AppSettings, CORSSettings
from bulkpurge.infra.mattermost.settings import (
    DEFAULT_SOCKET_PATH,
    FileSettings,
    MattermostSettings,
)


@pytest.mark.unit
class TestPurgeSettings:
    def test_defaults(self) -> None:
        settings = PurgeSettings()

        assert settings.target_email_suffixes == []
        assert settings.target_email_addresses == []
        assert settings.batch_size == DEFAULT_BATCH_SIZE
        assert settings.gate_key == DEFAULT_GATE_KEY
        assert settings.gate_ttl_seconds is None

    def test_job_status_key_under_status_key(self) -> None:
        settings = PurgeSettings(status_key="purge/status")

        assert settings.job_status_key("j1") == "purge/status/jobs/j1"
        assert settings.job_status_ttl_seconds == 86_400

    def test_comma_separated_lists_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PURGE_TARGET_EMAIL_SUFFIXES", "@old.test, @gone.test,")
        monkeypatch.setenv("PURGE_TARGET_EMAIL_ADDRESSES", "vip@new.test")
        monkeypatch.setenv("PURGE_BATCH_SIZE", "50")

        settings = PurgeSettings()

        assert settings.target_email_suffixes == ["@old.test", "@gone.test"]
        assert settings.target_email_addresses == ["vip@new.test"]
        assert settings.batch_size == 50

    def test_list_input_is_stripped(self) -> None:
        settings = PurgeSettings(target_email_suffixes=[" @a.test ", ""])

        assert settings.target_email_suffixes == ["@a.test"]

    def test_batch_size_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            PurgeSettings(batch_size=0)


@pytest.mark.unit
class TestMattermostSettings:
    def test_defaults_use_local_socket(self) -> None:
        settings = MattermostSettings()

        assert settings.socket_path == DEFAULT_SOCKET_PATH
        assert settings.token is None

    def test_token_hidden_from_repr(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MATTERMOST_TOKEN", "s3cret-token")

        settings = MattermostSettings()

        assert settings.token == "s3cret-token"
        assert "s3cret-token" not in repr(settings)

    def test_file_settings_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FILE_DRIVER_NAME", "amazons3")
        monkeypatch.setenv("FILE_DIRECTORY", "/srv/data")

        settings = FileSettings()

        assert settings.driver_name == "amazons3"
        assert settings.directory == "/srv/data"


@pytest.mark.unit
class TestAppSettings:
    def test_defaults(self) -> None:
        settings = AppSettings()

        assert settings.title == "Bulk User Purge"
        assert settings.debug is False
        assert settings.redoc_url is None

    def test_cors_lists_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.test, https://b.test")

        settings = CORSSettings()

        assert settings.allow_origins == ["https://a.test", "https://b.test"]

    def test_credentials_with_wildcard_origin_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CORSSettings(allow_origins=["*"], allow_credentials=True)
