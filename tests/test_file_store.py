"""Tests for local file storage access."""

from __future__ import annotations

from pathlib import Path

import pytest

from bulkpurge.foundation.domain.exceptions import ConfigurationError
from bulkpurge.infra.mattermost.file_store import (
    FileRemovalError,
    LocalFileStore,
    file_store_from_settings,
)
from bulkpurge.infra.mattermost.settings import FileSettings


@pytest.mark.unit
class TestLocalFileStore:
    def test_remove_if_exists(self, tmp_path: Path) -> None:
        (tmp_path / "boards").mkdir()
        (tmp_path / "boards" / "img.png").write_bytes(b"png")
        store = LocalFileStore(tmp_path)

        assert store.exists("boards/img.png")
        assert store.remove_if_exists("boards/img.png") is True
        assert not (tmp_path / "boards" / "img.png").exists()

    def test_missing_file_is_skipped(self, tmp_path: Path) -> None:
        store = LocalFileStore(tmp_path)

        assert store.remove_if_exists("boards/gone.png") is False

    def test_absolute_path_stays_under_root(self, tmp_path: Path) -> None:
        root = tmp_path / "data"
        outside = tmp_path / "outside.txt"
        outside.write_bytes(b"keep")
        (root / str(outside).lstrip("/")).parent.mkdir(parents=True)
        (root / str(outside).lstrip("/")).write_bytes(b"stored")
        store = LocalFileStore(root)

        assert store.resolve(str(outside)).is_relative_to(root.resolve())
        assert store.remove_if_exists(str(outside)) is True
        assert outside.read_bytes() == b"keep"

    @pytest.mark.parametrize("path", ["../outside.txt", "boards/../../outside.txt"])
    def test_path_escaping_root_is_refused(self, tmp_path: Path, path: str) -> None:
        root = tmp_path / "data"
        root.mkdir()
        (tmp_path / "outside.txt").write_bytes(b"keep")
        store = LocalFileStore(root)

        with pytest.raises(FileRemovalError, match="outside the storage directory"):
            store.remove_if_exists(path)

        assert (tmp_path / "outside.txt").read_bytes() == b"keep"

    def test_from_settings_uses_directory(self, tmp_path: Path) -> None:
        store = file_store_from_settings(FileSettings(driver_name="local", directory=str(tmp_path)))

        assert store.root == tmp_path

    @pytest.mark.parametrize("driver", ["amazons3", None])
    def test_non_local_driver_is_a_configuration_error(self, driver: str | None) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            file_store_from_settings(FileSettings(driver_name=driver))

        assert exc_info.value.message == "only local storage file drivers are supported"
