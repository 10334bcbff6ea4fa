"""
test_config.py - 설정 로드 / 저장소 구성 테스트
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from src.core.config import ExportSettings, build_stores, load_config
from src.domain.constants import DEFAULT_CEILING_BYTES
from src.storage.local import JsonMetadataStore, LocalBlobStore
from src.storage.s3 import S3BlobStore


class TestLoadConfig:
    """load_config 함수 테스트."""

    def test_missing_file_empty(self, tmp_path: Path):
        assert load_config(tmp_path / "none.yaml") == {}

    def test_reads_yaml(self, tmp_path: Path):
        path = tmp_path / "c.yaml"
        path.write_text("export:\n  max_workers: 3\n", encoding="utf-8")

        assert load_config(path) == {"export": {"max_workers": 3}}

    def test_default_yaml_sections(self, default_config: dict):
        assert default_config["export"]["ceiling_bytes"] == DEFAULT_CEILING_BYTES
        assert default_config["storage"]["backend"] == "local"


class TestExportSettings:
    """ExportSettings.from_config 테스트."""

    def test_defaults(self):
        settings = ExportSettings.from_config({})

        assert settings.ceiling_bytes == DEFAULT_CEILING_BYTES
        assert settings.name_max_length == 50
        assert settings.max_workers == 1
        assert settings.archive_prefix == "projects"
        assert settings.logs_dir is None

    def test_overrides(self, tmp_path: Path):
        config = {
            "export": {"ceiling_bytes": 1000, "max_workers": 0},
            "paths": {"logs_dir": "logs"},
        }

        settings = ExportSettings.from_config(config, tmp_path)

        assert settings.ceiling_bytes == 1000
        assert settings.max_workers == 1  # 최소 1
        assert settings.logs_dir == tmp_path / "logs"


class TestBuildStores:
    """build_stores 함수 테스트."""

    def test_local_backend(self, tmp_path: Path):
        blob_store, metadata_store = build_stores({}, tmp_path)

        assert isinstance(blob_store, LocalBlobStore)
        assert blob_store.root == tmp_path / "data/blobs"
        assert isinstance(metadata_store, JsonMetadataStore)

    def test_s3_backend(self, tmp_path: Path):
        config = {
            "storage": {
                "backend": "s3",
                "s3": {"bucket": "photos", "region": "eu-west-1"},
                "retry": {"max_retries": 5},
            }
        }

        with patch("src.storage.s3.boto3") as boto3:
            boto3.client.return_value = MagicMock()
            blob_store, _ = build_stores(config, tmp_path)

        assert isinstance(blob_store, S3BlobStore)
        assert blob_store.bucket == "photos"
        assert blob_store.max_retries == 5
        boto3.client.assert_called_once_with("s3", region_name="eu-west-1")

    def test_unknown_backend(self, tmp_path: Path):
        with pytest.raises(ValueError):
            build_stores({"storage": {"backend": "ftp"}}, tmp_path)
