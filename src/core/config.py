"""
설정 로드: default.yaml → export 설정, 저장소 구성

설정 파일이 없으면 빈 dict → 모든 값은 기본값.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from src.domain.constants import (
    ARCHIVE_KEY_ROOT,
    ARCHIVE_NAME_MAX_LENGTH,
    DEFAULT_CEILING_BYTES,
    DEFAULT_SPOOL_MAX_BYTES,
)
from src.storage.base import BlobStore, MetadataStore
from src.storage.local import JsonMetadataStore, LocalBlobStore
from src.storage.s3 import S3BlobStore

PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "default.yaml"


def load_config(config_path: Path | None = None) -> dict:
    """설정 파일 로드."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return {}

    with open(config_path, encoding="utf-8") as f:
        data: dict[Any, Any] = yaml.safe_load(f) or {}
        return data


@dataclass(frozen=True)
class ExportSettings:
    """export 동작 설정 (config["export"])."""
    ceiling_bytes: int = DEFAULT_CEILING_BYTES
    name_max_length: int = ARCHIVE_NAME_MAX_LENGTH
    max_workers: int = 1
    spool_max_bytes: int = DEFAULT_SPOOL_MAX_BYTES
    archive_prefix: str = ARCHIVE_KEY_ROOT
    logs_dir: Path | None = None

    @classmethod
    def from_config(cls, config: dict, base_dir: Path = PROJECT_ROOT) -> "ExportSettings":
        export = config.get("export", {}) or {}
        logs_dir = config.get("paths", {}).get("logs_dir")
        return cls(
            ceiling_bytes=int(export.get("ceiling_bytes", DEFAULT_CEILING_BYTES)),
            name_max_length=int(export.get("name_max_length", ARCHIVE_NAME_MAX_LENGTH)),
            max_workers=max(1, int(export.get("max_workers", 1))),
            spool_max_bytes=int(export.get("spool_max_bytes", DEFAULT_SPOOL_MAX_BYTES)),
            archive_prefix=str(export.get("archive_prefix", ARCHIVE_KEY_ROOT)),
            logs_dir=(base_dir / logs_dir) if logs_dir else None,
        )


def build_stores(
    config: dict, base_dir: Path = PROJECT_ROOT
) -> tuple[BlobStore, MetadataStore]:
    """
    config["storage"] 기준으로 저장소 생성.

    backend:
    - local (기본): blob_root, metadata_root 디렉터리
    - s3: s3.bucket, s3.region (메타데이터는 항상 JSON)
    """
    storage = config.get("storage", {}) or {}
    backend = storage.get("backend", "local")
    metadata_store = JsonMetadataStore(
        base_dir / storage.get("metadata_root", "data/metadata"),
        config=config,
    )

    if backend == "s3":
        s3_config = storage.get("s3", {}) or {}
        retry = storage.get("retry", {}) or {}
        blob_store: BlobStore = S3BlobStore(
            bucket=s3_config["bucket"],
            region=s3_config.get("region"),
            max_retries=int(retry.get("max_retries", 3)),
            initial_delay=float(retry.get("initial_delay", 0.1)),
        )
    elif backend == "local":
        blob_store = LocalBlobStore(base_dir / storage.get("blob_root", "data/blobs"))
    else:
        raise ValueError(f"Unknown storage backend: {backend}")

    return blob_store, metadata_store
