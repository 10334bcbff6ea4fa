"""
Pytest fixtures for the export engine tests.

테스트 구성:
- 저장소는 메모리 fake (BlobStore / MetadataStore 계약만 구현)
- JPEG는 바이트 단위로 직접 조립 (이미지 라이브러리 없음)
"""

from collections.abc import Callable
from pathlib import Path
from typing import BinaryIO

import pytest
import yaml

from src.domain.errors import BlobNotFoundError, ProjectNotFoundError, StoreError
from src.domain.schemas import ArchivePart, ImageRecord, Project

# =============================================================================
# In-memory Stores
# =============================================================================


class InMemoryBlobStore:
    """
    dict 기반 BlobStore.

    fail_get_keys / fail_put_keys에 있는 키는 StoreError.
    """

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.fail_get_keys: set[str] = set()
        self.fail_put_keys: set[str] = set()
        self.fail_delete_keys: set[str] = set()
        self.get_calls: list[str] = []

    def get(self, key: str) -> bytes:
        self.get_calls.append(key)
        if key in self.fail_get_keys:
            raise StoreError(f"simulated fetch failure: {key}")
        if key not in self.blobs:
            raise BlobNotFoundError(key)
        return self.blobs[key]

    def put(self, key: str, body: bytes | BinaryIO, content_type: str) -> None:
        if key in self.fail_put_keys:
            raise StoreError(f"simulated upload failure: {key}")
        if isinstance(body, bytes | bytearray):
            data = bytes(body)
        else:
            body.seek(0)
            data = body.read()
        self.blobs[key] = data
        self.content_types[key] = content_type

    def exists(self, key: str) -> bool:
        return key in self.blobs

    def delete(self, key: str) -> None:
        if key in self.fail_delete_keys:
            raise StoreError(f"simulated delete failure: {key}")
        self.blobs.pop(key, None)


class InMemoryMetadataStore:
    """dict 기반 MetadataStore."""

    def __init__(self) -> None:
        self.projects: dict[str, Project] = {}
        self.images: dict[str, list[ImageRecord]] = {}
        self.fail_images = False
        self.fail_update = False
        self.updates: list[tuple[str, list[ArchivePart]]] = []

    def add_project(self, project: Project, images: list[ImageRecord]) -> None:
        self.projects[project.project_id] = project
        self.images[project.project_id] = list(images)

    def get_project(self, project_id: str) -> Project:
        if project_id not in self.projects:
            raise ProjectNotFoundError(project_id)
        return self.projects[project_id]

    def query_images(self, project_id: str) -> list[ImageRecord]:
        if self.fail_images:
            raise StoreError("simulated query failure")
        return list(self.images.get(project_id, []))

    def update_project_archive_parts(
        self, project_id: str, parts: list[ArchivePart]
    ) -> None:
        if self.fail_update:
            raise StoreError("simulated update failure")
        self.updates.append((project_id, list(parts)))
        self.get_project(project_id).archive_parts = list(parts)


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def metadata_store() -> InMemoryMetadataStore:
    return InMemoryMetadataStore()


# =============================================================================
# JPEG Fixtures
# =============================================================================

SCAN_DATA = b"\x12\x34\xff\x00\x56\xff\xd0\x78\x9a\xff\x00\xbc"


def build_jpeg(extra_segments: bytes = b"", trailing: bytes = b"") -> bytes:
    """
    최소 구조의 baseline JPEG.

    SOI, APP0(JFIF), [extra], DQT, SOF0, DHT, SOS, scan(FF00/RST 포함), EOI
    """
    soi = b"\xff\xd8"
    app0 = b"\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
    dqt = b"\xff\xdb\x00\x43\x00" + bytes(range(1, 65))
    sof0 = b"\xff\xc0\x00\x11\x08\x00\x01\x00\x01\x03\x01\x11\x00\x02\x11\x00\x03\x11\x00"
    dht = (
        b"\xff\xc4\x00\x1f\x00"
        + bytes([0, 1, 5, 1, 1, 1, 1, 1, 1, 0, 0, 0, 0, 0, 0, 0])
        + bytes(range(12))
    )
    sos = b"\xff\xda\x00\x0c\x03\x01\x00\x02\x11\x03\x11\x00\x3f\x00"
    eoi = b"\xff\xd9"
    return soi + app0 + extra_segments + dqt + sof0 + dht + sos + SCAN_DATA + eoi + trailing


@pytest.fixture
def make_jpeg() -> Callable[..., bytes]:
    return build_jpeg


@pytest.fixture
def jpeg_bytes() -> bytes:
    return build_jpeg()


@pytest.fixture
def scan_data() -> bytes:
    return SCAN_DATA


# =============================================================================
# Record Fixtures
# =============================================================================


def make_image(
    original_file: str,
    file_size: int = 100,
    **kwargs,
) -> ImageRecord:
    """테스트용 ImageRecord (image_id는 파일명에서 파생)."""
    kwargs.setdefault("image_id", original_file.rsplit("/", 1)[-1])
    return ImageRecord(original_file=original_file, file_size=file_size, **kwargs)


@pytest.fixture
def image_factory() -> Callable[..., ImageRecord]:
    return make_image


@pytest.fixture
def sample_project() -> Project:
    return Project(
        project_id="proj-001",
        name="South-West 2024!!",
        s3_prefix="sw2024",
    )


# =============================================================================
# Config Fixtures
# =============================================================================


@pytest.fixture
def project_root() -> Path:
    """프로젝트 루트 경로."""
    return Path(__file__).parent.parent


@pytest.fixture
def default_config(project_root: Path) -> dict:
    """기본 설정 로드."""
    with open(project_root / "default.yaml", encoding="utf-8") as f:
        return yaml.safe_load(f)


@pytest.fixture
def lock_config() -> dict:
    """빠른 락 테스트용 설정."""
    return {
        "paths": {"lock_dir": ".locks"},
        "pipeline": {
            "lock_retry_interval": 0.05,
            "lock_max_retries": 5,
        },
    }
