"""
로컬 파일시스템 저장소 구현.

- LocalBlobStore: storage key → root 하위 상대 경로
- JsonMetadataStore: projects/{id}.json, images/{project_id}.json

보안: 키/ID가 root 밖을 가리키면 (../, 절대경로, symlink) 거부.
"""

import logging
import shutil
from pathlib import Path
from typing import BinaryIO

from src.domain.errors import BlobNotFoundError, ExportError, ProjectNotFoundError, StoreError
from src.domain.schemas import ArchivePart, ImageRecord, Project
from src.storage.ssot import atomic_write_bytes, atomic_write_json, load_json, project_lock

logger = logging.getLogger(__name__)


def _resolve_inside(root: Path, relative: str) -> Path:
    """root 하위 경로로 변환. 벗어나면 StoreError."""
    candidate = (root / relative.lstrip("/")).resolve()
    try:
        candidate.relative_to(root.resolve())
    except ValueError as e:
        raise StoreError(f"Path escapes storage root: {relative}") from e
    return candidate


# =============================================================================
# Blob Store
# =============================================================================

class LocalBlobStore:
    """로컬 디렉터리 기반 blob 저장소."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        if not key or key.endswith("/"):
            raise StoreError(f"Invalid blob key: {key!r}")
        return _resolve_inside(self.root, key)

    def get(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise BlobNotFoundError(key)
        try:
            return path.read_bytes()
        except OSError as e:
            raise StoreError(f"Failed to read blob {key}: {e}") from e

    def put(self, key: str, body: bytes | BinaryIO, content_type: str) -> None:
        path = self._path(key)

        def write(f: BinaryIO) -> None:
            if isinstance(body, bytes | bytearray):
                f.write(body)
            else:
                shutil.copyfileobj(body, f)

        try:
            atomic_write_bytes(path, write)
        except OSError as e:
            raise StoreError(f"Failed to write blob {key}: {e}") from e
        logger.debug("Stored %s (%s)", key, content_type)

    def exists(self, key: str) -> bool:
        try:
            return self._path(key).is_file()
        except StoreError:
            return False

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StoreError(f"Failed to delete blob {key}: {e}") from e


# =============================================================================
# Metadata Store
# =============================================================================

class JsonMetadataStore:
    """
    JSON 파일 기반 메타데이터 저장소.

    구조:
        {root}/projects/{project_id}.json
        {root}/images/{project_id}.json   (ImageRecord 목록)
        {root}/.locks/{project_id}/       (쓰기 락)
    """

    def __init__(self, root: Path, config: dict | None = None):
        self.root = Path(root)
        self.config = config or {}

    def _project_path(self, project_id: str) -> Path:
        return _resolve_inside(self.root, f"projects/{project_id}.json")

    def _images_path(self, project_id: str) -> Path:
        return _resolve_inside(self.root, f"images/{project_id}.json")

    def _lock_dir(self, project_id: str) -> Path:
        lock_name = self.config.get("paths", {}).get("lock_dir", ".locks")
        return _resolve_inside(self.root, f"{lock_name}/{project_id}")

    def _read(self, path: Path) -> dict | list:
        try:
            return load_json(path)
        except ExportError as e:
            raise StoreError(str(e)) from e
        except OSError as e:
            raise StoreError(f"Failed to read {path}: {e}") from e

    def get_project(self, project_id: str) -> Project:
        path = self._project_path(project_id)
        if not path.is_file():
            raise ProjectNotFoundError(project_id)
        data = self._read(path)
        if not isinstance(data, dict):
            raise StoreError(f"Project record is not an object: {path}")
        return Project.from_dict(data)

    def query_images(self, project_id: str) -> list[ImageRecord]:
        path = self._images_path(project_id)
        if not path.is_file():
            return []
        data = self._read(path)
        if not isinstance(data, list):
            raise StoreError(f"Image list is not an array: {path}")
        return [ImageRecord.from_dict(item) for item in data]

    def update_project_archive_parts(
        self, project_id: str, parts: list[ArchivePart]
    ) -> None:
        path = self._project_path(project_id)
        with project_lock(self._lock_dir(project_id), self.config):
            if not path.is_file():
                raise ProjectNotFoundError(project_id)
            data = self._read(path)
            if not isinstance(data, dict):
                raise StoreError(f"Project record is not an object: {path}")
            data.pop("zipFiles", None)
            data["archiveParts"] = [p.to_dict() for p in parts]
            try:
                atomic_write_json(path, data)
            except OSError as e:
                raise StoreError(f"Failed to update project {project_id}: {e}") from e

    # === 적재 (CLI/테스트용) ===

    def save_project(self, project: Project) -> None:
        atomic_write_json(self._project_path(project.project_id), project.to_dict())

    def save_images(self, project_id: str, images: list[ImageRecord]) -> None:
        atomic_write_json(
            self._images_path(project_id),
            [img.to_dict() for img in images],
        )
