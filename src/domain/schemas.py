"""
Data schemas for the archive export engine.

규칙:
- ImageRecord는 읽기 전용 (엔진은 절대 수정하지 않음)
- ArchivePart는 배치당 1개 생성 후 불변
- 저장 포맷 키는 camelCase (기존 메타데이터 테이블과 호환)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# =============================================================================
# Archive Status
# =============================================================================

class ArchiveStatus(str, Enum):
    """
    ArchivePart 상태.

    GENERATING은 API가 export 시작 시 남기는 임시 placeholder 전용.
    엔진이 만드는 파트는 COMPLETE 또는 FAILED.
    """
    GENERATING = "generating"
    COMPLETE = "complete"
    FAILED = "failed"


class ExportStatus(str, Enum):
    """export run 결과."""
    COMPLETED = "completed"  # 모든 배치 처리됨 (개별 파트 실패 포함 가능)
    EMPTY = "empty"          # 이미지 0건, no-op
    CANCELLED = "cancelled"  # 호출자 취소로 일부 배치만 처리됨


# =============================================================================
# Records (메타데이터 저장소 소유)
# =============================================================================

def _pick(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """camelCase/snake_case 중 먼저 존재하는 키 값."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass(frozen=True)
class ImageRecord:
    """큐레이션된 사진 한 장."""
    image_id: str
    original_file: str  # primary 파일 storage key
    file_size: int = 0
    related_files: tuple[str, ...] = ()  # 연결된 RAW 원본 등
    rating: int = 0  # 0 = 미설정, 1-5 유효
    group_number: int = 0  # 0 = 미설정, 1-5 → 컬러 라벨
    description: str = ""
    keywords: tuple[str, ...] = ()
    project_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ImageRecord":
        return cls(
            image_id=str(_pick(data, "imageGUID", "image_id", default="")),
            original_file=str(_pick(data, "originalFile", "original_file", default="")),
            file_size=int(_pick(data, "fileSize", "file_size", default=0)),
            related_files=tuple(_pick(data, "relatedFiles", "related_files", default=())),
            rating=int(_pick(data, "rating", "Rating", default=0)),
            group_number=int(_pick(data, "groupNumber", "group_number", default=0)),
            description=str(_pick(data, "description", "Description", default="")),
            keywords=tuple(_pick(data, "keywords", "Keywords", default=())),
            project_id=_pick(data, "projectId", "project_id"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "imageGUID": self.image_id,
            "originalFile": self.original_file,
            "fileSize": self.file_size,
            "relatedFiles": list(self.related_files),
            "rating": self.rating,
            "groupNumber": self.group_number,
            "description": self.description,
            "keywords": list(self.keywords),
            "projectId": self.project_id,
        }


@dataclass(frozen=True)
class ArchivePart:
    """
    export run이 만든 아카이브 파일 하나.

    배치당 1개, 생성 후 불변. Project.archive_parts로 저장됨.
    """
    key: str
    size: int
    image_count: int
    created_at: str  # ISO 8601
    status: ArchiveStatus

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ArchivePart":
        return cls(
            key=str(data.get("key", "")),
            size=int(data.get("size", 0)),
            image_count=int(_pick(data, "imageCount", "image_count", default=0)),
            created_at=str(_pick(data, "createdAt", "created_at", default="")),
            status=ArchiveStatus(data.get("status", ArchiveStatus.FAILED.value)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "size": self.size,
            "imageCount": self.image_count,
            "createdAt": self.created_at,
            "status": self.status.value,
        }


@dataclass
class Project:
    """이름이 붙은 이미지 컬렉션."""
    project_id: str
    name: str
    s3_prefix: str = ""
    created_at: str = ""
    image_count: int = 0
    catalog_file: str = ""  # 프로젝트 catalog 문서 storage key (선택)
    keywords: list[str] = field(default_factory=list)
    archive_parts: list[ArchivePart] = field(default_factory=list)

    @property
    def storage_prefix(self) -> str:
        """S3Prefix가 비어 있으면 project_id 사용."""
        return self.s3_prefix or self.project_id

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Project":
        parts = _pick(data, "archiveParts", "zipFiles", "archive_parts", default=[])
        return cls(
            project_id=str(_pick(data, "projectId", "project_id", default="")),
            name=str(data.get("name", "")),
            s3_prefix=str(_pick(data, "s3Prefix", "s3_prefix", default="")),
            created_at=str(_pick(data, "createdAt", "created_at", default="")),
            image_count=int(_pick(data, "imageCount", "image_count", default=0)),
            keywords=list(data.get("keywords") or []),
            catalog_file=str(_pick(data, "catalogFile", "catalog_file", default="")),
            archive_parts=[ArchivePart.from_dict(p) for p in parts],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "projectId": self.project_id,
            "name": self.name,
            "s3Prefix": self.s3_prefix,
            "createdAt": self.created_at,
            "imageCount": self.image_count,
            "keywords": list(self.keywords),
            "catalogFile": self.catalog_file,
            "archiveParts": [p.to_dict() for p in self.archive_parts],
        }


# =============================================================================
# Batch (export run 동안만 존재)
# =============================================================================

@dataclass(frozen=True)
class Batch:
    """
    용량 상한 이하로 묶인 연속 이미지 그룹.

    상한 초과는 단일 이미지 배치에서만 허용.
    """
    index: int  # 1-based
    images: tuple[ImageRecord, ...]

    @property
    def total_size(self) -> int:
        return sum(img.file_size for img in self.images)

    def __len__(self) -> int:
        return len(self.images)


# =============================================================================
# Run Log Schemas
# =============================================================================

@dataclass
class WarningLog:
    """
    경고 로그.

    흡수된 실패(엔트리 skip, XMP fallback, 파트 failed)를 모두 기록.
    """
    level: str = "warning"
    code: str = ""
    action_id: str = ""  # 예: batch_2, batch_1_entry
    entry: str = ""  # archive 엔트리 이름 또는 storage key
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "action_id": self.action_id,
            "entry": self.entry,
            "message": self.message,
        }


@dataclass
class ExportRunLog:
    """
    export 실행 로그.

    project/run 단위 결과와 파트별 집계.
    """
    run_id: str
    project_id: str
    started_at: str  # ISO 8601
    finished_at: str | None = None
    result: str = "pending"  # pending, completed, empty, cancelled, failed

    batch_count: int = 0
    success_count: int = 0
    fail_count: int = 0

    parts: list[ArchivePart] = field(default_factory=list)
    warnings: list[WarningLog] = field(default_factory=list)

    # Error (if failed)
    error_code: str | None = None
    error_context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "project_id": self.project_id,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "result": self.result,
            "batch_count": self.batch_count,
            "success_count": self.success_count,
            "fail_count": self.fail_count,
            "parts": [p.to_dict() for p in self.parts],
            "warnings": [w.to_dict() for w in self.warnings],
            "error_code": self.error_code,
            "error_context": self.error_context,
        }


@dataclass
class ExportResult:
    """
    export run 최종 결과.

    "에러 없음"이 "전부 성공"을 뜻하지 않음 → parts의 status 확인 필요.
    """
    project_id: str
    status: ExportStatus
    parts: list[ArchivePart] = field(default_factory=list)
    success_count: int = 0
    fail_count: int = 0
    run_id: str | None = None

    @property
    def cancelled(self) -> bool:
        return self.status == ExportStatus.CANCELLED

    @property
    def failed_parts(self) -> list[ArchivePart]:
        return [p for p in self.parts if p.status == ArchiveStatus.FAILED]

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "status": self.status.value,
            "run_id": self.run_id,
            "success_count": self.success_count,
            "fail_count": self.fail_count,
            "parts": [p.to_dict() for p in self.parts],
        }
