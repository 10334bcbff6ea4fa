"""
Error definitions for the archive export engine.

전파 정책:
- FatalLoadError만 호출자에게 전체 실패로 전달
- BatchIOError → 해당 ArchivePart만 failed
- EntryError → 해당 엔트리만 skip, fail 카운트 증가
- MalformedContainer → XMP 삽입 생략, 원본 바이트 사용
- 이미지 0건 → 에러 아님 (ExportResult.status == "empty")
"""

from typing import Any


class ExportError(Exception):
    """
    export 과정에서 발생하는 에러의 공통 부모.

    Usage:
        raise EntryError(ErrorCodes.ENTRY_FETCH_FAILED, key=key, cause=str(e))
    """

    def __init__(self, code: str, **context: Any) -> None:
        self.code = code
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"[{self.code}] {ctx_str}" if ctx_str else f"[{self.code}]"

    def to_dict(self) -> dict[str, Any]:
        """로그/JSON 직렬화용."""
        return {
            "code": self.code,
            **self.context,
        }


class FatalLoadError(ExportError):
    """프로젝트 또는 이미지 목록 로드 실패. 전체 run 중단."""


class BatchIOError(ExportError):
    """배치 단위 assemble/upload 실패. 해당 파트만 failed."""


class EntryError(ExportError):
    """배치 내 파일 하나의 fetch/쓰기 실패. 해당 엔트리만 skip."""


class MalformedContainer(ExportError):
    """JPEG 세그먼트 구조 파싱/직렬화 실패. 원본 바이트로 fallback."""


# =============================================================================
# Store Errors (외부 협력자 계약)
# =============================================================================

class StoreError(Exception):
    """blob/metadata 저장소 호출 실패."""


class BlobNotFoundError(StoreError):
    """blob 키 없음."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Blob not found: {key}")


class ProjectNotFoundError(StoreError):
    """프로젝트 레코드 없음."""

    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCodes:
    """에러/경고 코드 상수. run log의 code 필드와 API 응답에 그대로 사용."""

    # === Load (fatal) ===
    PROJECT_NOT_FOUND = "PROJECT_NOT_FOUND"
    PROJECT_LOAD_FAILED = "PROJECT_LOAD_FAILED"
    IMAGES_UNAVAILABLE = "IMAGES_UNAVAILABLE"

    # === Batch ===
    ARCHIVE_ASSEMBLY_FAILED = "ARCHIVE_ASSEMBLY_FAILED"
    ARCHIVE_UPLOAD_FAILED = "ARCHIVE_UPLOAD_FAILED"
    ARCHIVE_PART_FAILED = "ARCHIVE_PART_FAILED"
    PROJECT_UPDATE_FAILED = "PROJECT_UPDATE_FAILED"
    PROJECT_HAS_NO_IMAGES = "PROJECT_HAS_NO_IMAGES"
    EXPORT_TIMED_OUT = "EXPORT_TIMED_OUT"

    # === Entry (warning) ===
    ENTRY_FETCH_FAILED = "ENTRY_FETCH_FAILED"
    CATALOG_FETCH_FAILED = "CATALOG_FETCH_FAILED"
    SIDECAR_NAME_TAKEN = "SIDECAR_NAME_TAKEN"

    # === Container ===
    NOT_A_JPEG = "NOT_A_JPEG"
    TRUNCATED_SEGMENT = "TRUNCATED_SEGMENT"
    MARKER_EXPECTED = "MARKER_EXPECTED"
    SEGMENT_TOO_LARGE = "SEGMENT_TOO_LARGE"
    XMP_TOO_LARGE = "XMP_TOO_LARGE"
    XMP_EMBED_SKIPPED = "XMP_EMBED_SKIPPED"

    # === Lock ===
    PROJECT_LOCK_TIMEOUT = "PROJECT_LOCK_TIMEOUT"
    PROJECT_JSON_CORRUPT = "PROJECT_JSON_CORRUPT"
