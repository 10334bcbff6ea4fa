"""
Domain Constants: 아카이브 export 전역 상수.

용량 상한, 아카이브 키 정책, XMP 식별자, 확장자 분류 등
export 전반에서 사용되는 값들.
"""

# =============================================================================
# Batch Ceiling (아카이브 용량 정책)
# =============================================================================
# 압축 전 원본 크기 누적 기준. 단일 파일이 상한을 넘으면 단독 배치.

DEFAULT_CEILING_BYTES = 4 * 1024 * 1024 * 1024  # 4GB
DEFAULT_SPOOL_MAX_BYTES = 64 * 1024 * 1024  # 64MB 초과 시 디스크로 spill

# =============================================================================
# Archive Keys (아카이브 키 정책)
# =============================================================================
# projects/{prefix}/{name}_{YYYY-MM-DD}.zip
# projects/{prefix}/{name}_{YYYY-MM-DD}_part{n}.zip  (배치 2개 이상)

ARCHIVE_KEY_ROOT = "projects"
ARCHIVE_NAME_MAX_LENGTH = 50
ARCHIVE_NAME_PLACEHOLDER = "project"
ARCHIVE_DATE_FORMAT = "%Y-%m-%d"
ARCHIVE_CONTENT_TYPE = "application/zip"

# background export placeholder("generating")가 이 시간 넘게 남아 있으면 failed로 간주
GENERATION_TIMEOUT_SECONDS = 15 * 60

# =============================================================================
# XMP (메타데이터 세그먼트)
# =============================================================================

XMP_NAMESPACE_ID = b"http://ns.adobe.com/xap/1.0/"
XMP_SIDECAR_EXTENSION = ".xmp"

# APP1 length 필드는 2바이트 (자기 자신 포함) → payload 최대 65533
JPEG_MAX_SEGMENT_PAYLOAD = 0xFFFF - 2

COLOR_LABELS = {
    1: "Red",
    2: "Yellow",
    3: "Green",
    4: "Blue",
    5: "Purple",
}

RATING_MIN = 1
RATING_MAX = 5

# =============================================================================
# File Extensions (확장자 분류)
# =============================================================================

JPEG_EXTENSIONS = frozenset({".jpg", ".jpeg"})

RAW_EXTENSIONS = frozenset({
    ".cr2", ".cr3", ".nef", ".arw", ".raf",
    ".orf", ".dng", ".rw2", ".pef", ".srw",
    ".3fr", ".raw", ".rwl", ".mrw", ".nrw",
    ".kdc", ".dcr", ".sr2", ".erf", ".mef",
    ".mos",
})

# =============================================================================
# Run IDs
# =============================================================================

RUN_ID_PREFIX = "RUN-"
