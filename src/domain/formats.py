"""
파일 포맷 분류.

확장자 → 처리 방식 매핑은 닫힌 열거형으로만 관리.
포맷 추가는 constants의 확장자 집합과 이 모듈을 함께 수정.
"""

import posixpath
from enum import Enum

from src.domain.constants import JPEG_EXTENSIONS, RAW_EXTENSIONS


class FileFormat(str, Enum):
    """아카이브 엔트리 처리 방식."""
    JPEG = "jpeg"    # XMP를 APP1 세그먼트로 직접 삽입
    RAW = "raw"      # 원본 + 같은 stem의 .xmp sidecar
    OTHER = "other"  # 원본 그대로

    @property
    def embeds_metadata(self) -> bool:
        return self is FileFormat.JPEG

    @property
    def takes_sidecar(self) -> bool:
        return self is FileFormat.RAW


def classify_format(filename: str) -> FileFormat:
    """
    파일명(또는 storage key) 확장자로 포맷 분류.

    대소문자 무시. 확장자 없으면 OTHER.
    """
    ext = posixpath.splitext(filename)[1].lower()
    if ext in JPEG_EXTENSIONS:
        return FileFormat.JPEG
    if ext in RAW_EXTENSIONS:
        return FileFormat.RAW
    return FileFormat.OTHER
