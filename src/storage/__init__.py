"""
Storage layer: blob/메타데이터 저장소 계약과 구현.

- base: Protocol (엔진이 의존하는 계약)
- local: 파일시스템 + JSON (개발/단일 호스트)
- s3: AWS S3 blob 저장소
- ssot: 원자적 쓰기, 프로젝트 락
"""

from .base import BlobStore, MetadataStore
from .local import JsonMetadataStore, LocalBlobStore
from .s3 import S3BlobStore

__all__ = [
    "BlobStore",
    "MetadataStore",
    "JsonMetadataStore",
    "LocalBlobStore",
    "S3BlobStore",
]
