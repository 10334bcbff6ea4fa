"""
외부 협력자 계약: blob 저장소, 메타데이터 저장소

엔진은 이 인터페이스만 알고, 구현(로컬 파일/S3/JSON)은 설정으로 선택.
모든 호출은 동기식이며 실패 시 예외를 던짐 (timeout/재시도는 구현체 책임).
"""

from typing import BinaryIO, Protocol

from src.domain.schemas import ArchivePart, ImageRecord, Project


class BlobStore(Protocol):
    """원본 파일 fetch, 아카이브 업로드."""

    def get(self, key: str) -> bytes:
        """
        Raises:
            BlobNotFoundError: 키 없음
            StoreError: 그 외 실패
        """
        ...

    def put(self, key: str, body: bytes | BinaryIO, content_type: str) -> None:
        """
        Raises:
            StoreError: 업로드 실패
        """
        ...

    def exists(self, key: str) -> bool:
        """키 없음 → False. 조회 자체 실패는 StoreError."""
        ...

    def delete(self, key: str) -> None:
        """키가 없어도 에러 아님."""
        ...


class MetadataStore(Protocol):
    """프로젝트/이미지 레코드 조회, 아카이브 파트 기록."""

    def get_project(self, project_id: str) -> Project:
        """
        Raises:
            ProjectNotFoundError: 프로젝트 없음
            StoreError: 그 외 실패
        """
        ...

    def query_images(self, project_id: str) -> list[ImageRecord]:
        """
        Raises:
            StoreError: 조회 실패
        """
        ...

    def update_project_archive_parts(
        self, project_id: str, parts: list[ArchivePart]
    ) -> None:
        """
        프로젝트의 archive_parts 전체 교체 (한 번의 update).

        Raises:
            ProjectNotFoundError: 프로젝트 없음
            StoreError: 그 외 실패
        """
        ...
