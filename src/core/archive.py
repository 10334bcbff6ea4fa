"""
아카이브 조립: 배치 1개 → 무압축 ZIP

처리 순서:
1. catalog 문서 (있으면) - 자체 base name으로 먼저 할당
2. 이미지마다: primary 파일 → related 파일들
   - JPEG: XMP를 APP1에 삽입 (실패 시 원본 + 경고), sidecar 없음
   - RAW: 원본 + 같은 stem의 .xmp sidecar
     (이름이 이미 쓰였으면 {stem}_{n}.xmp + 경고, 메타데이터는 항상 기록)
   - 그 외: 원본 그대로

규칙:
- 파일 하나의 fetch 실패 → 해당 엔트리만 skip, fail_count 증가 (배치 중단 없음)
- 모든 엔트리 ZIP_STORED (원본이 이미 압축됨), file_size를 헤더에 명시
- 결과는 scratch 버퍼(spooled temp file)에 기록 → 업로드 재시도 가능
- FilenameAllocator는 assemble 호출마다 새로 생성
"""

import logging
import posixpath
import tempfile
import zipfile
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO

from src.core.filenames import FilenameAllocator, base_name
from src.core.jpeg import embed_xmp
from src.core.xmp import render_xmp
from src.domain.constants import DEFAULT_SPOOL_MAX_BYTES, XMP_SIDECAR_EXTENSION
from src.domain.errors import EntryError, ErrorCodes, MalformedContainer
from src.domain.formats import classify_format
from src.domain.schemas import Batch, ImageRecord, WarningLog
from src.storage.base import BlobStore

logger = logging.getLogger(__name__)


@dataclass
class AssemblyResult:
    """
    배치 1개의 조립 결과.

    buffer는 처음 위치로 되감긴 상태로 반환됨. 사용 후 close() 필요.
    """
    buffer: BinaryIO
    size: int
    success_count: int = 0
    fail_count: int = 0
    entries: list[str] = field(default_factory=list)
    warnings: list[WarningLog] = field(default_factory=list)

    def read_bytes(self) -> bytes:
        self.buffer.seek(0)
        data = self.buffer.read()
        self.buffer.seek(0)
        return data

    def close(self) -> None:
        self.buffer.close()

    def __enter__(self) -> "AssemblyResult":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class _ArchiveWriter:
    """assemble 1회 동안의 ZIP 쓰기 상태."""

    def __init__(
        self,
        zf: zipfile.ZipFile,
        result: AssemblyResult,
        action_id: str,
        now: datetime,
    ):
        self.zf = zf
        self.result = result
        self.action_id = action_id
        self.date_time = now.timetuple()[:6]
        self.allocator = FilenameAllocator()

    def write(self, name: str, data: bytes) -> None:
        info = zipfile.ZipInfo(name, date_time=self.date_time)
        info.compress_type = zipfile.ZIP_STORED
        info.file_size = len(data)  # zip64 여부를 미리 결정
        with self.zf.open(info, mode="w") as dst:
            dst.write(data)
        self.result.entries.append(name)
        logger.debug("  Added %s (%d bytes, stored)", name, len(data))

    def warn(self, code: str, entry: str, message: str) -> None:
        logger.warning(f"  {message}")
        self.result.warnings.append(
            WarningLog(
                code=code,
                action_id=self.action_id,
                entry=entry,
                message=message,
            )
        )


class ArchiveAssembler:
    """
    배치 → ZIP 조립기.

    blob 저장소에서 원본을 하나씩 가져와 즉시 아카이브에 기록.
    JPEG만 전체 바이트를 메모리에 올려 세그먼트 편집.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        spool_max_bytes: int = DEFAULT_SPOOL_MAX_BYTES,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.blob_store = blob_store
        self.spool_max_bytes = spool_max_bytes
        self.clock = clock

    def assemble(
        self,
        batch: Batch,
        project_name: str,
        catalog_key: str | None = None,
    ) -> AssemblyResult:
        """
        배치 1개를 ZIP으로 조립.

        Args:
            batch: 대상 배치
            project_name: XMP dc:title
            catalog_key: 프로젝트 catalog 문서 storage key (선택)

        Returns:
            AssemblyResult (buffer, size, success/fail 카운트, 엔트리 목록, 경고)

        Raises:
            OSError: scratch 버퍼 쓰기 실패 (배치 단위 실패로 처리됨)
        """
        buffer = tempfile.SpooledTemporaryFile(max_size=self.spool_max_bytes, mode="w+b")
        result = AssemblyResult(buffer=buffer, size=0)
        action_id = f"batch_{batch.index}"

        logger.info(
            f"=== Assembling {action_id}: {len(batch)} images, "
            f"{batch.total_size} bytes ==="
        )

        try:
            with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_STORED, allowZip64=True) as zf:
                writer = _ArchiveWriter(zf, result, action_id, self.clock())

                # catalog가 이미지 엔트리보다 먼저 이름을 차지
                if catalog_key:
                    self._add_catalog(writer, catalog_key)

                for i, img in enumerate(batch.images, start=1):
                    logger.info(f"[{i}/{len(batch)}] Processing: {img.original_file}")
                    self._add_image(writer, img, project_name)
        except BaseException:
            buffer.close()
            raise

        result.size = buffer.seek(0, 2)
        buffer.seek(0)

        logger.info(
            f"{action_id} content complete. Success: {result.success_count}, "
            f"Failed: {result.fail_count}, Size: {result.size} bytes"
        )
        return result

    # =========================================================================
    # Entries
    # =========================================================================

    def _fetch(self, key: str) -> bytes:
        """
        원본 fetch.

        저장소 구현이 어떤 예외를 던지든 EntryError로 통일 → 해당 엔트리만 skip.
        """
        try:
            return self.blob_store.get(key)
        except Exception as e:
            raise EntryError(ErrorCodes.ENTRY_FETCH_FAILED, key=key, cause=str(e)) from e

    def _add_catalog(self, writer: _ArchiveWriter, catalog_key: str) -> None:
        name = writer.allocator.allocate(base_name(catalog_key))
        try:
            data = self._fetch(catalog_key)
        except EntryError as e:
            writer.result.fail_count += 1
            writer.warn(ErrorCodes.CATALOG_FETCH_FAILED, catalog_key, f"Catalog skipped: {e}")
            return
        writer.write(name, data)

    def _add_image(self, writer: _ArchiveWriter, img: ImageRecord, project_name: str) -> None:
        xmp = render_xmp(img, project_name)

        self._add_file(writer, img.original_file, xmp)
        for related_key in img.related_files:
            self._add_file(writer, related_key, xmp)

    def _add_file(self, writer: _ArchiveWriter, key: str, xmp: str) -> bool:
        """
        파일 하나를 포맷에 맞게 추가.

        Returns:
            성공 여부 (실패는 카운트/경고만 남기고 계속)
        """
        name = writer.allocator.allocate(base_name(key))
        if name != base_name(key):
            logger.info(f"  Renamed to avoid duplicate: {name}")

        file_format = classify_format(name)

        try:
            data = self._fetch(key)
        except EntryError as e:
            writer.result.fail_count += 1
            writer.warn(ErrorCodes.ENTRY_FETCH_FAILED, key, f"Entry skipped: {e}")
            return False

        if file_format.embeds_metadata:
            data = self._embed(writer, name, data, xmp)

        writer.write(name, data)
        writer.result.success_count += 1

        if file_format.takes_sidecar:
            self._add_sidecar(writer, name, xmp)

        return True

    def _embed(self, writer: _ArchiveWriter, name: str, data: bytes, xmp: str) -> bytes:
        """XMP 삽입. 실패 시 원본 바이트 (경고만)."""
        try:
            embedded = embed_xmp(data, xmp)
        except (MalformedContainer, ValueError) as e:
            writer.warn(
                ErrorCodes.XMP_EMBED_SKIPPED,
                name,
                f"Failed to embed XMP in {name}, using original file: {e}",
            )
            return data

        logger.debug(
            "  XMP embedded (original: %d bytes, with XMP: %d bytes)",
            len(data), len(embedded),
        )
        return embedded

    def _add_sidecar(self, writer: _ArchiveWriter, name: str, xmp: str) -> None:
        sidecar = posixpath.splitext(name)[0] + XMP_SIDECAR_EXTENSION
        if not writer.allocator.claim(sidecar):
            renamed = writer.allocator.allocate(sidecar)
            writer.warn(
                ErrorCodes.SIDECAR_NAME_TAKEN,
                sidecar,
                f"Sidecar {sidecar} already in archive, written as {renamed} for {name}",
            )
            sidecar = renamed
        writer.write(sidecar, xmp.encode("utf-8"))
