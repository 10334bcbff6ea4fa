"""
Export orchestration: 프로젝트 → 아카이브 파트들

흐름:
START → LOAD_PROJECT → LOAD_IMAGES → PLAN → (배치마다 ASSEMBLE → UPLOAD → RECORD)
      → PERSIST → DONE
로드 실패 시 ABORTED (FatalLoadError 전파).

실패 정책:
- 프로젝트/이미지 로드 실패 → FatalLoadError (run 전체 중단)
- 이미지 0건 → ExportResult(status=empty), 업로드/저장 없음
- 배치 assemble/upload 실패 → 해당 ArchivePart만 failed, 다음 배치 계속
- 파트 목록 저장 실패 → run log 저장 후 BatchIOError(PROJECT_UPDATE_FAILED)
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import Enum

from src.core.archive import ArchiveAssembler
from src.core.batching import plan_batches
from src.core.config import ExportSettings
from src.core.ids import build_archive_key, sanitize_archive_name
from src.core.logging import (
    complete_run_log,
    create_run_log,
    emit_warning,
    record_part,
    save_run_log,
)
from src.domain.constants import ARCHIVE_CONTENT_TYPE
from src.domain.errors import (
    BatchIOError,
    ErrorCodes,
    FatalLoadError,
    ProjectNotFoundError,
)
from src.domain.schemas import (
    ArchivePart,
    ArchiveStatus,
    Batch,
    ExportResult,
    ExportRunLog,
    ExportStatus,
    ImageRecord,
    Project,
    WarningLog,
)
from src.storage.base import BlobStore, MetadataStore

logger = logging.getLogger(__name__)


class ExportStage(str, Enum):
    """export run 진행 단계."""
    START = "start"
    LOAD_PROJECT = "load_project"
    LOAD_IMAGES = "load_images"
    PLAN = "plan"
    ASSEMBLE = "assemble"
    PERSIST = "persist"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class _BatchOutcome:
    part: ArchivePart
    success_count: int = 0
    fail_count: int = 0
    warnings: list[WarningLog] = field(default_factory=list)


@dataclass(frozen=True)
class _RunContext:
    """배치 처리에 공통으로 필요한 값 (run 1회 동안 불변)."""
    project: Project
    archive_name: str
    run_date: date
    batch_total: int


class ProjectExporter:
    """
    프로젝트 export 실행기.

    Example:
        >>> exporter = ProjectExporter(blob_store, metadata_store)
        >>> result = exporter.run("proj-001")
        >>> [p.status for p in result.parts]
        [<ArchiveStatus.COMPLETE: 'complete'>]
    """

    def __init__(
        self,
        blob_store: BlobStore,
        metadata_store: MetadataStore,
        settings: ExportSettings | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.blob_store = blob_store
        self.metadata_store = metadata_store
        self.settings = settings or ExportSettings()
        self.clock = clock
        self.assembler = ArchiveAssembler(
            blob_store,
            spool_max_bytes=self.settings.spool_max_bytes,
            clock=clock,
        )
        self.stage = ExportStage.START
        self.last_run_log: ExportRunLog | None = None

    def run(
        self,
        project_id: str,
        cancel_event: threading.Event | None = None,
    ) -> ExportResult:
        """
        프로젝트 1개 export.

        Args:
            project_id: 대상 프로젝트 ID
            cancel_event: set되면 새 배치를 시작하지 않음 (진행 중 배치는 완료)

        Returns:
            ExportResult (파트 목록은 배치 순서)

        Raises:
            FatalLoadError: 프로젝트/이미지 목록 로드 실패
            BatchIOError: 파트 목록 저장 실패 (PROJECT_UPDATE_FAILED)
        """
        run_log = create_run_log(project_id)
        self.last_run_log = run_log
        self.stage = ExportStage.START

        logger.info(f"=== Export started: {project_id} (run {run_log.run_id}) ===")

        try:
            project = self._load_project(project_id)
            images = self._load_images(project_id)
        except FatalLoadError as e:
            self.stage = ExportStage.ABORTED
            logger.error(f"Export aborted: {e}")
            complete_run_log(run_log, "failed", e.code, e.context)
            self._save_log(run_log)
            raise

        if not images:
            logger.info(f"No images in project {project_id}, nothing to export")
            self.stage = ExportStage.DONE
            complete_run_log(run_log, ExportStatus.EMPTY.value)
            self._save_log(run_log)
            return ExportResult(
                project_id=project_id,
                status=ExportStatus.EMPTY,
                run_id=run_log.run_id,
            )

        self.stage = ExportStage.PLAN
        batches = plan_batches(images, self.settings.ceiling_bytes)
        run_log.batch_count = len(batches)
        context = _RunContext(
            project=project,
            archive_name=sanitize_archive_name(project.name, self.settings.name_max_length),
            run_date=self.clock().date(),
            batch_total=len(batches),
        )

        self.stage = ExportStage.ASSEMBLE
        outcomes = self._run_batches(batches, context, cancel_event)
        for outcome in outcomes:
            run_log.warnings.extend(outcome.warnings)
            record_part(run_log, outcome.part, outcome.success_count, outcome.fail_count)

        parts = [o.part for o in outcomes]
        cancelled = len(outcomes) < len(batches)
        if cancelled:
            logger.warning(
                f"Export cancelled after {len(outcomes)} of {len(batches)} batches"
            )

        self.stage = ExportStage.PERSIST
        self._persist(project_id, parts, run_log)

        status = ExportStatus.CANCELLED if cancelled else ExportStatus.COMPLETED
        self.stage = ExportStage.DONE
        complete_run_log(run_log, status.value)
        self._save_log(run_log)

        logger.info(
            f"=== Export finished: {project_id} | {len(parts)} parts, "
            f"success {run_log.success_count}, failed {run_log.fail_count} ==="
        )

        return ExportResult(
            project_id=project_id,
            status=status,
            parts=parts,
            success_count=run_log.success_count,
            fail_count=run_log.fail_count,
            run_id=run_log.run_id,
        )

    # =========================================================================
    # Load
    # =========================================================================

    def _load_project(self, project_id: str) -> Project:
        self.stage = ExportStage.LOAD_PROJECT
        try:
            return self.metadata_store.get_project(project_id)
        except ProjectNotFoundError as e:
            raise FatalLoadError(ErrorCodes.PROJECT_NOT_FOUND, project_id=project_id) from e
        except Exception as e:
            raise FatalLoadError(
                ErrorCodes.PROJECT_LOAD_FAILED, project_id=project_id, cause=str(e)
            ) from e

    def _load_images(self, project_id: str) -> list[ImageRecord]:
        self.stage = ExportStage.LOAD_IMAGES
        try:
            images = self.metadata_store.query_images(project_id)
        except Exception as e:
            raise FatalLoadError(
                ErrorCodes.IMAGES_UNAVAILABLE, project_id=project_id, cause=str(e)
            ) from e
        logger.info(f"Found {len(images)} images in project {project_id}")
        return images

    # =========================================================================
    # Batches
    # =========================================================================

    def _run_batches(
        self,
        batches: list[Batch],
        context: _RunContext,
        cancel_event: threading.Event | None,
    ) -> list[_BatchOutcome]:
        """
        배치 실행. 결과는 항상 배치 순서.

        취소 시 시작하지 않은 배치는 결과에서 빠짐.
        """
        def guarded(batch: Batch) -> _BatchOutcome | None:
            if cancel_event is not None and cancel_event.is_set():
                return None
            return self._process_batch(batch, context)

        workers = min(self.settings.max_workers, len(batches))
        if workers <= 1:
            outcomes = []
            for batch in batches:
                outcome = guarded(batch)
                if outcome is None:
                    break
                outcomes.append(outcome)
            return outcomes

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="export") as executor:
            futures = [executor.submit(guarded, batch) for batch in batches]
            results = [f.result() for f in futures]
        return [o for o in results if o is not None]

    def _process_batch(self, batch: Batch, context: _RunContext) -> _BatchOutcome:
        key = build_archive_key(
            context.project.storage_prefix,
            context.archive_name,
            context.run_date,
            batch.index,
            context.batch_total,
            root=self.settings.archive_prefix,
        )
        action_id = f"batch_{batch.index}"
        logger.info(f"Processing batch {batch.index}/{context.batch_total} → {key}")

        try:
            assembly = self.assembler.assemble(
                batch,
                context.project.name,
                catalog_key=context.project.catalog_file or None,
            )
        except Exception as e:
            error = BatchIOError(ErrorCodes.ARCHIVE_ASSEMBLY_FAILED, key=key, cause=str(e))
            return self._failed_outcome(batch, key, action_id, error)

        with assembly:
            try:
                self.blob_store.put(key, assembly.buffer, ARCHIVE_CONTENT_TYPE)
            except Exception as e:
                error = BatchIOError(ErrorCodes.ARCHIVE_UPLOAD_FAILED, key=key, cause=str(e))
                outcome = self._failed_outcome(batch, key, action_id, error)
                outcome.warnings[:0] = assembly.warnings
                return outcome

        logger.info(
            f"Uploaded {key} ({assembly.size} bytes, {assembly.success_count} files)"
        )
        part = ArchivePart(
            key=key,
            size=assembly.size,
            image_count=assembly.success_count,
            created_at=self.clock().isoformat(),
            status=ArchiveStatus.COMPLETE,
        )
        return _BatchOutcome(
            part=part,
            success_count=assembly.success_count,
            fail_count=assembly.fail_count,
            warnings=list(assembly.warnings),
        )

    def _failed_outcome(
        self,
        batch: Batch,
        key: str,
        action_id: str,
        error: BatchIOError,
    ) -> _BatchOutcome:
        """배치 단위 실패 → failed 파트 (size 0, image_count = 배치 크기)."""
        logger.error(f"Batch {batch.index} failed: {error}")
        part = ArchivePart(
            key=key,
            size=0,
            image_count=len(batch),
            created_at=self.clock().isoformat(),
            status=ArchiveStatus.FAILED,
        )
        warning = WarningLog(
            code=error.code,
            action_id=action_id,
            entry=key,
            message=str(error),
        )
        return _BatchOutcome(part=part, fail_count=len(batch), warnings=[warning])

    # =========================================================================
    # Persist
    # =========================================================================

    def _persist(self, project_id: str, parts: list[ArchivePart], run_log: ExportRunLog) -> None:
        """파트 목록으로 프로젝트 레코드의 기존 목록을 교체."""
        try:
            self.metadata_store.update_project_archive_parts(project_id, parts)
        except Exception as e:
            self.stage = ExportStage.ABORTED
            error = BatchIOError(
                ErrorCodes.PROJECT_UPDATE_FAILED, project_id=project_id, cause=str(e)
            )
            logger.error(f"Failed to update project {project_id}: {e}")
            emit_warning(
                run_log,
                code=error.code,
                action_id="persist",
                entry=project_id,
                message=str(error),
            )
            complete_run_log(run_log, "failed", error.code, error.context)
            self._save_log(run_log)
            raise error from e

        logger.info(f"Project {project_id} updated with {len(parts)} archive parts")

    def _save_log(self, run_log: ExportRunLog) -> None:
        if self.settings.logs_dir is None:
            return
        try:
            path = save_run_log(run_log, self.settings.logs_dir)
        except OSError as e:
            logger.warning(f"Failed to save run log {run_log.run_id}: {e}")
            return
        logger.debug("Run log saved: %s", path)
