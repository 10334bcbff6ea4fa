"""
Export Routes: 프로젝트 아카이브 생성/조회/다운로드/삭제.

- POST   /api/projects/{project_id}/export              → export 실행
- GET    /api/projects/{project_id}/archives            → 파트 목록
- GET    /api/projects/{project_id}/archives/status     → background export 상태
- GET    /api/projects/{project_id}/archives/download   → 파트 다운로드 (?key=)
- DELETE /api/projects/{project_id}/archives            → 파트 삭제 (?key= 없으면 전체)
"""

import logging
import posixpath
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from io import BytesIO
from pathlib import Path
from typing import Any

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, StreamingResponse

from src.core.export import ProjectExporter
from src.core.logging import find_project_run_logs, run_log_errors
from src.domain.constants import ARCHIVE_CONTENT_TYPE, GENERATION_TIMEOUT_SECONDS
from src.domain.errors import (
    BatchIOError,
    ErrorCodes,
    FatalLoadError,
    ProjectNotFoundError,
    StoreError,
)
from src.domain.schemas import ArchivePart, ArchiveStatus, ExportStatus, Project
from src.storage.base import BlobStore, MetadataStore

logger = logging.getLogger(__name__)

api_router = APIRouter()

# FatalLoadError 코드 → HTTP status
LOAD_ERROR_STATUS = {
    ErrorCodes.PROJECT_NOT_FOUND: 404,
    ErrorCodes.PROJECT_LOAD_FAILED: 502,
    ErrorCodes.IMAGES_UNAVAILABLE: 502,
}


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_metadata_store(request: Request) -> MetadataStore:
    return request.app.state.metadata_store


def build_exporter(request: Request) -> ProjectExporter:
    """app.state 설정으로 ProjectExporter 생성."""
    return ProjectExporter(
        get_blob_store(request),
        get_metadata_store(request),
        settings=request.app.state.export_settings,
    )


def _load_project(metadata_store: MetadataStore, project_id: str) -> Project:
    try:
        return metadata_store.get_project(project_id)
    except ProjectNotFoundError:
        raise HTTPException(
            status_code=404,
            detail={"code": ErrorCodes.PROJECT_NOT_FOUND, "message": f"Project '{project_id}' not found"},
        )
    except StoreError as e:
        raise HTTPException(
            status_code=502,
            detail={"code": ErrorCodes.PROJECT_LOAD_FAILED, "message": str(e)},
        ) from e


def _mark_generating_failed(
    metadata_store: MetadataStore,
    project_id: str,
    parts: list[ArchivePart],
) -> list[ArchivePart]:
    """generating placeholder → failed 로 바꿔 저장. 저장 실패는 로그만."""
    resolved = [
        replace(p, status=ArchiveStatus.FAILED) if p.status == ArchiveStatus.GENERATING else p
        for p in parts
    ]
    try:
        metadata_store.update_project_archive_parts(project_id, resolved)
    except StoreError as e:
        logger.error(f"Could not clear generating placeholder for {project_id}: {e}")
    return resolved


def _run_export_in_background(
    exporter: ProjectExporter,
    project_id: str,
    pending_parts: list[ArchivePart],
) -> None:
    """
    백그라운드 export.

    pending_parts: 이전 파트 + generating placeholder (요청 시 저장한 목록).
    run이 파트를 저장하지 못하고 끝나면 placeholder를 failed로 바꿈.
    """
    try:
        result = exporter.run(project_id)
    except (FatalLoadError, BatchIOError) as e:
        logger.error(f"Background export failed for {project_id}: {e}")
        _mark_generating_failed(exporter.metadata_store, project_id, pending_parts)
        return

    if result.status == ExportStatus.EMPTY:
        logger.warning(f"Background export for {project_id} found no images")
        _mark_generating_failed(exporter.metadata_store, project_id, pending_parts)


# =============================================================================
# Export
# =============================================================================

@api_router.post("/{project_id}/export")
async def export_project(
    request: Request,
    project_id: str,
    background_tasks: BackgroundTasks,
    background: bool = False,
) -> Any:
    """
    프로젝트 export 실행.

    background=true면 이미지가 있는지 먼저 확인하고, 기존 파트 뒤에
    "generating" placeholder를 기록한 뒤 202 즉시 반환.
    export 완료 시 파트 목록 전체가 교체됨.
    """
    exporter = build_exporter(request)

    if background:
        metadata_store = get_metadata_store(request)
        project = _load_project(metadata_store, project_id)
        try:
            images = await run_in_threadpool(metadata_store.query_images, project_id)
        except StoreError as e:
            raise HTTPException(
                status_code=502,
                detail={"code": ErrorCodes.IMAGES_UNAVAILABLE, "message": str(e)},
            ) from e
        if not images:
            raise HTTPException(
                status_code=400,
                detail={
                    "code": ErrorCodes.PROJECT_HAS_NO_IMAGES,
                    "message": f"Project '{project_id}' has no images to export",
                },
            )

        placeholder = ArchivePart(
            key="",
            size=0,
            image_count=len(images),
            created_at=exporter.clock().isoformat(),
            status=ArchiveStatus.GENERATING,
        )
        previous = [p for p in project.archive_parts if p.status != ArchiveStatus.GENERATING]
        pending_parts = previous + [placeholder]
        try:
            await run_in_threadpool(
                metadata_store.update_project_archive_parts, project_id, pending_parts
            )
        except StoreError as e:
            raise HTTPException(
                status_code=500,
                detail={"code": ErrorCodes.PROJECT_UPDATE_FAILED, "message": str(e)},
            ) from e
        background_tasks.add_task(
            _run_export_in_background, exporter, project_id, pending_parts
        )
        return JSONResponse(
            status_code=202,
            content={"project_id": project_id, "status": ArchiveStatus.GENERATING.value},
        )

    try:
        result = await run_in_threadpool(exporter.run, project_id)
    except FatalLoadError as e:
        status_code = LOAD_ERROR_STATUS.get(e.code, 502)
        raise HTTPException(
            status_code=status_code,
            detail={"code": e.code, "message": str(e)},
        ) from e
    except BatchIOError as e:
        raise HTTPException(
            status_code=500,
            detail={"code": e.code, "message": str(e)},
        ) from e

    return result.to_dict()


# =============================================================================
# Archives
# =============================================================================

@api_router.get("/{project_id}/archives")
async def list_archives(
    request: Request,
    project_id: str,
) -> dict[str, Any]:
    """프로젝트의 아카이브 파트 목록."""
    project = _load_project(get_metadata_store(request), project_id)
    return {
        "project_id": project_id,
        "archives": [p.to_dict() for p in project.archive_parts],
    }


def _collect_run_errors(logs_dir: Path | None, project_id: str, since: datetime) -> list[str]:
    if logs_dir is None:
        return []
    messages: list[str] = []
    for data in find_project_run_logs(logs_dir, project_id, since=since):
        messages.extend(run_log_errors(data))
    return messages


@api_router.get("/{project_id}/archives/status")
async def generation_status(
    request: Request,
    project_id: str,
) -> dict[str, Any]:
    """
    background export 진행 상태.

    - no_generation: generating placeholder 없음
    - generating: 시작 후 GENERATION_TIMEOUT_SECONDS 이내
    - failed: 시간 초과. placeholder를 failed로 바꾸고, 그 사이 run log의 에러를 반환
    """
    metadata_store = get_metadata_store(request)
    project = _load_project(metadata_store, project_id)

    placeholder = next(
        (p for p in project.archive_parts if p.status == ArchiveStatus.GENERATING), None
    )
    if placeholder is None:
        return {
            "project_id": project_id,
            "status": "no_generation",
            "message": "No export in progress",
        }

    now = datetime.now(UTC)
    try:
        started = datetime.fromisoformat(placeholder.created_at)
        if started.tzinfo is None:
            started = started.replace(tzinfo=UTC)
    except ValueError:
        # 시작 시각을 알 수 없으면 시간 초과로 처리
        started = now - timedelta(seconds=GENERATION_TIMEOUT_SECONDS)

    elapsed = now - started
    if elapsed.total_seconds() < GENERATION_TIMEOUT_SECONDS:
        return {
            "project_id": project_id,
            "status": ArchiveStatus.GENERATING.value,
            "message": "Export in progress",
            "elapsed_mins": int(elapsed.total_seconds() // 60),
        }

    logs_dir = request.app.state.export_settings.logs_dir
    messages = await run_in_threadpool(
        _collect_run_errors, logs_dir, project_id, started - timedelta(minutes=1)
    )
    if not messages:
        messages = ["Export timed out with no errors in run logs."]

    logger.warning(f"Export for {project_id} still generating after {elapsed}, marking failed")
    parts = await run_in_threadpool(
        _mark_generating_failed, metadata_store, project_id, project.archive_parts
    )
    return {
        "project_id": project_id,
        "status": ArchiveStatus.FAILED.value,
        "code": ErrorCodes.EXPORT_TIMED_OUT,
        "message": "Export failed after timeout",
        "error_messages": messages,
        "archives": [p.to_dict() for p in parts],
    }


@api_router.get("/{project_id}/archives/download")
async def download_archive(
    request: Request,
    project_id: str,
    key: str,
) -> StreamingResponse:
    """완료된(complete) 아카이브 파트 다운로드."""
    project = _load_project(get_metadata_store(request), project_id)

    part = next((p for p in project.archive_parts if p.key == key), None)
    if part is None or part.status != ArchiveStatus.COMPLETE:
        raise HTTPException(
            status_code=404,
            detail={"code": "ARCHIVE_NOT_FOUND", "message": f"No complete archive '{key}'"},
        )

    try:
        data = await run_in_threadpool(get_blob_store(request).get, key)
    except StoreError as e:
        raise HTTPException(
            status_code=404,
            detail={"code": "ARCHIVE_NOT_FOUND", "message": str(e)},
        ) from e

    filename = posixpath.basename(key)
    return StreamingResponse(
        BytesIO(data),
        media_type=ARCHIVE_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@api_router.delete("/{project_id}/archives")
async def delete_archives(
    request: Request,
    project_id: str,
    key: str | None = None,
) -> dict[str, Any]:
    """
    아카이브 파트 삭제.

    key 없으면 전체 삭제. blob 삭제 실패는 경고만 남기고 레코드에서는 제거.
    """
    metadata_store = get_metadata_store(request)
    blob_store = get_blob_store(request)
    project = _load_project(metadata_store, project_id)

    if key is None:
        targets = list(project.archive_parts)
    else:
        targets = [p for p in project.archive_parts if p.key == key]
        if not targets:
            raise HTTPException(
                status_code=404,
                detail={"code": "ARCHIVE_NOT_FOUND", "message": f"Archive '{key}' not found"},
            )

    for part in targets:
        if not part.key:
            continue  # generating placeholder
        try:
            await run_in_threadpool(blob_store.delete, part.key)
        except StoreError as e:
            logger.warning(f"Failed to delete archive blob {part.key}: {e}")

    remaining = [p for p in project.archive_parts if p not in targets]
    try:
        await run_in_threadpool(
            metadata_store.update_project_archive_parts, project_id, remaining
        )
    except StoreError as e:
        raise HTTPException(
            status_code=500,
            detail={"code": ErrorCodes.PROJECT_UPDATE_FAILED, "message": str(e)},
        ) from e

    return {
        "project_id": project_id,
        "deleted": [p.key for p in targets if p.key],
        "archives": [p.to_dict() for p in remaining],
    }
