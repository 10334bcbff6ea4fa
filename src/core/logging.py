"""
Run logging: export run log, 경고 이벤트, 완료 처리

규칙:
- 흡수된 실패(엔트리 skip, XMP fallback, 파트 failed)는 모두 경고로 남김
- 경고 필수 컨텍스트: level, code, action_id, entry, message
- run log는 logs/run_{run_id}.json 으로 원자적 저장
"""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from src.core.ids import generate_run_id
from src.domain.errors import ErrorCodes
from src.domain.schemas import ArchivePart, ArchiveStatus, ExportRunLog, WarningLog
from src.storage.ssot import atomic_write_json

logger = logging.getLogger(__name__)

# =============================================================================
# Run Log Management
# =============================================================================


def create_run_log(project_id: str) -> ExportRunLog:
    """
    새 ExportRunLog 생성.

    Args:
        project_id: export 대상 프로젝트 ID

    Returns:
        초기화된 ExportRunLog
    """
    now = datetime.now(UTC).isoformat()

    return ExportRunLog(
        run_id=generate_run_id(),
        project_id=project_id,
        started_at=now,
        result="pending",
    )


def emit_warning(
    run_log: ExportRunLog,
    code: str,
    action_id: str,
    entry: str,
    message: str,
) -> None:
    """
    경고 이벤트 기록.

    Args:
        run_log: ExportRunLog 인스턴스
        code: 경고 코드 (ErrorCodes)
        action_id: 액션 ID (예: batch_2)
        entry: 아카이브 엔트리 이름 또는 storage key
        message: 경고 메시지
    """
    run_log.warnings.append(
        WarningLog(
            level="warning",
            code=code,
            action_id=action_id,
            entry=entry,
            message=message,
        )
    )


def record_part(
    run_log: ExportRunLog,
    part: ArchivePart,
    success_count: int = 0,
    fail_count: int = 0,
) -> None:
    """배치 결과 집계."""
    run_log.parts.append(part)
    run_log.success_count += success_count
    run_log.fail_count += fail_count
    if part.status == ArchiveStatus.FAILED:
        emit_warning(
            run_log,
            code=ErrorCodes.ARCHIVE_PART_FAILED,
            action_id="record_part",
            entry=part.key,
            message=f"Archive part {part.key} failed ({part.image_count} images)",
        )


def complete_run_log(
    run_log: ExportRunLog,
    result: str,
    error_code: str | None = None,
    error_context: dict[str, Any] | None = None,
) -> None:
    """
    ExportRunLog 완료 처리.

    Args:
        run_log: ExportRunLog 인스턴스
        result: completed, empty, cancelled, failed
        error_code: 에러 코드 (실패 시)
        error_context: 에러 컨텍스트 (실패 시)
    """
    run_log.finished_at = datetime.now(UTC).isoformat()
    run_log.result = result

    if result == "failed":
        run_log.error_code = error_code
        run_log.error_context = error_context


def save_run_log(run_log: ExportRunLog, logs_dir: Path) -> Path:
    """
    ExportRunLog를 파일로 저장.

    Args:
        run_log: ExportRunLog 인스턴스
        logs_dir: logs/ 디렉터리 경로

    Returns:
        저장된 파일 경로
    """
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"run_{run_log.run_id}.json"
    atomic_write_json(log_path, run_log.to_dict())
    return log_path


def load_run_log(log_path: Path) -> dict[str, Any]:
    """
    run log 파일 로드.

    Args:
        log_path: 로그 파일 경로

    Returns:
        run log 데이터 (dict)
    """
    data: dict[str, Any] = json.loads(log_path.read_text(encoding="utf-8"))
    return data


def list_run_logs(logs_dir: Path) -> list[Path]:
    """
    logs/ 디렉터리의 모든 run log 파일 목록.

    Args:
        logs_dir: logs/ 디렉터리 경로

    Returns:
        로그 파일 경로 목록 (최신순)
    """
    if not logs_dir.exists():
        return []

    logs = list(logs_dir.glob("run_*.json"))
    logs.sort(key=lambda p: p.stat().st_mtime, reverse=True)
    return logs


def find_project_run_logs(
    logs_dir: Path,
    project_id: str,
    since: datetime | None = None,
) -> list[dict[str, Any]]:
    """
    프로젝트 1개의 run log (최신순).

    Args:
        logs_dir: logs/ 디렉터리 경로
        project_id: 대상 프로젝트 ID
        since: 이 시각 이후 시작된 run만 (None이면 전체)
    """
    found = []
    for log_path in list_run_logs(logs_dir):
        try:
            data = load_run_log(log_path)
        except (OSError, ValueError) as e:
            logger.warning(f"Skipping unreadable run log {log_path}: {e}")
            continue
        if data.get("project_id") != project_id:
            continue
        if since is not None:
            try:
                started = datetime.fromisoformat(data.get("started_at") or "")
            except ValueError:
                continue
            if started < since:
                continue
        found.append(data)
    return found


def run_log_errors(data: dict[str, Any]) -> list[str]:
    """run log에서 사람이 읽을 에러/경고 메시지 추출."""
    messages = []
    if data.get("error_code"):
        messages.append(f"{data['error_code']}: {data.get('error_context') or {}}")
    for warning in data.get("warnings", []):
        messages.append(f"{warning.get('code')}: {warning.get('message')}")
    return messages
