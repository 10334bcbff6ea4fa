"""
메타데이터 파일 안전성: 원자적 쓰기 + 프로젝트 락

- 파일 교체는 항상 같은 디렉터리의 임시 파일 → os.replace
- 프로젝트 레코드 갱신은 mkdir 기반 디렉터리 락 안에서만
- 락 소유자 정보(lock.meta)로 죽은 프로세스/오래된 락 판별
- fsync/락 해제 실패는 경고만 (데이터 자체는 이미 교체됨)
"""

import json
import logging
import os
import socket
import tempfile
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager, suppress
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, BinaryIO

from src.domain.errors import ErrorCodes, ExportError

logger = logging.getLogger(__name__)

LOCK_META_FILENAME = "lock.meta"
STALE_LOCK_AFTER_SECONDS = 60 * 60


# =============================================================================
# Lock Owner
# =============================================================================


def _hostname() -> str:
    try:
        return socket.gethostname()
    except OSError:
        return "unknown"


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except OSError:
        return False
    return True


@dataclass(frozen=True)
class LockOwner:
    """락 디렉터리에 기록되는 소유자 정보."""
    pid: int
    hostname: str
    created_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    @classmethod
    def current(cls) -> "LockOwner":
        return cls(pid=os.getpid(), hostname=_hostname())

    @classmethod
    def read(cls, lock_dir: Path) -> "LockOwner | None":
        try:
            data = json.loads((lock_dir / LOCK_META_FILENAME).read_text(encoding="utf-8"))
            return cls(
                pid=int(data["pid"]),
                hostname=str(data["hostname"]),
                created_at=str(data["created_at"]),
            )
        except (OSError, ValueError, KeyError, TypeError):
            return None

    def write(self, lock_dir: Path) -> None:
        meta_path = lock_dir / LOCK_META_FILENAME
        try:
            meta_path.write_text(json.dumps(asdict(self)), encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not record lock owner in {meta_path}: {e}")

    def age_seconds(self) -> float | None:
        try:
            created = datetime.fromisoformat(self.created_at)
        except ValueError:
            return None
        return (datetime.now(UTC) - created).total_seconds()


def is_stale_lock(lock_dir: Path, max_age: float = STALE_LOCK_AFTER_SECONDS) -> bool:
    """
    락이 버려진 상태인지.

    - 같은 호스트의 소유자: 프로세스가 살아 있지 않으면 stale
    - 다른 호스트의 소유자: 생성 후 max_age 초과면 stale
    - 소유자 정보 없음: 디렉터리 mtime 기준
    """
    owner = LockOwner.read(lock_dir)
    if owner is not None:
        if owner.hostname == _hostname():
            return not _pid_alive(owner.pid)
        age = owner.age_seconds()
        if age is not None:
            return age > max_age

    try:
        return time.time() - lock_dir.stat().st_mtime > max_age
    except OSError:
        return False


def _remove_lock_dir(lock_dir: Path) -> None:
    with suppress(FileNotFoundError):
        (lock_dir / LOCK_META_FILENAME).unlink()
    os.rmdir(lock_dir)


def _try_acquire(lock_dir: Path) -> bool:
    try:
        os.mkdir(lock_dir)
    except FileExistsError:
        return False
    LockOwner.current().write(lock_dir)
    return True


def _reclaim_if_stale(lock_dir: Path) -> bool:
    if not is_stale_lock(lock_dir):
        return False
    try:
        _remove_lock_dir(lock_dir)
    except OSError:
        return False
    logger.warning(f"Removed abandoned lock: {lock_dir}")
    return _try_acquire(lock_dir)


# =============================================================================
# Project Lock
# =============================================================================


@contextmanager
def project_lock(lock_dir: Path, config: dict) -> Generator[Path, None, None]:
    """
    프로젝트 레코드 갱신용 디렉터리 락.

    사용법:
        with project_lock(root / ".locks" / project_id, config):
            # projects/{id}.json 읽기 → 수정 → atomic_write_json

    Args:
        lock_dir: 락 디렉터리 (존재 = 잠김)
        config: pipeline.lock_retry_interval, pipeline.lock_max_retries

    Raises:
        ExportError: PROJECT_LOCK_TIMEOUT
    """
    pipeline = config.get("pipeline", {})
    interval = pipeline.get("lock_retry_interval", 0.5)
    max_retries = pipeline.get("lock_max_retries", 10)

    lock_dir.parent.mkdir(parents=True, exist_ok=True)

    acquired = _try_acquire(lock_dir) or _reclaim_if_stale(lock_dir)
    attempts = 1
    while not acquired and attempts < max_retries:
        time.sleep(interval)
        acquired = _try_acquire(lock_dir)
        attempts += 1

    if not acquired:
        raise ExportError(
            ErrorCodes.PROJECT_LOCK_TIMEOUT,
            lock_dir=str(lock_dir),
            attempts=attempts,
            waited_seconds=round((attempts - 1) * interval, 3),
        )

    try:
        yield lock_dir
    finally:
        try:
            _remove_lock_dir(lock_dir)
        except OSError as e:
            logger.warning(f"Could not release lock {lock_dir}: {e} (remove it manually)")


# =============================================================================
# Atomic Write
# =============================================================================


def _fsync(fd: int, what: Path) -> None:
    try:
        os.fsync(fd)
    except OSError as e:
        logger.warning(f"fsync failed for {what}: {e}")


def _fsync_dir(dir_path: Path) -> None:
    try:
        fd = os.open(dir_path, os.O_RDONLY | getattr(os, "O_DIRECTORY", 0))
    except OSError as e:
        logger.warning(f"Could not open {dir_path} for fsync: {e}")
        return
    try:
        _fsync(fd, dir_path)
    finally:
        os.close(fd)


def atomic_write_bytes(path: Path, write: Callable[[BinaryIO], Any]) -> None:
    """
    임시 파일에 쓴 뒤 path로 교체.

    Args:
        path: 대상 파일
        write: 열린 임시 파일을 받아 내용을 쓰는 콜백

    실패하면 임시 파일은 지워지고 기존 파일은 그대로 남음.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = tempfile.NamedTemporaryFile(
        mode="wb", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
    )
    tmp_path = Path(tmp.name)
    try:
        with tmp:
            write(tmp)
            tmp.flush()
            _fsync(tmp.fileno(), path)
        os.replace(tmp_path, path)
    except BaseException:
        with suppress(OSError):
            tmp_path.unlink()
        raise
    _fsync_dir(path.parent)


def atomic_write_json(path: Path, data: dict | list) -> None:
    """UTF-8 JSON (indent 2)으로 원자적 저장."""
    body = json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")
    atomic_write_bytes(path, lambda f: f.write(body))


def load_json(path: Path) -> Any:
    """
    JSON 파일 로드.

    Raises:
        ExportError: PROJECT_JSON_CORRUPT
    """
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ExportError(
            ErrorCodes.PROJECT_JSON_CORRUPT,
            path=str(path),
            error=str(e),
        ) from e
