"""
test_ssot.py - 원자적 쓰기 / 프로젝트 락 테스트

테스트 케이스:
- 동시 접근 시 두 번째 호출자는 대기
- 락 타임아웃 시 PROJECT_LOCK_TIMEOUT
- stale lock 자동 정리
"""

import json
import os
import threading
import time
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from src.domain.errors import ErrorCodes, ExportError
from src.storage.ssot import (
    LOCK_META_FILENAME,
    atomic_write_bytes,
    atomic_write_json,
    load_json,
    project_lock,
)


class TestAtomicWrite:
    """atomic_write_json / atomic_write_bytes 테스트."""

    def test_json_written(self, tmp_path: Path):
        path = tmp_path / "sub" / "p.json"

        atomic_write_json(path, {"name": "서울"})

        assert json.loads(path.read_text(encoding="utf-8")) == {"name": "서울"}

    def test_overwrite(self, tmp_path: Path):
        path = tmp_path / "p.json"
        atomic_write_json(path, {"v": 1})

        atomic_write_json(path, {"v": 2})

        assert load_json(path) == {"v": 2}

    def test_failed_write_keeps_original(self, tmp_path: Path):
        path = tmp_path / "a.bin"
        path.write_bytes(b"original")

        def broken(f):
            f.write(b"partial")
            raise OSError("disk full")

        with pytest.raises(OSError):
            atomic_write_bytes(path, broken)

        assert path.read_bytes() == b"original"
        assert [p.name for p in tmp_path.iterdir()] == ["a.bin"]

    def test_load_corrupt_json(self, tmp_path: Path):
        path = tmp_path / "bad.json"
        path.write_text("{oops", encoding="utf-8")

        with pytest.raises(ExportError) as exc_info:
            load_json(path)

        assert exc_info.value.code == ErrorCodes.PROJECT_JSON_CORRUPT


class TestProjectLock:
    """project_lock 테스트."""

    def test_lock_released(self, tmp_path: Path, lock_config: dict):
        lock_dir = tmp_path / ".locks" / "p1"

        with project_lock(lock_dir, lock_config):
            assert lock_dir.exists()
            assert (lock_dir / LOCK_META_FILENAME).exists()

        assert not lock_dir.exists()

    def test_second_caller_waits(self, tmp_path: Path):
        """첫 번째 호출자가 끝날 때까지 두 번째는 대기."""
        lock_dir = tmp_path / ".locks" / "p1"
        config = {"pipeline": {"lock_retry_interval": 0.05, "lock_max_retries": 40}}
        order = []

        def first():
            with project_lock(lock_dir, config):
                order.append("first_start")
                time.sleep(0.3)
                order.append("first_end")

        def second():
            time.sleep(0.05)
            with project_lock(lock_dir, config):
                order.append("second_start")

        t1 = threading.Thread(target=first)
        t2 = threading.Thread(target=second)
        t1.start()
        t2.start()
        t1.join()
        t2.join()

        assert order == ["first_start", "first_end", "second_start"]

    def test_timeout(self, tmp_path: Path, lock_config: dict):
        lock_dir = tmp_path / ".locks" / "p1"
        lock_dir.mkdir(parents=True)
        # 다른 호스트 + 방금 생성 → stale 아님
        (lock_dir / LOCK_META_FILENAME).write_text(
            json.dumps({
                "pid": os.getpid(),
                "hostname": "other-host",
                "created_at": datetime.now(UTC).isoformat(),
            }),
            encoding="utf-8",
        )

        with pytest.raises(ExportError) as exc_info:
            with project_lock(lock_dir, lock_config):
                pass

        assert exc_info.value.code == ErrorCodes.PROJECT_LOCK_TIMEOUT

    def test_stale_lock_cleaned(self, tmp_path: Path, lock_config: dict):
        lock_dir = tmp_path / ".locks" / "p1"
        lock_dir.mkdir(parents=True)
        old = datetime.now(UTC) - timedelta(hours=2)
        (lock_dir / LOCK_META_FILENAME).write_text(
            json.dumps({
                "pid": 999999,
                "hostname": "other-host",
                "created_at": old.isoformat(),
            }),
            encoding="utf-8",
        )

        with project_lock(lock_dir, lock_config):
            pass

        assert not lock_dir.exists()
