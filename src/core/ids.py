"""
ID/키 생성: run_id, 아카이브 이름, 아카이브 storage key

규칙:
- 아카이브 키는 결정론적: prefix + 정리된 프로젝트명 + 날짜 (+ part 번호)
- part 번호는 배치가 2개 이상일 때만
"""

import uuid
from datetime import UTC, date, datetime

from src.domain.constants import (
    ARCHIVE_DATE_FORMAT,
    ARCHIVE_KEY_ROOT,
    ARCHIVE_NAME_MAX_LENGTH,
    ARCHIVE_NAME_PLACEHOLDER,
    RUN_ID_PREFIX,
)


def generate_run_id() -> str:
    """
    Run ID 생성.

    고유성 보장: UUID v4
    포맷: RUN-{timestamp}-{uuid[:8]}

    Returns:
        run_id 문자열
    """
    now = datetime.now(UTC)
    timestamp = now.strftime("%Y%m%d%H%M%S")
    unique = uuid.uuid4().hex[:8]

    return f"{RUN_ID_PREFIX}{timestamp}-{unique}"


def sanitize_archive_name(
    name: str,
    max_length: int = ARCHIVE_NAME_MAX_LENGTH,
) -> str:
    """
    아카이브 파일명에 사용할 수 있도록 프로젝트명 정리.

    - 소문자
    - ASCII 영숫자 외 문자 → 밑줄 (연속 밑줄은 하나로)
    - 앞뒤 밑줄 제거
    - 최대 길이 제한
    - 결과가 비면 "project"

    예: "South-West 2024!!" → "south_west_2024"
    """
    sanitized = ""
    for c in name.lower():
        if c.isascii() and c.isalnum():
            sanitized += c
        else:
            sanitized += "_"

    # 연속 밑줄 정리
    while "__" in sanitized:
        sanitized = sanitized.replace("__", "_")

    sanitized = sanitized.strip("_")[:max_length].rstrip("_")

    return sanitized or ARCHIVE_NAME_PLACEHOLDER


def build_archive_key(
    storage_prefix: str,
    sanitized_name: str,
    run_date: date,
    part_number: int,
    part_total: int,
    root: str = ARCHIVE_KEY_ROOT,
) -> str:
    """
    아카이브 storage key 생성.

    Args:
        storage_prefix: 프로젝트 storage prefix
        sanitized_name: sanitize_archive_name() 결과
        run_date: export 실행 날짜
        part_number: 1-based 배치 번호
        part_total: 전체 배치 수

    Returns:
        projects/{prefix}/{name}_{date}.zip 또는 ..._part{n}.zip
    """
    date_str = run_date.strftime(ARCHIVE_DATE_FORMAT)
    stem = f"{sanitized_name}_{date_str}"
    if part_total > 1:
        stem = f"{stem}_part{part_number}"

    prefix = storage_prefix.strip("/")
    parts = [p for p in (root.strip("/"), prefix) if p]
    return "/".join([*parts, f"{stem}.zip"])
