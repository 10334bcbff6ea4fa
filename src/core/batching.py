"""
배치 분할: 이미지 목록 → 용량 상한 이하의 연속 그룹

규칙:
- original_file 기준 안정 정렬 (동일 키는 입력 순서 유지) → 재실행 시 동일 결과
- 누적 크기가 상한을 넘게 되면 (현재 배치가 비어 있지 않을 때만) 새 배치 시작
- 상한보다 큰 단일 이미지는 단독 배치 (거부/분할 없음)
- 입력 0건 → 배치 0개 (호출자가 "export할 것 없음"으로 처리)
"""

import logging
from collections.abc import Iterable

from src.domain.schemas import Batch, ImageRecord

logger = logging.getLogger(__name__)


def sort_images(images: Iterable[ImageRecord]) -> list[ImageRecord]:
    """primary 파일 storage key 기준 안정 정렬."""
    return sorted(images, key=lambda img: img.original_file)


def plan_batches(
    images: Iterable[ImageRecord],
    ceiling_bytes: int,
) -> list[Batch]:
    """
    이미지 목록을 용량 상한 이하의 배치로 분할.

    Args:
        images: export 대상 이미지 (순서 무관, 내부에서 정렬)
        ceiling_bytes: 배치당 원본 크기 누적 상한

    Returns:
        Batch 목록 (index는 1부터)

    Raises:
        ValueError: ceiling_bytes <= 0
    """
    if ceiling_bytes <= 0:
        raise ValueError(f"ceiling_bytes must be positive, got {ceiling_bytes}")

    ordered = sort_images(images)
    groups: list[list[ImageRecord]] = []
    current: list[ImageRecord] = []
    current_size = 0

    for img in ordered:
        if current and current_size + img.file_size > ceiling_bytes:
            logger.debug(
                "Batch %d closed: %d images, %d bytes",
                len(groups) + 1, len(current), current_size,
            )
            groups.append(current)
            current = []
            current_size = 0

        current.append(img)
        current_size += img.file_size

    if current:
        groups.append(current)

    batches = [
        Batch(index=i, images=tuple(group))
        for i, group in enumerate(groups, start=1)
    ]
    logger.info(
        f"Planned {len(batches)} batch(es) for {len(ordered)} images "
        f"(ceiling {ceiling_bytes} bytes)"
    )
    return batches
