#!/usr/bin/env python3
"""
run_export.py - 프로젝트 1개를 ZIP 아카이브로 export

default.yaml의 storage 설정(local/s3)으로 원본을 읽고,
배치별 아카이브를 업로드한 뒤 프로젝트 레코드의 파트 목록을 교체.

종료 코드:
- 0: export 완료 (개별 파트 failed 포함 가능, 로그 확인)
- 1: 프로젝트/이미지 로드 실패 또는 파트 목록 저장 실패

사용법:
    # 기본 설정
    python scripts/run_export.py --project-id proj-001

    # 설정 파일 지정
    python scripts/run_export.py --project-id proj-001 --config prod.yaml
"""

import argparse
import logging
from pathlib import Path

from src.core.config import PROJECT_ROOT, ExportSettings, build_stores, load_config
from src.core.export import ProjectExporter
from src.domain.errors import BatchIOError, FatalLoadError
from src.domain.schemas import ArchiveStatus

# 로깅 설정
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="프로젝트 아카이브 export",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--project-id",
        type=str,
        required=True,
        help="export할 프로젝트 ID",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="설정 파일 경로 (기본: default.yaml)",
    )

    args = parser.parse_args(argv)

    config_path = Path(args.config) if args.config else None
    config = load_config(config_path)
    settings = ExportSettings.from_config(config, PROJECT_ROOT)
    blob_store, metadata_store = build_stores(config, PROJECT_ROOT)

    exporter = ProjectExporter(blob_store, metadata_store, settings=settings)

    try:
        result = exporter.run(args.project_id)
    except FatalLoadError as e:
        logger.error(f"Export failed: {e}")
        return 1
    except BatchIOError as e:
        logger.error(f"Export finished but project update failed: {e}")
        return 1

    # 결과 출력
    logger.info("=" * 50)
    logger.info(f"Export 결과: {result.status.value} (run {result.run_id})")
    logger.info(f"  성공: {result.success_count} files, 실패: {result.fail_count} files")
    for part in result.parts:
        marker = "OK" if part.status == ArchiveStatus.COMPLETE else "FAILED"
        logger.info(f"  [{marker}] {part.key} ({part.size} bytes, {part.image_count} images)")
    if result.failed_parts:
        logger.warning(f"  실패 파트: {len(result.failed_parts)}개")

    return 0


if __name__ == "__main__":
    exit(main())
