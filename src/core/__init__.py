"""
Core layer: export 엔진.

역할:
- 배치 분할, 엔트리 이름 할당
- XMP 렌더링, JPEG APP1 삽입
- 배치 → ZIP 조립, 프로젝트 export 오케스트레이션
- run log
"""

from .archive import ArchiveAssembler, AssemblyResult
from .batching import plan_batches, sort_images
from .export import ExportStage, ProjectExporter
from .filenames import FilenameAllocator, base_name
from .ids import build_archive_key, generate_run_id, sanitize_archive_name
from .jpeg import embed_xmp, extract_xmp, parse_segments, serialize_segments
from .logging import create_run_log, emit_warning, find_project_run_logs, save_run_log
from .xmp import render_xmp

__all__ = [
    # batching
    "plan_batches",
    "sort_images",
    # filenames
    "FilenameAllocator",
    "base_name",
    # ids
    "generate_run_id",
    "sanitize_archive_name",
    "build_archive_key",
    # xmp / jpeg
    "render_xmp",
    "parse_segments",
    "serialize_segments",
    "embed_xmp",
    "extract_xmp",
    # archive / export
    "ArchiveAssembler",
    "AssemblyResult",
    "ExportStage",
    "ProjectExporter",
    # logging
    "create_run_log",
    "emit_warning",
    "save_run_log",
    "find_project_run_logs",
]
