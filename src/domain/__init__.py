"""Domain layer: errors, schemas, formats."""

from .errors import (
    BatchIOError,
    EntryError,
    ExportError,
    FatalLoadError,
    MalformedContainer,
)
from .formats import FileFormat, classify_format
from .schemas import (
    ArchivePart,
    ArchiveStatus,
    Batch,
    ExportResult,
    ExportStatus,
    ImageRecord,
    Project,
)

__all__ = [
    "ExportError",
    "FatalLoadError",
    "BatchIOError",
    "EntryError",
    "MalformedContainer",
    "FileFormat",
    "classify_format",
    "ArchivePart",
    "ArchiveStatus",
    "Batch",
    "ExportResult",
    "ExportStatus",
    "ImageRecord",
    "Project",
]
