"""
SyncEngine - Bridge between the media library and the iPod

Core components:
- MetadataImporter: Media library id → catalog Track
- Transcoder: Converts non-MP3 sources to MP3 (temporary files)
- DeviceWriter: Registers, copies and removes catalog tracks
- SyncExecutor: Atomic batch sync with rollback, and clear-all
- run_query: Collection query → ids → SyncExecutor
- Narrators: Optional VoiceOver clips
"""

from .errors import (
    SyncError,
    InvalidIdentifier,
    MetadataFetchFailed,
    PathResolutionFailed,
    TranscodeFailed,
    DeviceCopyFailed,
    CatalogPersistFailed,
    QueryParseFailed,
    BatchSyncError,
)
from .metadata_import import MetadataImporter, FieldMapping, FIELD_MAP, validate_identifier, resolve_source_path
from .transcoder import Transcoder, NormalizedFile, needs_transcoding, is_ffmpeg_available, DEVICE_FORMAT
from .device_writer import DeviceWriter, CatalogHandle
from .narration import Narrator, NullNarrator, EspeakNarrator, build_narrator
from .sync_executor import (
    SyncExecutor,
    SyncContext,
    SyncState,
    SyncResult,
    SyncProgress,
    ClearResult,
    UndoLog,
)
from .query_runner import run_query
from .settings import SyncSettings, DEFAULT_MOUNTPOINT

__all__ = [
    # Errors
    "SyncError",
    "InvalidIdentifier",
    "MetadataFetchFailed",
    "PathResolutionFailed",
    "TranscodeFailed",
    "DeviceCopyFailed",
    "CatalogPersistFailed",
    "QueryParseFailed",
    "BatchSyncError",
    # Metadata import
    "MetadataImporter",
    "FieldMapping",
    "FIELD_MAP",
    "validate_identifier",
    "resolve_source_path",
    # Transcoding
    "Transcoder",
    "NormalizedFile",
    "needs_transcoding",
    "is_ffmpeg_available",
    "DEVICE_FORMAT",
    # Device writes
    "DeviceWriter",
    "CatalogHandle",
    # Narration
    "Narrator",
    "NullNarrator",
    "EspeakNarrator",
    "build_narrator",
    # Sync execution
    "SyncExecutor",
    "SyncContext",
    "SyncState",
    "SyncResult",
    "SyncProgress",
    "ClearResult",
    "UndoLog",
    "run_query",
    # Settings
    "SyncSettings",
    "DEFAULT_MOUNTPOINT",
]
