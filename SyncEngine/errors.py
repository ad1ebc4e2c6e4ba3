"""
Sync errors.

Every failure inside a batch is one of the SyncError kinds below. A failed
batch is reported to its caller as a single BatchSyncError wrapping the first
failure (the root cause).
"""

from typing import Optional


class SyncError(Exception):
    """Base class for sync failures."""


class InvalidIdentifier(SyncError):
    """Track id is not a positive integer."""


class MetadataFetchFailed(SyncError):
    """The media library couldn't return the track's properties."""


class PathResolutionFailed(SyncError):
    """The track's url doesn't resolve to a local file."""


class TranscodeFailed(SyncError):
    """The external transcoder failed."""


class DeviceCopyFailed(SyncError):
    """The file couldn't be copied into device storage."""


class CatalogPersistFailed(SyncError):
    """The device catalog couldn't be written."""


class QueryParseFailed(SyncError):
    """A collection query couldn't be parsed."""


class BatchSyncError(SyncError):
    """A batch failed and was rolled back; `cause` is the first failure."""

    def __init__(self, cause: SyncError, track_id: Optional[object] = None):
        self.cause = cause
        self.track_id = track_id
        super().__init__(f"Sync failed: {cause}")
