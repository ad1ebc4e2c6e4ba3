"""
Sync Executor - Syncs batches of media library tracks to the device.

A batch is all-or-nothing. For each id, in order:
1. Import the track's metadata from the media library
2. Transcode the source to MP3 if needed
3. Register the track in the catalog and copy its file to the device
4. Delete the temporary transcode, if any

Every registered track goes into the batch's undo log. When all ids are
done the catalog is written to the device ONCE. If anything fails, including
that final write, the undo log is replayed (every track registered by this
batch is removed again) and a single BatchSyncError naming the first failure
is raised. The catalog is never written during a rollback.

clear_all() is the odd one out: it removes every track best-effort, with no
rollback, and writes the catalog once at the end.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Iterable, Iterator, Optional

from DeviceCatalog import Catalog, CatalogError, Track
from MediaLibrary import MediaLibraryClient

from .device_writer import CatalogHandle, DeviceWriter
from .errors import BatchSyncError, CatalogPersistFailed, SyncError
from .metadata_import import MetadataImporter
from .narration import Narrator, NullNarrator
from .transcoder import Transcoder, copy_metadata

logger = logging.getLogger(__name__)


class SyncState(Enum):
    IDLE = auto()
    PROCESSING = auto()
    COMMITTING = auto()
    ROLLING_BACK = auto()


@dataclass
class SyncContext:
    """Everything a sync needs: the device, the library and the tools."""

    catalog: Catalog
    client: MediaLibraryClient
    transcoder: Transcoder
    narrator: Narrator = field(default_factory=NullNarrator)


@dataclass
class SyncProgress:
    """Progress info for sync callbacks."""

    stage: str  # "sync", "write_database", "rollback"
    current: int
    total: int
    track_id: Optional[int] = None
    message: str = ""


@dataclass
class SyncResult:
    """Result of a successful batch."""

    tracks_added: int = 0
    tracks_transcoded: int = 0
    added: list[Track] = field(default_factory=list)

    @property
    def summary(self) -> str:
        if not self.tracks_added:
            return "No changes made."
        lines = [f"  Added {self.tracks_added} tracks"]
        if self.tracks_transcoded:
            lines.append(f"  Transcoded {self.tracks_transcoded} tracks")
        return "Sync completed:\n" + "\n".join(lines)


@dataclass
class ClearResult:
    """Result of clearing the device."""

    tracks_removed: int = 0
    # Titles of tracks whose file could not be deleted from the device
    files_left: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.files_left

    @property
    def summary(self) -> str:
        status = f"Removed {self.tracks_removed} tracks"
        if self.files_left:
            status += f" ({len(self.files_left)} files could not be deleted)"
        return status


class UndoLog:
    """Tracks registered during the current batch, newest last."""

    def __init__(self):
        self._handles: list[CatalogHandle] = []

    def record(self, handle: CatalogHandle) -> None:
        self._handles.append(handle)

    def __len__(self) -> int:
        return len(self._handles)

    def __iter__(self) -> Iterator[CatalogHandle]:
        return iter(self._handles)

    def replay(self, writer: DeviceWriter) -> int:
        """Remove every recorded track, newest first. Returns the count."""
        count = 0
        while self._handles:
            handle = self._handles.pop()
            if not writer.remove(handle):
                logger.warning(f"Rollback left the file of {handle.track.title!r} on the device")
            count += 1
        return count


class SyncExecutor:
    """
    Syncs media library ids to the device.

    Usage:
        context = SyncContext(catalog, client, Transcoder())
        executor = SyncExecutor(context)
        try:
            result = executor.sync_batch([42, 43])
        except BatchSyncError as e:
            print(e)        # "Sync failed: <first failure>"
    """

    def __init__(self, context: SyncContext):
        self.context = context
        self.importer = MetadataImporter(context.client)
        self.writer = DeviceWriter(context.catalog, context.narrator)
        self.state = SyncState.IDLE

    # ── Public API ──────────────────────────────────────────────────────────

    def sync_batch(
        self,
        ids: Iterable[object],
        progress_callback: Optional[Callable[[SyncProgress], None]] = None,
    ) -> SyncResult:
        """
        Sync an ordered sequence of ids. Atomic: all tracks or none.

        Duplicate ids are synced independently (two catalog entries).

        Raises:
            BatchSyncError: after rolling back, with the first failure as `cause`
        """
        ids = list(ids)
        result = SyncResult()
        if not ids:
            logger.info("Nothing to sync")
            return result

        undo_log = UndoLog()
        track_id = None
        self.state = SyncState.PROCESSING
        try:
            for i, track_id in enumerate(ids):
                if progress_callback:
                    progress_callback(SyncProgress("sync", i + 1, len(ids), track_id))

                handle, transcoded = self._sync_track(track_id, undo_log)
                result.added.append(handle.track)
                result.tracks_added += 1
                if transcoded:
                    result.tracks_transcoded += 1

            track_id = None
            self.state = SyncState.COMMITTING
            if progress_callback:
                progress_callback(SyncProgress("write_database", 0, 1, message="Writing database..."))
            self._commit()

        except SyncError as e:
            self._roll_back(undo_log, progress_callback)
            raise BatchSyncError(e, track_id) from e
        except Exception:
            self._roll_back(undo_log, progress_callback)
            raise
        finally:
            self.state = SyncState.IDLE

        logger.info(f"Synced {result.tracks_added} tracks")
        return result

    def clear_all(self) -> ClearResult:
        """
        Remove every track from the device, then write the catalog once.

        Playlists are kept, even if empty.

        Raises:
            CatalogPersistFailed: if the final write fails
        """
        result = ClearResult()
        for track in list(self.context.catalog.tracks):
            if not self.writer.remove(self.writer.handle_for(track)):
                result.files_left.append(track.title or "")
            result.tracks_removed += 1

        self._commit()

        if result.complete:
            logger.info(result.summary)
        else:
            logger.warning(result.summary)
        return result

    # ── Internals ───────────────────────────────────────────────────────────

    def _sync_track(self, track_id: object, undo_log: UndoLog) -> tuple[CatalogHandle, bool]:
        track = self.importer.import_track(track_id)
        logger.info(f"Syncing track {track.title} by {track.artist}")

        normalized = self.context.transcoder.normalize(track.source_path)
        try:
            if normalized.is_temporary:
                copy_metadata(track, normalized.path)

            handle = self.writer.register(track)
            # Recorded before the copy so a failed copy is rolled back too
            undo_log.record(handle)
            self.writer.materialize(handle, normalized.path)
        finally:
            normalized.cleanup()

        self.writer.narrate(handle)
        return handle, normalized.is_temporary

    def _commit(self) -> None:
        try:
            self.context.catalog.write()
        except CatalogError as e:
            raise CatalogPersistFailed(f"can't write database: {e}") from e

    def _roll_back(
        self,
        undo_log: UndoLog,
        progress_callback: Optional[Callable[[SyncProgress], None]] = None,
    ) -> None:
        self.state = SyncState.ROLLING_BACK
        if progress_callback:
            progress_callback(SyncProgress("rollback", 0, len(undo_log), message="Rolling back..."))

        removed = undo_log.replay(self.writer)
        if removed:
            logger.info(f"Rolled back {removed} tracks")
