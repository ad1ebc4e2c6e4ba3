"""
Device Writer - Adds tracks to and removes tracks from the device catalog.

Adding a track is two steps:
1. register(): put it in the track list and the master playlist (memory only)
2. materialize(): copy its file into device storage

remove() undoes both. It is best-effort and never raises, so it can be used
to roll back a half-finished sync as well as to clear the device.

None of these write the catalog back to the device; that is the caller's job.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from DeviceCatalog import Catalog, CatalogError, Track

from .errors import DeviceCopyFailed
from .narration import Narrator, NullNarrator

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class CatalogHandle:
    """A track registered by the writer."""

    track: Track
    materialized: bool = False


def read_audio_info(path: str | Path) -> Optional[tuple[int, int]]:
    """Return (length_ms, bitrate_kbps) of an audio file, or None if unreadable."""
    try:
        import mutagen

        audio = mutagen.File(str(path))
        if audio is None or audio.info is None:
            return None
        length = int(audio.info.length * 1000)
        bitrate = int(getattr(audio.info, "bitrate", 0) or 0) // 1000
        return length, bitrate
    except Exception as e:
        logger.debug(f"Could not read audio info from {path}: {e}")
        return None


class DeviceWriter:
    """
    Registers, copies and removes catalog tracks.

    Usage:
        writer = DeviceWriter(catalog)
        handle = writer.register(track)
        writer.materialize(handle, Path("/music/song.mp3"))
        ...
        writer.remove(handle)
    """

    def __init__(self, catalog: Catalog, narrator: Optional[Narrator] = None):
        self.catalog = catalog
        self.narrator = narrator or NullNarrator()

    def register(self, track: Track) -> CatalogHandle:
        """Add a track to the track list and the master playlist."""
        self.catalog.add_track(track)
        self.catalog.playlist_add_track(self.catalog.master_playlist, track)
        return CatalogHandle(track)

    def materialize(self, handle: CatalogHandle, path: str | Path) -> None:
        """
        Copy `path` into device storage and bind it to the handle's track.

        On failure the track stays registered; the caller must remove it.

        Raises:
            DeviceCopyFailed: if the copy fails
        """
        track = handle.track
        try:
            dest = self.catalog.copy_track_to_device(track, path)
        except (CatalogError, OSError) as e:
            raise DeviceCopyFailed(f"can't copy track to iPod: {e}") from e

        handle.materialized = True

        # The device file may be a transcode; trust it over the library's values
        info = read_audio_info(dest)
        if info is not None:
            length, bitrate = info
            if length:
                track.length = length
            if bitrate:
                track.bitrate = bitrate

    def narrate(self, handle: CatalogHandle) -> None:
        """Create the track's VoiceOver clip. Failures are only logged."""
        if isinstance(self.narrator, NullNarrator):
            return

        logger.info("  creating voiceover track")
        try:
            if not self.narrator.make(handle.track):
                logger.warning(f"Could not create voiceover for {handle.track.title!r}")
        except Exception as e:
            logger.warning(f"Voiceover failed for {handle.track.title!r} (non-fatal): {e}")

    def remove(self, handle: CatalogHandle) -> bool:
        """
        Remove a track from every playlist, the track list and device storage.

        Never raises: files and entries that are already gone are skipped.

        Returns:
            False if the track's file is still on the device afterwards
        """
        track = handle.track
        logger.info(f"Deleting track {track.title}")

        for playlist in self.catalog.playlists:
            self.catalog.playlist_remove_track(playlist, track)

        file_removed = True
        if handle.materialized:
            path = self.catalog.filename_on_device(track)
            if path is not None:
                file_removed = self.catalog.storage.delete(path)

        try:
            self.narrator.remove(track)
        except Exception as e:
            logger.debug(f"Could not remove voiceover for {track.title!r}: {e}")

        if not self.catalog.remove_track(track):
            logger.debug(f"Track {track.title!r} was not in the catalog")

        return file_removed

    def handle_for(self, track: Track) -> CatalogHandle:
        """Handle for a track already in the catalog (e.g. loaded from the device)."""
        return CatalogHandle(track, materialized=bool(track.location))
