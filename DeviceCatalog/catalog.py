"""
Device Catalog - The device's track list and playlists.

The catalog is loaded once from the device, mutated in memory, and written
back only when write() is called. Nothing touches the device's catalog file
between those two points, so an in-memory change can always be undone by
reversing it before the next write.

Location on device: /iPod_Control/iTunes/podsync.json

Invariant: every track in the track list is a member of the master playlist.
"""

import json
import logging
import os
import random
import time
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

from .storage import MusicStorage, location_to_path, path_to_location

logger = logging.getLogger(__name__)

CATALOG_FILENAME = "podsync.json"
CATALOG_PATH = "iPod_Control/iTunes"
CONTROL_DIR = "iPod_Control"
SPEAKABLE_PATH = "iPod_Control/Speakable/Tracks"
CATALOG_VERSION = 1

MASTER_PLAYLIST_NAME = "iPod"


class CatalogError(Exception):
    """Raised when the device catalog can't be read, written or copied to."""


def generate_dbid() -> int:
    """Generate a random 64-bit database ID for a track."""
    return random.getrandbits(64)


@dataclass(eq=False)
class Track:
    """A catalog entry.

    Tracks compare by identity: syncing the same source twice yields two
    distinct entries that must be removable independently.
    """

    title: Optional[str] = None
    album: Optional[str] = None
    artist: Optional[str] = None
    genre: Optional[str] = None

    size: int = 0  # File size in bytes
    bitrate: int = 0  # kbps
    length: int = 0  # Duration in milliseconds
    track_number: int = 0

    filetype: str = ""  # mp3, m4a, ...
    location: str = ""  # ":iPod_Control:Music:F00:ABCD.mp3", empty until copied
    dbid: int = 0  # Assigned when added to a catalog
    date_added: int = 0  # Unix timestamp

    # Local source file; never persisted
    source_path: Optional[Path] = field(default=None, repr=False)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "source_path"
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Track":
        """Create from dict (JSON parsing). Unknown keys and mistyped values are ignored."""
        track = cls()
        for f in fields(cls):
            if f.name == "source_path" or f.name not in data:
                continue
            value = data[f.name]
            if f.default is None:
                valid = value is None or isinstance(value, str)
            else:
                valid = isinstance(value, type(f.default)) and not isinstance(value, bool)
            if valid:
                setattr(track, f.name, value)
            else:
                logger.warning(f"Ignoring invalid {f.name} {value!r} in catalog track")
        return track


@dataclass(eq=False)
class Playlist:
    """A named, ordered list of catalog tracks."""

    name: str
    is_master: bool = False
    tracks: list[Track] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "is_master": self.is_master,
            "tracks": [t.dbid for t in self.tracks],
        }


class Catalog:
    """
    In-memory device catalog.

    Usage:
        catalog = Catalog.parse("/media/IPOD")
        track = Track(title="Song")
        catalog.add_track(track)
        catalog.playlist_add_track(catalog.master_playlist, track)
        catalog.copy_track_to_device(track, "/music/song.mp3")
        catalog.write()
    """

    def __init__(
        self,
        mountpoint: str | Path,
        tracks: Optional[list[Track]] = None,
        playlists: Optional[list[Playlist]] = None,
    ):
        self.mountpoint = Path(mountpoint)
        self.catalog_dir = self.mountpoint / CATALOG_PATH
        self.catalog_file = self.catalog_dir / CATALOG_FILENAME
        self.storage = MusicStorage(self.mountpoint)

        self.tracks: list[Track] = tracks if tracks is not None else []
        self.playlists: list[Playlist] = playlists if playlists is not None else []

        if not any(p.is_master for p in self.playlists):
            master = Playlist(MASTER_PLAYLIST_NAME, is_master=True, tracks=list(self.tracks))
            self.playlists.insert(0, master)

    # ── Loading ─────────────────────────────────────────────────────────────

    @classmethod
    def parse(cls, mountpoint: str | Path) -> "Catalog":
        """
        Load the catalog from a mounted device.

        A device without a catalog file yields an empty catalog holding only
        the master playlist.

        Raises:
            CatalogError: if the mountpoint isn't a device or the file is corrupt
        """
        mountpoint = Path(mountpoint)
        if not (mountpoint / CONTROL_DIR).is_dir():
            raise CatalogError(f"{mountpoint} doesn't look like an iPod (no {CONTROL_DIR})")

        catalog_file = mountpoint / CATALOG_PATH / CATALOG_FILENAME
        if not catalog_file.exists():
            logger.info(f"No catalog found at {catalog_file}, starting empty")
            return cls(mountpoint)

        try:
            with open(catalog_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise CatalogError(f"Invalid catalog file {catalog_file}: {e}") from e
        except OSError as e:
            raise CatalogError(f"Can't read catalog file {catalog_file}: {e}") from e

        if not isinstance(data, dict):
            raise CatalogError(f"Invalid catalog file {catalog_file}: not an object")

        try:
            tracks, playlists = cls._rebuild(data)
        except (AttributeError, TypeError, ValueError) as e:
            raise CatalogError(f"Invalid catalog file {catalog_file}: {e}") from e

        catalog = cls(mountpoint, tracks, playlists)

        master = catalog.master_playlist
        for track in catalog.tracks:
            if track not in master.tracks:
                logger.warning(f"Track {track.title!r} missing from master playlist, re-adding")
                master.tracks.append(track)

        logger.info(f"Loaded catalog with {len(catalog.tracks)} tracks, {len(catalog.playlists)} playlists")
        return catalog

    @staticmethod
    def _rebuild(data: dict) -> tuple[list[Track], list[Playlist]]:
        """Rebuild tracks and playlists from parsed JSON. Raises TypeError on a bad shape."""
        track_dicts = data.get("tracks", [])
        playlist_dicts = data.get("playlists", [])
        if not isinstance(track_dicts, list) or not isinstance(playlist_dicts, list):
            raise TypeError("tracks and playlists must be lists")

        tracks = []
        for t in track_dicts:
            if not isinstance(t, dict):
                raise TypeError(f"track entry {t!r} is not an object")
            tracks.append(Track.from_dict(t))
        by_dbid = {t.dbid: t for t in tracks}

        playlists = []
        for p in playlist_dicts:
            if not isinstance(p, dict):
                raise TypeError(f"playlist entry {p!r} is not an object")
            members = []
            for dbid in p.get("tracks", []):
                track = by_dbid.get(dbid)
                if track is None:
                    logger.warning(f"Playlist {p.get('name')!r} references unknown track {dbid!r}")
                    continue
                members.append(track)
            playlists.append(Playlist(str(p.get("name", "")), bool(p.get("is_master")), members))
        return tracks, playlists

    # ── Tracks and playlists ────────────────────────────────────────────────

    @property
    def master_playlist(self) -> Playlist:
        for playlist in self.playlists:
            if playlist.is_master:
                return playlist
        raise CatalogError("Catalog has no master playlist")

    def add_track(self, track: Track, position: int = -1) -> None:
        """Add a track to the track list, assigning its dbid and date_added."""
        if not track.dbid:
            existing = {t.dbid for t in self.tracks}
            track.dbid = generate_dbid()
            while track.dbid in existing or not track.dbid:
                track.dbid = generate_dbid()
        if not track.date_added:
            track.date_added = int(time.time())

        if position < 0:
            self.tracks.append(track)
        else:
            self.tracks.insert(position, track)

    def remove_track(self, track: Track) -> bool:
        """Remove a track from the track list. Returns True if it was present."""
        if track in self.tracks:
            self.tracks.remove(track)
            return True
        return False

    def new_playlist(self, name: str) -> Playlist:
        playlist = Playlist(name)
        self.playlists.append(playlist)
        return playlist

    def playlist_add_track(self, playlist: Playlist, track: Track, position: int = -1) -> None:
        if position < 0:
            playlist.tracks.append(track)
        else:
            playlist.tracks.insert(position, track)

    def playlist_remove_track(self, playlist: Playlist, track: Track) -> bool:
        """Remove every occurrence of a track from a playlist."""
        before = len(playlist.tracks)
        playlist.tracks[:] = [t for t in playlist.tracks if t is not track]
        return len(playlist.tracks) != before

    # ── Files on device ─────────────────────────────────────────────────────

    def filename_on_device(self, track: Track) -> Optional[Path]:
        """Absolute path of the track's file, or None if it was never copied."""
        return location_to_path(self.mountpoint, track.location)

    def copy_track_to_device(self, track: Track, path: str | Path) -> Path:
        """
        Copy a file into device storage and bind it to the track.

        Raises:
            CatalogError: if the source is missing or the copy fails
        """
        source = Path(path)
        if not source.is_file():
            raise CatalogError(f"Source file not found: {source}")

        try:
            dest = self.storage.copy_in(source)
        except OSError as e:
            raise CatalogError(f"Can't copy {source.name} to device: {e}") from e

        track.location = path_to_location(self.mountpoint, dest)
        track.filetype = dest.suffix.lstrip(".").lower()
        track.size = dest.stat().st_size
        return dest

    def speakable_dir(self) -> Optional[Path]:
        """The device's track voiceover directory, if the device has one."""
        path = self.mountpoint / SPEAKABLE_PATH
        return path if path.is_dir() else None

    # ── Persistence ─────────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "version": CATALOG_VERSION,
            "tracks": [t.to_dict() for t in self.tracks],
            "playlists": [p.to_dict() for p in self.playlists],
        }

    def write(self) -> None:
        """
        Write the catalog to the device atomically (temp file + rename).

        Raises:
            CatalogError: if the write fails; the previous file is left intact
        """
        temp_file = self.catalog_file.with_suffix(".json.tmp")
        try:
            self.catalog_dir.mkdir(parents=True, exist_ok=True)
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
            os.replace(temp_file, self.catalog_file)
        except (OSError, TypeError, ValueError) as e:
            temp_file.unlink(missing_ok=True)
            raise CatalogError(f"Can't write catalog: {e}") from e

        logger.info(f"Saved catalog with {len(self.tracks)} tracks")
