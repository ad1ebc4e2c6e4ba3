"""
DeviceCatalog - On-device track catalog for iPod-style players.

This module owns everything that lives on the device:
- Track and playlist records (Catalog, Track, Playlist)
- File placement under /iPod_Control/Music/F00-F49
- Atomic persistence of the catalog file

Usage:
    from DeviceCatalog import Catalog

    catalog = Catalog.parse("/media/IPOD")
    catalog.add_track(track)
    catalog.playlist_add_track(catalog.master_playlist, track)
    catalog.copy_track_to_device(track, "/music/song.mp3")
    catalog.write()
"""

from .catalog import Catalog, CatalogError, Playlist, Track, generate_dbid
from .storage import MusicStorage, location_to_path, path_to_location

__all__ = [
    "Catalog",
    "CatalogError",
    "Playlist",
    "Track",
    "generate_dbid",
    "MusicStorage",
    "location_to_path",
    "path_to_location",
]
