"""
Metadata Importer - Builds a catalog Track from media library properties.

Properties are copied through FIELD_MAP, a table of
(library key → Track attribute, type, default) rows. The local source file
comes from the `url` property, which the media library stores URL-encoded:

    file:///home/me/Music/Kraftwerk/Autobahn+%28live%29.flac
      → /home/me/Music/Kraftwerk/Autobahn (live).flac
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping
from urllib.parse import unquote_to_bytes, urlsplit

from DeviceCatalog import Track
from MediaLibrary import MediaLibraryClient, MediaLibraryError

from .errors import InvalidIdentifier, MetadataFetchFailed, PathResolutionFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldMapping:
    """One library property copied onto a Track attribute."""

    key: str
    attr: str
    kind: type
    default: Any = None

    def extract(self, properties: Mapping[str, Any]) -> Any:
        value = properties.get(self.key)
        # bool is an int subclass; never accept it as a number
        if isinstance(value, self.kind) and not isinstance(value, bool):
            return value
        return self.default


FIELD_MAP: tuple[FieldMapping, ...] = (
    FieldMapping("title", "title", str),
    FieldMapping("album", "album", str),
    FieldMapping("artist", "artist", str),
    FieldMapping("genre", "genre", str),
    FieldMapping("size", "size", int, 0),
    FieldMapping("bitrate", "bitrate", int, 0),
    FieldMapping("duration", "length", int, 0),
    FieldMapping("tracknr", "track_number", int, 0),
)

URL_KEY = "url"


def validate_identifier(track_id: object) -> int:
    """Return the id if it is a positive integer, else raise InvalidIdentifier."""
    if isinstance(track_id, bool) or not isinstance(track_id, int):
        raise InvalidIdentifier(f"can't parse track id {track_id!r}")
    if track_id <= 0:
        raise InvalidIdentifier(f"invalid track id {track_id}")
    return track_id


def resolve_source_path(url: object) -> Path:
    """
    Decode a media library url into a local file path.

    The library encodes urls with %XX escapes and '+' for spaces. Only
    file:// urls on the local host with an absolute path are accepted.

    Raises:
        PathResolutionFailed: if the url is missing or doesn't name a local file
    """
    if isinstance(url, bytes):
        try:
            url = url.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PathResolutionFailed(f"can't determine track path: {e}") from e
    if not isinstance(url, str) or not url:
        raise PathResolutionFailed("can't determine track path: no url")

    parts = urlsplit(url)
    if parts.scheme != "file":
        raise PathResolutionFailed(f"can't determine track path: {url!r} is not a local file url")
    if parts.netloc not in ("", "localhost"):
        raise PathResolutionFailed(f"can't determine track path: {url!r} is on a remote host")

    # Only the path is decoded, so escaped '#' and '?' stay part of the filename
    path = os.fsdecode(unquote_to_bytes(parts.path.replace("+", " ")))
    if not path.startswith("/"):
        raise PathResolutionFailed(f"can't determine track path: {url!r} has no absolute path")
    if "\x00" in path:
        raise PathResolutionFailed(f"can't determine track path: {url!r} contains a NUL byte")

    return Path(path)


class MetadataImporter:
    """
    Fetches a track's properties and maps them onto a new Track.

    Usage:
        importer = MetadataImporter(client)
        track = importer.import_track(42)
        track.source_path   # Path to the local source file
    """

    def __init__(self, client: MediaLibraryClient):
        self.client = client

    def fetch_properties(self, track_id: int) -> Mapping[str, Any]:
        """Blocking fetch of a track's properties as a read-only mapping."""
        try:
            properties = self.client.get_info(track_id)
        except MediaLibraryError as e:
            raise MetadataFetchFailed(f"failed to query track info for id {track_id}: {e}") from e
        return MappingProxyType(dict(properties))

    def import_track(self, track_id: object) -> Track:
        """
        Build a Track for a media library id.

        Raises:
            InvalidIdentifier: before any network call, for a bad id
            MetadataFetchFailed: if the library lookup fails
            PathResolutionFailed: if the url doesn't resolve to a local path
        """
        track_id = validate_identifier(track_id)
        properties = self.fetch_properties(track_id)

        track = Track()
        for mapping in FIELD_MAP:
            setattr(track, mapping.attr, mapping.extract(properties))

        track.source_path = resolve_source_path(properties.get(URL_KEY))
        logger.debug(f"Imported id {track_id}: {track.artist} - {track.title} ({track.source_path})")
        return track
