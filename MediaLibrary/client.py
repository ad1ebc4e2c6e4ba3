"""
Media library client - Resolves queries to track ids and fetches track info.

The sync engine only depends on MediaLibraryClient. Xmms2Client implements it
on top of the XMMS2 Python bindings (xmmsclient), which ship with XMMS2 itself
rather than on PyPI; they are imported when the client connects.

Track info is returned as a flat, read-only mapping:
    {"title": "...", "artist": "...", "duration": 215000, "url": "file:///..."}
"""

import fnmatch
import logging
import os
from types import MappingProxyType
from typing import Any, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)

# Environment variable locating the XMMS2 daemon (same as the xmms2 CLI)
XMMS_PATH_ENV = "XMMS_PATH"

# Property sources in order of preference, as the XMMS2 clients resolve them
SOURCE_PREFERENCE = ("server", "plugin/*", "client/*", "*")


class MediaLibraryError(Exception):
    """Lookup or transport failure talking to the media library."""


class QuerySyntaxError(MediaLibraryError):
    """A collection query string couldn't be parsed."""


class MediaLibraryClient(Protocol):
    """What the sync engine needs from a media library."""

    def get_info(self, track_id: int) -> Mapping[str, Any]:
        """Fetch a track's properties. Raises MediaLibraryError."""
        ...

    def parse_query(self, query: str) -> Any:
        """Parse a collection query. Raises QuerySyntaxError."""
        ...

    def query_ids(self, collection: Any) -> list[int]:
        """Resolve a parsed collection to track ids. Raises MediaLibraryError."""
        ...


def _source_rank(source: str) -> int:
    for rank, pattern in enumerate(SOURCE_PREFERENCE):
        if fnmatch.fnmatchcase(source, pattern):
            return rank
    return len(SOURCE_PREFERENCE)


def flatten_propdict(propdict: Mapping) -> Mapping[str, Any]:
    """
    Collapse a source-keyed property dict into plain keys.

    Accepts both shapes the bindings produce:
        {("server", "title"): "Song", ("plugin/id3v2", "title"): "Other"}
        {"title": {"server": "Song", "plugin/id3v2": "Other"}}

    When several sources provide a key, the preferred source wins.
    """
    candidates: dict[str, list[tuple[int, Any]]] = {}

    for key, value in propdict.items():
        if isinstance(key, tuple) and len(key) == 2:
            source, name = key
            candidates.setdefault(name, []).append((_source_rank(source), value))
        elif isinstance(value, dict):
            for source, v in value.items():
                candidates.setdefault(key, []).append((_source_rank(source), v))
        else:
            candidates.setdefault(key, []).append((0, value))

    flat = {
        name: min(values, key=lambda rv: rv[0])[1]
        for name, values in candidates.items()
    }
    return MappingProxyType(flat)


class Xmms2Client:
    """
    MediaLibraryClient backed by an XMMS2 daemon.

    Usage:
        client = Xmms2Client("podsync")
        client.connect()                 # uses $XMMS_PATH
        ids = client.query_ids(client.parse_query("artist:Kraftwerk"))
        info = client.get_info(ids[0])
    """

    def __init__(self, name: str = "podsync", path: Optional[str] = None):
        self.name = name
        self.path = path if path is not None else os.environ.get(XMMS_PATH_ENV)
        self._xmms = None
        self._collections = None

    def connect(self) -> None:
        """
        Connect to the daemon.

        Raises:
            MediaLibraryError: if the bindings are missing or the daemon is unreachable
        """
        try:
            import xmmsclient
            import xmmsclient.collections
        except ImportError as e:
            raise MediaLibraryError(
                "XMMS2 Python bindings (xmmsclient) are not installed"
            ) from e

        xmms = xmmsclient.XMMSSync(self.name)
        try:
            xmms.connect(self.path)
        except Exception as e:
            raise MediaLibraryError(f"can't connect to xmms2 daemon: {e}") from e

        self._xmms = xmms
        self._collections = xmmsclient.collections
        logger.info(f"Connected to xmms2 daemon at {self.path or 'default path'}")

    @property
    def connection(self):
        if self._xmms is None:
            raise MediaLibraryError("not connected to xmms2 daemon")
        return self._xmms

    def get_info(self, track_id: int) -> Mapping[str, Any]:
        try:
            propdict = self.connection.medialib_get_info(track_id)
        except MediaLibraryError:
            raise
        except Exception as e:
            raise MediaLibraryError(f"failed to query track info: {e}") from e
        return flatten_propdict(propdict)

    def parse_query(self, query: str) -> Any:
        if self._collections is None:
            raise MediaLibraryError("not connected to xmms2 daemon")
        try:
            return self._collections.coll_parse(query)
        except Exception as e:
            raise QuerySyntaxError(f"can't parse query {query!r}: {e}") from e

    def query_ids(self, collection: Any) -> list[int]:
        try:
            ids = self.connection.coll_query_ids(collection)
        except MediaLibraryError:
            raise
        except Exception as e:
            raise MediaLibraryError(str(e)) from e
        return list(ids)
