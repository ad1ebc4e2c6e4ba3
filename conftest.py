"""
Shared test fixtures: a fake iPod on disk, a fake media library and a fake
transcoder, so sync tests run without XMMS2, ffmpeg or a real device.
"""

import shutil
import tempfile
from pathlib import Path
from urllib.parse import quote

import pytest

from DeviceCatalog import Catalog
from MediaLibrary import MediaLibraryError, QuerySyntaxError
from SyncEngine import NormalizedFile, SyncContext, SyncExecutor, TranscodeFailed
from SyncEngine.transcoder import needs_transcoding


def file_url(path: Path) -> str:
    """Encode a local path the way the media library stores urls."""
    return "file://" + quote(str(path)).replace("%20", "+")


class FakeMediaLibrary:
    """In-memory media library. Records every call in `calls`."""

    def __init__(self):
        self.tracks: dict[int, dict] = {}
        self.collections: dict[str, list[int]] = {}
        self.calls: list[tuple] = []

    def add(self, track_id: int, path: Path, **props) -> None:
        info = {
            "title": f"Track {track_id}",
            "artist": "Kraftwerk",
            "album": "Autobahn",
            "genre": "Electronic",
            "size": 1234,
            "bitrate": 320,
            "duration": 180000,
            "tracknr": track_id % 10,
            "url": file_url(path),
        }
        info.update(props)
        self.tracks[track_id] = info

    def get_info(self, track_id):
        self.calls.append(("get_info", track_id))
        if track_id not in self.tracks:
            raise MediaLibraryError(f"no such entry: {track_id}")
        return dict(self.tracks[track_id])

    def parse_query(self, query):
        self.calls.append(("parse_query", query))
        if query.count("(") != query.count(")"):
            raise QuerySyntaxError(f"can't parse query {query!r}")
        return query

    def query_ids(self, collection):
        self.calls.append(("query_ids", collection))
        if collection not in self.collections:
            raise MediaLibraryError(f"unknown collection {collection!r}")
        return list(self.collections[collection])


class FakeTranscoder:
    """Writes a fake MP3 into its own temp dir for every non-MP3 source."""

    def __init__(self, fail_on: tuple[str, ...] = ()):
        self.fail_on = set(fail_on)
        self.invocations: list[Path] = []
        self.outputs: list[Path] = []

    def normalize(self, path):
        path = Path(path)
        if not needs_transcoding(path):
            return NormalizedFile(path)

        self.invocations.append(path)
        if path.name in self.fail_on:
            raise TranscodeFailed(f"conversion to mp3 failed. Reason: {path.name} is broken")

        temp_dir = Path(tempfile.mkdtemp(prefix="fake-transcode-"))
        output = temp_dir / (path.stem + ".mp3")
        output.write_bytes(b"transcoded " + path.read_bytes())
        self.outputs.append(output)
        return NormalizedFile(output, is_temporary=True, temp_dir=temp_dir)

    def cleanup_leftovers(self):
        for output in self.outputs:
            shutil.rmtree(output.parent, ignore_errors=True)


@pytest.fixture
def device(tmp_path) -> Path:
    """An empty, mounted iPod."""
    mountpoint = tmp_path / "ipod"
    (mountpoint / "iPod_Control" / "iTunes").mkdir(parents=True)
    (mountpoint / "iPod_Control" / "Music").mkdir(parents=True)
    return mountpoint


@pytest.fixture
def catalog(device) -> Catalog:
    return Catalog.parse(device)


@pytest.fixture
def music_dir(tmp_path) -> Path:
    """Source files: one MP3 and one FLAC."""
    music = tmp_path / "music"
    music.mkdir()
    (music / "autobahn.mp3").write_bytes(b"fake mp3 data")
    (music / "radioactivity.flac").write_bytes(b"fake flac data")
    return music


@pytest.fixture
def library(music_dir) -> FakeMediaLibrary:
    lib = FakeMediaLibrary()
    lib.add(1, music_dir / "autobahn.mp3", title="Autobahn")
    lib.add(42, music_dir / "radioactivity.flac", title="Radioactivity")
    return lib


@pytest.fixture
def transcoder():
    fake = FakeTranscoder()
    yield fake
    fake.cleanup_leftovers()


@pytest.fixture
def executor(catalog, library, transcoder) -> SyncExecutor:
    return SyncExecutor(SyncContext(catalog, library, transcoder))
