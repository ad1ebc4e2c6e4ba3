from pathlib import Path

import pytest

from SyncEngine import (
    InvalidIdentifier,
    MetadataFetchFailed,
    MetadataImporter,
    PathResolutionFailed,
    resolve_source_path,
    validate_identifier,
)


def test_import_maps_properties(library, music_dir):
    track = MetadataImporter(library).import_track(42)

    assert track.title == "Radioactivity"
    assert track.artist == "Kraftwerk"
    assert track.album == "Autobahn"
    assert track.genre == "Electronic"
    assert track.size == 1234
    assert track.bitrate == 320
    assert track.length == 180000
    assert track.track_number == 2
    assert track.source_path == music_dir / "radioactivity.flac"
    assert track.dbid == 0
    assert track.location == ""


def test_missing_and_mistyped_properties_use_defaults(library, music_dir):
    library.tracks[9] = {
        "url": "file:///music/a.mp3",
        "title": 17,
        "bitrate": "fast",
        "duration": True,
    }

    track = MetadataImporter(library).import_track(9)

    assert track.title is None
    assert track.artist is None
    assert track.bitrate == 0
    assert track.length == 0


def test_lookup_failure(library):
    with pytest.raises(MetadataFetchFailed, match="failed to query track info"):
        MetadataImporter(library).import_track(404)


def test_invalid_id_makes_no_call(library):
    with pytest.raises(InvalidIdentifier):
        MetadataImporter(library).import_track(-1)
    assert library.calls == []


def test_missing_url(library):
    library.tracks[3] = {"title": "No url"}

    with pytest.raises(PathResolutionFailed, match="can't determine track path"):
        MetadataImporter(library).import_track(3)


@pytest.mark.parametrize("value", [1, 2**31 - 1, 2**40])
def test_validate_identifier_accepts_positive_ints(value):
    assert validate_identifier(value) == value


@pytest.mark.parametrize("value", [0, -1, "1", 1.0, False, None, [1]])
def test_validate_identifier_rejects(value):
    with pytest.raises(InvalidIdentifier):
        validate_identifier(value)


@pytest.mark.parametrize("url, expected", [
    ("file:///music/song.mp3", "/music/song.mp3"),
    ("file:///music/Autobahn+%28live%29.flac", "/music/Autobahn (live).flac"),
    ("file:///music/caf%C3%A9.ogg", "/music/café.ogg"),
    ("file://localhost/music/song.mp3", "/music/song.mp3"),
    (b"file:///music/song.mp3", "/music/song.mp3"),
    ("file:///music/Song+%231.mp3", "/music/Song #1.mp3"),
    ("file:///music/Why%3F.mp3", "/music/Why?.mp3"),
    ("file:///music/A%2BB+C.mp3", "/music/A+B C.mp3"),
])
def test_resolve_source_path(url, expected):
    assert resolve_source_path(url) == Path(expected)


@pytest.mark.parametrize("url", [
    None,
    "",
    "http://example.com/song.mp3",
    "file://nas/music/song.mp3",
    "file:relative/song.mp3",
    b"file:///music/\xff.mp3",
])
def test_resolve_source_path_rejects(url):
    with pytest.raises(PathResolutionFailed):
        resolve_source_path(url)
