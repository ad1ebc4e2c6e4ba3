import logging

import pytest

import main
from DeviceCatalog import CatalogError
from MediaLibrary import MediaLibraryError


@pytest.fixture(autouse=True)
def settings_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("PODSYNC_SETTINGS_DIR", str(tmp_path / "settings"))


@pytest.fixture
def use_executor(monkeypatch, executor):
    """Make main build the test executor instead of connecting to xmms2."""
    mountpoints = []

    def build(settings, mountpoint):
        mountpoints.append(mountpoint)
        return executor

    monkeypatch.setattr(main, "build_executor", build)
    return mountpoints


def test_no_action_is_an_error(caplog):
    with caplog.at_level(logging.ERROR):
        assert main.run([]) == 1

    assert "Need either --service, --clear or a query string." in caplog.text


def test_unknown_option():
    assert main.run(["--frobnicate"]) == 1


def test_query_syncs(use_executor, library, catalog):
    library.collections["artist:Kraftwerk"] = [1, 42]

    assert main.run(["-m", "/mnt/ipod", "artist:Kraftwerk"]) == 0

    assert use_executor == ["/mnt/ipod"]
    assert len(catalog.tracks) == 2


def test_query_words_are_joined(use_executor, library):
    library.collections["artist:Kraftwerk AND album:Autobahn"] = [1]

    assert main.run(["artist:Kraftwerk", "AND", "album:Autobahn"]) == 0

    assert ("parse_query", "artist:Kraftwerk AND album:Autobahn") in library.calls


def test_default_mountpoint(use_executor, library):
    library.collections["x"] = []

    main.run(["x"])

    assert use_executor == ["/media/IPOD"]


def test_failed_query(use_executor, catalog):
    assert main.run(["badsyntax("]) == 1
    assert catalog.tracks == []


def test_clear_after_confirmation(use_executor, executor, catalog, monkeypatch):
    executor.sync_batch([1])
    monkeypatch.setattr("click.confirm", lambda *args, **kwargs: True)

    assert main.run(["--clear"]) == 0

    assert catalog.tracks == []


def test_clear_declined(use_executor, executor, catalog, monkeypatch):
    executor.sync_batch([1])
    monkeypatch.setattr("click.confirm", lambda *args, **kwargs: False)

    assert main.run(["--clear"]) == 0

    assert len(catalog.tracks) == 1


def test_clear_runs_before_query(use_executor, executor, library, catalog, monkeypatch):
    executor.sync_batch([42])
    library.collections["artist:Kraftwerk"] = [1]
    monkeypatch.setattr("click.confirm", lambda *args, **kwargs: True)

    assert main.run(["--clear", "artist:Kraftwerk"]) == 0

    assert [t.title for t in catalog.tracks] == ["Autobahn"]


def test_service_uses_settings(use_executor, executor, monkeypatch):
    served = []
    monkeypatch.setattr(main, "run_service", lambda ex, host, port: served.append((ex, host, port)))

    assert main.run(["-s"]) == 0

    assert served == [(executor, "127.0.0.1", 8765)]


@pytest.mark.parametrize("error, message", [
    (MediaLibraryError("connection refused"), "Failed to connect to xmms2 daemon, leaving."),
    (CatalogError("no iPod_Control"), "Failed to parse iPod database"),
])
def test_setup_failures(monkeypatch, caplog, error, message):
    def build(settings, mountpoint):
        raise error

    monkeypatch.setattr(main, "build_executor", build)

    with caplog.at_level(logging.ERROR):
        assert main.run(["artist:Kraftwerk"]) == 1

    assert message in caplog.text


def test_badly_shaped_catalog_exits_cleanly(device, monkeypatch, caplog):
    class Connected:
        def __init__(self, name):
            pass

        def connect(self):
            pass

    monkeypatch.setattr(main, "Xmms2Client", Connected)
    (device / "iPod_Control" / "iTunes" / "podsync.json").write_text('{"tracks": ["oops"]}')

    with caplog.at_level(logging.ERROR):
        assert main.run(["-m", str(device), "artist:Kraftwerk"]) == 1

    assert "Failed to parse iPod database: Invalid catalog file" in caplog.text
