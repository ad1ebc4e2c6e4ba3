from pathlib import Path

from DeviceCatalog import Track
from SyncEngine import EspeakNarrator, NullNarrator, build_narrator
from SyncEngine.narration import clip_path


def test_clip_path_uses_dbid(tmp_path):
    track = Track(title="Autobahn", artist="Kraftwerk", dbid=0x00A1B2C3D4E5F607)

    assert clip_path(track, tmp_path) == tmp_path / "00A1B2C3D4E5F607.wav"


def test_clip_path_needs_artist_and_title(tmp_path):
    assert clip_path(Track(title="Autobahn"), tmp_path) is None
    assert clip_path(Track(artist="Kraftwerk"), tmp_path) is None


def test_null_narrator():
    narrator = NullNarrator()

    assert not narrator.make(Track(title="Autobahn", artist="Kraftwerk"))
    narrator.remove(Track())


def test_build_narrator_without_speakable_dir(catalog):
    assert isinstance(build_narrator(catalog), NullNarrator)


def test_build_narrator_disabled(catalog, device):
    (device / "iPod_Control" / "Speakable" / "Tracks").mkdir(parents=True)

    assert isinstance(build_narrator(catalog, enabled=False), NullNarrator)


def test_build_narrator_without_espeak(catalog, device, monkeypatch):
    (device / "iPod_Control" / "Speakable" / "Tracks").mkdir(parents=True)
    monkeypatch.setattr("shutil.which", lambda name: None)

    assert isinstance(build_narrator(catalog), NullNarrator)


def test_build_narrator_with_espeak(catalog, device, monkeypatch):
    speakable = device / "iPod_Control" / "Speakable" / "Tracks"
    speakable.mkdir(parents=True)
    monkeypatch.setattr("shutil.which", lambda name: "/usr/bin/espeak")

    narrator = build_narrator(catalog)

    assert isinstance(narrator, EspeakNarrator)
    assert narrator.speakable_dir == speakable
    assert narrator.espeak_path == "/usr/bin/espeak"


def test_failing_espeak_leaves_no_clip(tmp_path):
    script = tmp_path / "espeak"
    script.write_text("#!/bin/sh\nexit 1\n")
    script.chmod(0o755)
    narrator = EspeakNarrator(tmp_path, str(script))
    track = Track(title="Autobahn", artist="Kraftwerk", dbid=1)

    assert not narrator.make(track)
    assert not Path(clip_path(track, tmp_path)).exists()
