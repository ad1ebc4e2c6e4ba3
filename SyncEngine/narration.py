"""
Narration - Spoken track announcements for devices with VoiceOver.

Devices that support VoiceOver have an /iPod_Control/Speakable/Tracks
directory holding one WAV clip per track, named after the track's dbid:

    Speakable/Tracks/00A1B2C3D4E5F607.wav   ("Kraftwerk. Autobahn.")

Narration is optional: clips are generated with espeak when both the
directory and the espeak binary are present, and a failure never affects
the track itself.
"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Protocol

from DeviceCatalog import Catalog, Track

logger = logging.getLogger(__name__)

# Young female US voice with a raised pitch, as close as espeak gets to the
# stock VoiceOver voice
ESPEAK_VOICE = "en-us+f3"
ESPEAK_PITCH = 70
ESPEAK_WORD_GAP = 1


class Narrator(Protocol):
    """Generates and removes a track's spoken clip."""

    def make(self, track: Track) -> bool:
        ...

    def remove(self, track: Track) -> None:
        ...


class NullNarrator:
    """Narrator for devices without VoiceOver."""

    def make(self, track: Track) -> bool:
        return False

    def remove(self, track: Track) -> None:
        pass


def clip_path(track: Track, speakable_dir: Path) -> Optional[Path]:
    """Path of a track's clip, or None if the track can't be announced."""
    if not (track.artist and track.title):
        return None
    return speakable_dir / f"{track.dbid:016X}.wav"


class EspeakNarrator:
    """Narrator writing WAV clips with the espeak speech synthesizer."""

    def __init__(self, speakable_dir: Path, espeak_path: str = "espeak", timeout: int = 30):
        self.speakable_dir = Path(speakable_dir)
        self.espeak_path = espeak_path
        self.timeout = timeout

    def make(self, track: Track) -> bool:
        """
        Synthesize "<artist>. <title>." into the track's clip.

        Raises:
            OSError, subprocess.SubprocessError: if espeak can't be run
        """
        path = clip_path(track, self.speakable_dir)
        if path is None:
            return False

        text = f"{track.artist}. {track.title}."
        result = subprocess.run(
            [
                self.espeak_path,
                "-v", ESPEAK_VOICE,
                "-p", str(ESPEAK_PITCH),
                "-g", str(ESPEAK_WORD_GAP),
                "-w", str(path),
                text,
            ],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=self.timeout,
        )
        if result.returncode != 0:
            path.unlink(missing_ok=True)
            return False
        return True

    def remove(self, track: Track) -> None:
        path = clip_path(track, self.speakable_dir)
        if path is not None:
            path.unlink(missing_ok=True)


def build_narrator(catalog: Catalog, enabled: bool = True) -> Narrator:
    """Pick a narrator for the device: espeak when supported, otherwise none."""
    if not enabled:
        return NullNarrator()

    speakable_dir = catalog.speakable_dir()
    if speakable_dir is None:
        return NullNarrator()

    espeak = shutil.which("espeak")
    if not espeak:
        logger.info("Device supports VoiceOver but espeak is not installed; narration disabled")
        return NullNarrator()

    logger.info(f"VoiceOver narration enabled ({speakable_dir})")
    return EspeakNarrator(speakable_dir, espeak)
