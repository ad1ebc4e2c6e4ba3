"""
Transcoder - Converts audio files to the device format (MP3).

MP3 files pass through untouched. Anything else is handed to an external
tool, run synchronously:

- FFmpeg (default): writes <tmpdir>/<stem>.mp3 with libmp3lame
- A converter script (settings.converter_script): called as
  `script <source>`, prints the path of the MP3 it produced on stdout

Transcoded output is temporary: the caller must call cleanup() on the
returned NormalizedFile once the file has been copied, whether or not the
copy succeeded.
"""

import logging
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import TranscodeFailed

logger = logging.getLogger(__name__)

DEVICE_FORMAT = ".mp3"


@dataclass
class NormalizedFile:
    """A file ready to be copied to the device."""

    path: Path
    is_temporary: bool = False
    # Private directory holding a temporary output, removed with it
    temp_dir: Optional[Path] = None

    def cleanup(self) -> None:
        """Delete a temporary output. No-op for pass-through files."""
        if not self.is_temporary:
            return
        logger.info("  removing temporary mp3 file")
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove temporary file {self.path}: {e}")
        if self.temp_dir is not None:
            shutil.rmtree(self.temp_dir, ignore_errors=True)


def find_ffmpeg() -> Optional[str]:
    """Find ffmpeg binary. Returns path or None."""
    ffmpeg = shutil.which("ffmpeg")
    if ffmpeg:
        return ffmpeg

    for path in ("/usr/local/bin/ffmpeg", "/opt/homebrew/bin/ffmpeg", "/usr/bin/ffmpeg"):
        if Path(path).exists():
            return path

    return None


def is_ffmpeg_available() -> bool:
    """Check if ffmpeg is available."""
    return find_ffmpeg() is not None


def needs_transcoding(filepath: str | Path) -> bool:
    """Check if a file needs transcoding for the device."""
    return Path(filepath).suffix.lower() != DEVICE_FORMAT


def copy_metadata(track, dest_path: str | Path) -> bool:
    """
    Write the track's tags onto a transcoded file.

    Transcoders don't always carry tags over, so the catalog's values are
    re-applied. Best-effort: returns False on any failure.
    """
    try:
        from mutagen.easyid3 import EasyID3
        from mutagen.id3 import ID3NoHeaderError

        try:
            tags = EasyID3(str(dest_path))
        except ID3NoHeaderError:
            tags = EasyID3()

        for key, value in (
            ("title", track.title),
            ("artist", track.artist),
            ("album", track.album),
            ("genre", track.genre),
        ):
            if value:
                tags[key] = value
        if track.track_number:
            tags["tracknumber"] = str(track.track_number)

        tags.save(str(dest_path))
        return True

    except Exception as e:
        logger.warning(f"Could not copy metadata: {e}")
        return False


class Transcoder:
    """
    Normalizes source files to MP3.

    Usage:
        transcoder = Transcoder(bitrate=192)
        normalized = transcoder.normalize(Path("/music/song.flac"))
        try:
            ...copy normalized.path...
        finally:
            normalized.cleanup()
    """

    def __init__(
        self,
        ffmpeg_path: Optional[str] = None,
        converter_script: Optional[str | Path] = None,
        bitrate: int = 192,
        timeout: int = 300,
    ):
        self.ffmpeg_path = ffmpeg_path
        self.converter_script = Path(converter_script) if converter_script else None
        self.bitrate = bitrate
        self.timeout = timeout

    def normalize(self, path: str | Path) -> NormalizedFile:
        """
        Return a device-format version of `path`.

        Raises:
            TranscodeFailed: if conversion fails; nothing temporary is left behind
        """
        path = Path(path)
        if not needs_transcoding(path):
            return NormalizedFile(path)

        if not path.exists():
            raise TranscodeFailed(f"conversion to mp3 failed. Reason: source file not found: {path}")

        logger.info("  converting track to mp3")
        if self.converter_script:
            return self._run_converter_script(path)
        return self._run_ffmpeg(path)

    def _run(self, cmd: list[str]) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise TranscodeFailed("conversion to mp3 failed. Reason: transcoding timed out") from e
        except OSError as e:
            raise TranscodeFailed(f"conversion to mp3 failed. Reason: {e}") from e

    def _run_ffmpeg(self, source_path: Path) -> NormalizedFile:
        ffmpeg = self.ffmpeg_path or find_ffmpeg()
        if not ffmpeg:
            raise TranscodeFailed("conversion to mp3 failed. Reason: ffmpeg not found")

        temp_dir = Path(tempfile.mkdtemp(prefix="podsync-"))
        output_path = temp_dir / (source_path.stem + DEVICE_FORMAT)

        cmd = [
            ffmpeg,
            "-nostdin",
            "-i",
            str(source_path),
            "-vn",  # No video
            "-acodec",
            "libmp3lame",
            "-b:a",
            f"{self.bitrate}k",
            "-y",  # Overwrite output
            str(output_path),
        ]

        try:
            result = self._run(cmd)
        except TranscodeFailed:
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise

        if result.returncode != 0 or not output_path.exists():
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise TranscodeFailed(
                f"conversion to mp3 failed. Reason: ffmpeg exited with status {result.returncode}"
            )

        logger.debug(f"Transcoded {source_path.name} → {output_path}")
        return NormalizedFile(output_path, is_temporary=True, temp_dir=temp_dir)

    def _run_converter_script(self, source_path: Path) -> NormalizedFile:
        result = self._run([str(self.converter_script), str(source_path)])

        lines = [line.strip() for line in (result.stdout or "").splitlines() if line.strip()]
        reported = Path(lines[-1]) if lines else None

        if result.returncode != 0:
            if reported is not None and reported != source_path and reported.is_file():
                reported.unlink(missing_ok=True)
            raise TranscodeFailed(
                f"conversion to mp3 failed. Reason: {self.converter_script.name} "
                f"exited with status {result.returncode}"
            )

        if reported is None or not reported.is_file():
            raise TranscodeFailed(
                f"conversion to mp3 failed. Reason: {self.converter_script.name} "
                f"did not report an output file"
            )

        logger.debug(f"Transcoded {source_path.name} → {reported}")
        # A script that reports the source itself produced nothing to clean up
        return NormalizedFile(reported, is_temporary=reported.resolve() != source_path.resolve())
