"""
Music storage on the device.

Audio files are spread round-robin across /iPod_Control/Music/F00-F49 and
given short random names, the same layout iTunes uses. The catalog stores
locations in the iPod's colon-separated form:

    :iPod_Control:Music:F07:QX3B.mp3
"""

import logging
import random
import shutil
import string
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

MUSIC_PATH = "iPod_Control/Music"
FOLDER_COUNT = 50


def path_to_location(mountpoint: str | Path, path: str | Path) -> str:
    """Convert an absolute file path on the device to a colon location."""
    relative = Path(path).relative_to(mountpoint)
    return ":" + ":".join(relative.parts)


def location_to_path(mountpoint: str | Path, location: str) -> Optional[Path]:
    """Convert a colon location back to an absolute path, or None if unset."""
    if not location:
        return None
    relative_path = location.replace(":", "/").lstrip("/")
    return Path(mountpoint) / relative_path


class MusicStorage:
    """
    Places files into the device's music folders.

    Usage:
        storage = MusicStorage("/media/IPOD")
        dest = storage.copy_in("/music/song.mp3")
        storage.delete(dest)
    """

    def __init__(self, mountpoint: str | Path, folder_count: int = FOLDER_COUNT):
        self.mountpoint = Path(mountpoint)
        self.music_dir = self.mountpoint / MUSIC_PATH
        self.folder_count = folder_count
        self._folder_counter = 0

    def next_music_folder(self) -> Path:
        """Get next music folder (F00-F49) using round-robin."""
        folder = self.music_dir / f"F{self._folder_counter:02d}"
        self._folder_counter = (self._folder_counter + 1) % self.folder_count
        folder.mkdir(parents=True, exist_ok=True)
        return folder

    def generate_filename(self, extension: str, dest_folder: Optional[Path] = None) -> str:
        """Generate a unique filename for device storage.

        Uses 4 random chars and retries on collision when dest_folder is given.
        """
        chars = string.ascii_uppercase + string.digits
        for _ in range(50):
            filename = "".join(random.choices(chars, k=4)) + extension
            if dest_folder is None or not (dest_folder / filename).exists():
                return filename
        return "".join(random.choices(chars, k=8)) + extension

    def copy_in(self, source_path: str | Path) -> Path:
        """
        Copy a file into the next music folder.

        Returns:
            Absolute path of the new file on the device

        Raises:
            OSError: if the copy fails (no partial file is left behind)
        """
        source_path = Path(source_path)
        dest_folder = self.next_music_folder()
        dest_path = dest_folder / self.generate_filename(source_path.suffix.lower(), dest_folder)

        try:
            shutil.copy2(source_path, dest_path)
        except OSError:
            dest_path.unlink(missing_ok=True)
            raise

        logger.debug(f"Copied {source_path.name} → {dest_path}")
        return dest_path

    def delete(self, path: str | Path) -> bool:
        """Delete a file from the device. Missing files count as deleted."""
        path = Path(path)
        try:
            path.unlink(missing_ok=True)
            logger.debug(f"Deleted: {path}")
            return True
        except OSError as e:
            logger.error(f"Delete failed for {path}: {e}")
            return False
