"""
Sync settings with JSON persistence.

Settings are stored in the user's config directory:
  Windows: %APPDATA%/podsync/settings.json
  macOS:   ~/Library/Application Support/podsync/settings.json
  Linux:   ~/.config/podsync/settings.json

Set PODSYNC_SETTINGS_DIR to use another directory. Command line options
override whatever is stored here.
"""

import json
import os
import sys
from dataclasses import asdict, dataclass
from typing import Optional

SETTINGS_DIR_ENV = "PODSYNC_SETTINGS_DIR"
DEFAULT_MOUNTPOINT = "/media/IPOD"


def default_settings_dir() -> str:
    """Get the platform-appropriate settings directory."""
    override = os.environ.get(SETTINGS_DIR_ENV)
    if override:
        return override
    if sys.platform == "win32":
        base = os.environ.get("APPDATA", os.path.expanduser("~"))
    elif sys.platform == "darwin":
        base = os.path.join(os.path.expanduser("~"), "Library", "Application Support")
    else:
        base = os.environ.get("XDG_CONFIG_HOME", os.path.join(os.path.expanduser("~"), ".config"))
    return os.path.join(base, "podsync")


def settings_path(settings_dir: Optional[str] = None) -> str:
    return os.path.join(settings_dir or default_settings_dir(), "settings.json")


@dataclass
class SyncSettings:
    """All user-configurable settings."""

    # ── Device ──────────────────────────────────────────────────────────────
    # Where the iPod is mounted
    mountpoint: str = DEFAULT_MOUNTPOINT

    # ── Transcoding ─────────────────────────────────────────────────────────
    # MP3 bitrate (kbps) for non-MP3 sources
    mp3_bitrate: int = 192

    # Transcoder timeout in seconds per file
    transcode_timeout: int = 300

    # Custom ffmpeg binary (empty = search PATH)
    ffmpeg_path: str = ""

    # Script converting one file to MP3 and printing the output path
    # (empty = use ffmpeg)
    converter_script: str = ""

    # ── VoiceOver ───────────────────────────────────────────────────────────
    # Generate spoken track announcements on devices that support them
    narration: bool = True

    # ── Service ─────────────────────────────────────────────────────────────
    service_host: str = "127.0.0.1"
    service_port: int = 8765

    def save(self, settings_dir: Optional[str] = None) -> None:
        """Write settings atomically to the settings directory."""
        path = settings_path(settings_dir)
        os.makedirs(os.path.dirname(path), exist_ok=True)

        tmp = path + ".tmp"
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(asdict(self), f, indent=2, ensure_ascii=False)
            os.replace(tmp, path)
        except Exception:
            try:
                os.remove(tmp)
            except OSError:
                pass
            raise

    @classmethod
    def load(cls, settings_dir: Optional[str] = None) -> "SyncSettings":
        """Load settings from JSON, returning defaults for missing keys."""
        path = settings_path(settings_dir)
        settings = cls()
        if not os.path.exists(path):
            return settings
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                return settings
            # Unknown keys and mistyped values are ignored
            for key, value in data.items():
                if hasattr(settings, key):
                    expected_type = type(getattr(settings, key))
                    if isinstance(value, expected_type):
                        setattr(settings, key, value)
        except (json.JSONDecodeError, OSError):
            pass
        return settings
