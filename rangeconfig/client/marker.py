"""Local "already configured" marker and client log location."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

MARKER_FILE = ".configured"
LOG_FILE = "config.log"

# Platform defaults, overridable with RANGECONFIG_MARKER_DIR
DEFAULT_MARKER_DIRS = {
    "linux": "/var/lib/rangeconfig",
    "openwrt": "/etc/rangeconfig",
    "windows": r"C:\ProgramData\RangeConfig",
}


class Marker:
    """Marker file whose existence suppresses configuration."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    @property
    def path(self) -> Path:
        return self.directory / MARKER_FILE

    @property
    def log_path(self) -> Path:
        return self.directory / LOG_FILE

    def ensure_dir(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def is_configured(self) -> bool:
        return self.path.exists()

    def create(self, instance_name: str) -> None:
        self.ensure_dir()
        configured_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
        self.path.write_text(f"Configured at: {configured_at}\nInstance: {instance_name}\n")
