"""Version information for the server and clients.

The version is read from the VERSION file shipped inside the package, falling
back to the installed distribution metadata.
"""

import os
from importlib import metadata
from pathlib import Path


def get_version() -> str:
    """Get the package version.

    Returns:
        Version string (e.g., "0.3.0")
    """
    version_file = Path(__file__).parent / "VERSION"
    if version_file.exists():
        try:
            version = version_file.read_text().strip()
            if version:
                return version
        except OSError:
            pass

    try:
        return metadata.version("rangeconfig")
    except metadata.PackageNotFoundError:
        return "0.0.0"


__version__ = get_version()


def get_commit() -> str:
    """Get the build commit SHA.

    Reads from RANGECONFIG_GIT_SHA env var first, then a GIT_SHA file next to
    this module.
    """
    env_sha = os.getenv("RANGECONFIG_GIT_SHA", "").strip()
    if env_sha:
        return env_sha

    commit_file = Path(__file__).parent / "GIT_SHA"
    if commit_file.exists():
        try:
            commit = commit_file.read_text().strip()
            if commit:
                return commit
        except OSError:
            pass

    return "unknown"
