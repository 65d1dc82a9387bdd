"""Version information for the sidecars.

Read from the VERSION file shipped in container images, falling back to
the installed distribution metadata.
"""

from importlib import metadata
from pathlib import Path

_DISTRIBUTION = "kubevirt-hook-sidecars"


def get_version() -> str:
    """Get the sidecar version (e.g., "0.3.0")."""
    version_file = Path(__file__).parent / "VERSION"
    if version_file.exists():
        version = version_file.read_text().strip()
        if version:
            return version.removeprefix("v")

    try:
        return metadata.version(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return "0.0.0"


__version__ = get_version()
