"""Shared utilities for locating the external FFmpeg tools and their versions."""

import logging
import re
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Optional

from delivery_encoder.errors import EnvironmentSetupError, PreconditionError

logger = logging.getLogger(__name__)

# sys.platform prefix -> directory under assets/bin
PLATFORM_DIRS = {
    "darwin": "macos",
    "win32": "windows",
    "linux": "linux",
}


def platform_dirname(platform: Optional[str] = None) -> str:
    """Return the assets/bin subdirectory holding binaries for this platform.

    Raises:
        EnvironmentSetupError: If the operating system is not supported.
    """
    platform = platform or sys.platform
    for prefix, dirname in PLATFORM_DIRS.items():
        if platform.startswith(prefix):
            return dirname
    raise EnvironmentSetupError(f"Unsupported operating system: {platform}")


def resolve_tool(
    name: str,
    project_root: Path,
    explicit: Optional[str] = None,
    platform: Optional[str] = None,
) -> Path:
    """Locate an FFmpeg tool binary.

    Order:
      1) an explicit path (relative paths resolve against the project root)
      2) the bundled binary in assets/bin/<platform>/
      3) the tool on PATH

    Raises:
        EnvironmentSetupError: If the platform is unsupported.
        PreconditionError: If the tool cannot be found anywhere.
    """
    if explicit:
        path = Path(explicit).expanduser()
        if not path.is_absolute():
            path = project_root / path
        if not path.is_file():
            raise PreconditionError(f"{name} not found: {path}")
        return path

    dirname = platform_dirname(platform)
    executable = f"{name}.exe" if dirname == "windows" else name
    bundled = project_root / "assets" / "bin" / dirname / executable
    if bundled.is_file():
        return bundled

    found = shutil.which(name)
    if found:
        logger.debug(f"No bundled {name} at {bundled}, using {found} from PATH")
        return Path(found)

    raise PreconditionError(f"Required tool not found: {name} (looked in {bundled} and PATH)")


def check_tool_version(path: Path, name: str) -> str:
    """Verify a tool runs and return its reported version.

    Parses the version from the first line of `<tool> -version`, e.g.
    'ffmpeg version 6.1.1-3ubuntu5 Copyright ...'.

    Raises:
        PreconditionError: If the tool cannot be run or its output is not recognised.
    """
    try:
        result = subprocess.run(
            [str(path), "-version"], capture_output=True, text=True, timeout=10, check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise PreconditionError(f"Could not run {name} at {path}: {e}")

    if result.returncode != 0:
        raise PreconditionError(f"{name} -version exited with code {result.returncode}")

    match = re.search(rf"{re.escape(name)} version (\S+)", result.stdout)
    if not match:
        first_line = result.stdout.strip().splitlines()[:1]
        raise PreconditionError(f"Could not parse {name} version from output: {first_line!r}")

    return match.group(1)
