import logging
import math
from pathlib import Path
from typing import Any

import ffmpeg

from delivery_encoder.errors import ProbeError

logger: logging.Logger = logging.getLogger(__name__)


def parse_duration(value: Any) -> float:
    """Turn the probe's duration field into non-negative seconds."""
    try:
        duration = float(str(value).strip())
    except (TypeError, ValueError):
        raise ProbeError(f"Probe returned an unparsable duration: {value!r}")
    if not math.isfinite(duration) or duration < 0:
        raise ProbeError(f"Probe returned an invalid duration: {value!r}")
    return duration


def probe_duration(filename: Path, ffprobe_path: Path) -> float:
    """Ask ffprobe for the total duration of a video, in seconds."""
    try:
        probe = ffmpeg.probe(str(filename), cmd=str(ffprobe_path))
    except ffmpeg.Error as e:
        stderr = e.stderr.decode(errors="ignore").strip() if e.stderr else "Unknown error"
        raise ProbeError(f"ffprobe failed on {filename}: {stderr}")
    except OSError as e:
        raise ProbeError(f"Failed to start ffprobe at {ffprobe_path}: {e}")
    except ValueError as e:
        raise ProbeError(f"ffprobe output is not valid JSON: {e}")

    fmt = probe.get("format") or {}
    if "duration" not in fmt:
        raise ProbeError(f"ffprobe reported no duration for {filename}")

    duration = parse_duration(fmt["duration"])
    logger.info(f"Video duration: {duration:.3f}s")
    return duration
