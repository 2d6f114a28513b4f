"""
Reassemble per-segment frames into one globally numbered sequence
"""

import logging
import re
import shutil
from pathlib import Path
from typing import List, Tuple

from delivery_encoder.errors import CleanupWarning, MergeIOError
from delivery_encoder.models.job import EncodeJob
from delivery_encoder.models.segments import MergeReport, Segment

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".bmp", ".tif", ".tiff", ".webp"}

TRAILING_NUMBER = re.compile(r"(\d+)$")

logger = logging.getLogger(__name__)


def frame_sort_key(path: Path) -> Tuple[int, int, str]:
    """
    Order frames by the number at the end of their filename stem.

    Names without a trailing number sort after every numbered frame, by name.
    """
    match = TRAILING_NUMBER.search(path.stem)
    if match:
        return (0, int(match.group(1)), path.name)
    return (1, 0, path.name)


def list_segment_frames(segment_dir: Path) -> List[Path]:
    """Image files of one segment directory, in frame order."""
    if not segment_dir.is_dir():
        return []
    frames = [
        entry for entry in segment_dir.iterdir()
        if entry.is_file() and entry.suffix.lower() in IMAGE_SUFFIXES
    ]
    return sorted(frames, key=frame_sort_key)


def move_frame(source: Path, destination: Path) -> None:
    try:
        shutil.move(str(source), str(destination))
    except OSError as e:
        raise MergeIOError(f"Failed to move {source} to {destination}: {e}")


def clear_output_dir(output_dir: Path) -> None:
    """Remove everything inside the output directory, keeping the directory."""
    for entry in output_dir.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()


def merge_segments(
    segments: List[Segment],
    work_root: Path,
    output_dir: Path,
    job: EncodeJob,
) -> MergeReport:
    """
    Move every segment's frames into output_dir under one contiguous numbering.

    Segments are visited by index and frames by their local number, so the
    result does not depend on the order in which workers finished. A frame that
    cannot be moved is logged and skipped without consuming a number.

    Args:
        segments: All planned segments
        work_root: Temporary root holding one directory per segment
        output_dir: Final directory for the merged frames
        job: Run settings providing the output naming

    Returns:
        Frame counts and any skipped moves
    """
    report = MergeReport()
    counter = 1

    for segment in sorted(segments, key=lambda s: s.index):
        frames = list_segment_frames(work_root / segment.dirname)
        if not frames:
            logger.warning(f"Segment {segment.index} produced no frames")
            report.empty_segments.append(segment.index)

        moved = 0
        for frame in frames:
            destination = output_dir / job.frame_name(counter)
            try:
                move_frame(frame, destination)
            except MergeIOError as e:
                logger.error(str(e))
                report.skipped.append(str(e))
                continue
            counter += 1
            moved += 1

        report.frames_per_segment[segment.index] = moved
        logger.debug(f"Segment {segment.index}: merged {moved} frames")

    report.frame_count = counter - 1
    logger.info(f"Merged {report.frame_count} frames into {output_dir}")
    return report


def cleanup_work_root(work_root: Path) -> List[str]:
    """Remove the temporary segment root; failures are logged, never raised."""
    try:
        shutil.rmtree(work_root)
    except OSError as e:
        warning = CleanupWarning(f"Failed to remove temporary directory {work_root}: {e}")
        logger.warning(str(warning))
        return [str(warning)]
    logger.debug(f"Removed temporary directory {work_root}")
    return []
