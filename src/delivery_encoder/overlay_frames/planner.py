"""Split a video duration into equal time windows, one per worker."""

import math
import os
from typing import List

from delivery_encoder.models.segments import Segment


def default_worker_count() -> int:
    """Hardware concurrency, never less than one."""
    return max(1, os.cpu_count() or 1)


def plan_segments(duration: float, workers: int) -> List[Segment]:
    """
    Divide [0, duration) into `workers` contiguous windows of equal length.

    The last window ends exactly at `duration`: it takes whatever floating-point
    remainder the equal split leaves, so the engine never has to clamp.

    Args:
        duration: Total video duration in seconds
        workers: Number of segments to produce (>= 1)

    Returns:
        Segments ordered by index
    """
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")
    if not math.isfinite(duration) or duration < 0:
        raise ValueError(f"duration must be a finite non-negative number, got {duration}")

    step = duration / workers
    segments: List[Segment] = []
    for index in range(workers):
        start = index * step
        length = duration - start if index == workers - 1 else step
        segments.append(Segment(index=index, start_offset=start, length=max(0.0, length)))
    return segments
