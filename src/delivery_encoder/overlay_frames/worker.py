"""
Run the compositing engine on one segment, and dispatch all segments in parallel
"""

import logging
import queue
import re
import subprocess
import threading
import time
from collections import deque
from pathlib import Path
from typing import IO, Callable, Deque, List, Optional

import ffmpeg
from rich.progress import Progress

from delivery_encoder.errors import WorkerRuntimeError, WorkerSetupError
from delivery_encoder.models.job import EncodeJob
from delivery_encoder.models.segments import Segment, SegmentResult

# Substrings that get a diagnostic line logged right away
FAILURE_MARKERS = ("error", "fail")
# Minimum seconds between two routine diagnostic lines of one segment
LOG_INTERVAL = 2.0
# Diagnostic lines kept to explain a failed segment
TAIL_LINES = 20

PROGRESS_LINE = re.compile(r"^(\w+)=(.*)$")

logger = logging.getLogger(__name__)


class DiagnosticThrottle:
    """Surface engine diagnostics without flooding the log."""

    def __init__(self, label: str, interval: float = LOG_INTERVAL, clock: Callable[[], float] = time.monotonic):
        self.label = label
        self.interval = interval
        self.clock = clock
        self.last_emit: float | None = None
        self.tail: Deque[str] = deque(maxlen=TAIL_LINES)

    def feed(self, line: str) -> bool:
        """Record a line; return True if it was logged."""
        if not line:
            return False
        self.tail.append(line)

        lowered = line.lower()
        if any(marker in lowered for marker in FAILURE_MARKERS):
            logger.warning(f"[{self.label}] {line}")
            return True

        now = self.clock()
        if self.last_emit is None or now - self.last_emit >= self.interval:
            self.last_emit = now
            logger.info(f"[{self.label}] {line}")
            return True
        return False


def parse_progress_seconds(key: str, value: str) -> float | None:
    """Seconds encoded so far, from an `-progress` out_time line."""
    # out_time_ms is microseconds too, despite its name
    if key not in ("out_time_us", "out_time_ms"):
        return None
    try:
        return int(value) / 1_000_000
    except ValueError:
        return None


def build_segment_command(segment: Segment, job: EncodeJob, segment_dir: Path) -> List[str]:
    """Compose the engine command line that overlays the image onto one time window."""
    video = ffmpeg.input(str(job.video_path), ss=segment.start_offset, t=segment.length)
    overlay = ffmpeg.input(str(job.overlay_path))
    stream = ffmpeg.overlay(video, overlay)
    return (
        ffmpeg.output(stream, str(segment_dir / job.segment_pattern))
        .global_args("-hide_banner", "-nostats", "-progress", "pipe:2")
        .overwrite_output()
        .compile(cmd=str(job.ffmpeg_path))
    )


def drain_diagnostics(
    pipe: IO[bytes],
    throttle: DiagnosticThrottle,
    on_progress: Optional[Callable[[float], None]] = None,
) -> None:
    """Read the engine's stderr line by line until EOF."""
    for lineb in iter(pipe.readline, b''):
        line: str = lineb.decode('utf-8', errors='ignore').strip()
        match = PROGRESS_LINE.match(line)
        if match:
            seconds = parse_progress_seconds(match.group(1), match.group(2))
            if seconds is not None and on_progress is not None:
                on_progress(seconds)
            continue
        throttle.feed(line)


def _failed(segment: Segment, started: float, error: Exception, returncode: int | None = None) -> SegmentResult:
    logger.error(f"Segment {segment.index} failed: {error}")
    return SegmentResult(
        segment_index=segment.index,
        success=False,
        returncode=returncode,
        error=str(error),
        elapsed=time.monotonic() - started,
    )


def run_segment(
    segment: Segment,
    job: EncodeJob,
    work_root: Path,
    on_progress: Optional[Callable[[float], None]] = None,
) -> SegmentResult:
    """
    Composite one segment into its own frame directory.

    Never raises for engine problems: every failure is reported through the
    returned SegmentResult so sibling segments keep running.

    Args:
        segment: Time window to process
        job: Run settings (engine path, inputs, naming)
        work_root: Temporary root holding one directory per segment
        on_progress: Called with the seconds encoded so far

    Returns:
        The segment's completion signal
    """
    started = time.monotonic()
    label = f"segment {segment.index}"
    segment_dir = work_root / segment.dirname

    try:
        segment_dir.mkdir()
    except FileExistsError:
        return _failed(segment, started, WorkerSetupError(f"Segment directory already exists: {segment_dir}"))
    except OSError as e:
        return _failed(segment, started, WorkerSetupError(f"Failed to create {segment_dir}: {e}"))

    args = build_segment_command(segment, job, segment_dir)
    logger.debug(f"[{label}] FFmpeg command: {' '.join(args)}")

    try:
        proc = subprocess.Popen(args, stdin=subprocess.DEVNULL, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE)
    except OSError as e:
        return _failed(segment, started, WorkerRuntimeError(f"Failed to start FFmpeg: {e}"))

    timed_out = threading.Event()

    def _on_timeout() -> None:
        timed_out.set()
        proc.kill()

    timer: threading.Timer | None = None
    if job.segment_timeout:
        timer = threading.Timer(job.segment_timeout, _on_timeout)
        timer.daemon = True
        timer.start()

    throttle = DiagnosticThrottle(label)
    read_error: Exception | None = None
    try:
        drain_diagnostics(proc.stderr, throttle, on_progress)
    except (OSError, ValueError) as e:
        read_error = e
        proc.kill()
    finally:
        returncode = proc.wait()
        if timer is not None:
            timer.cancel()
        proc.stderr.close()

    if timed_out.is_set():
        return _failed(
            segment, started,
            WorkerRuntimeError(f"FFmpeg exceeded the {job.segment_timeout}s timeout and was killed"),
            returncode,
        )
    if read_error is not None:
        return _failed(segment, started, WorkerRuntimeError(f"Failed reading FFmpeg output: {read_error}"), returncode)
    if returncode != 0:
        for line in throttle.tail:
            logger.error(f"[{label}] ffmpeg: {line}")
        return _failed(segment, started, WorkerRuntimeError(f"FFmpeg failed with exit code {returncode}"), returncode)

    elapsed = time.monotonic() - started
    logger.info(f"Segment {segment.index} done in {elapsed:.2f}s")
    return SegmentResult(segment_index=segment.index, success=True, returncode=0, elapsed=elapsed)


def dispatch_segments(
    segments: List[Segment],
    job: EncodeJob,
    work_root: Path,
    progress: Optional[Progress] = None,
) -> List[SegmentResult]:
    """
    Run every segment on its own thread and wait for all of them.

    Results are collected from a shared queue in completion order and returned
    sorted by segment index.
    """
    results_queue: "queue.Queue[SegmentResult]" = queue.Queue()

    def _work(segment: Segment) -> None:
        on_progress = None
        if progress is not None:
            task = tasks[segment.index]
            on_progress = lambda seconds: progress.update(task, completed=min(seconds, segment.length))
        try:
            result = run_segment(segment, job, work_root, on_progress)
        except Exception as e:
            # The dispatcher waits for exactly one result per segment
            logger.exception(f"Segment {segment.index} crashed")
            result = SegmentResult(segment_index=segment.index, success=False, error=str(e))
        results_queue.put(result)

    tasks = {}
    lengths = {segment.index: segment.length for segment in segments}
    if progress is not None:
        for segment in segments:
            tasks[segment.index] = progress.add_task(
                f"Segment {segment.index}", total=max(segment.length, 1e-6),
            )

    threads = [
        threading.Thread(target=_work, args=(segment,), name=f"segment-{segment.index}", daemon=True)
        for segment in segments
    ]
    for thread in threads:
        thread.start()

    results: List[SegmentResult] = []
    for _ in segments:
        result = results_queue.get()
        if progress is not None:
            task = tasks[result.segment_index]
            if result.success:
                progress.update(task, completed=max(lengths[result.segment_index], 1e-6),
                                description=f"Segment {result.segment_index} [green]done[/green]")
            else:
                progress.update(task, description=f"Segment {result.segment_index} [red]failed[/red]")
        results.append(result)

    for thread in threads:
        thread.join()

    return sorted(results, key=lambda r: r.segment_index)
