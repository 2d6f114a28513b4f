#!/usr/bin/env python3
"""
Overlay an image onto a video and export numbered PNG frames, segment by segment in parallel
"""

import logging
import tempfile
import time
from enum import Enum
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from delivery_encoder.errors import DeliveryEncoderError, PreconditionError, SegmentsFailedError
from delivery_encoder.models.job import EncodeJob
from delivery_encoder.models.segments import RunReport, Segment, SegmentResult
from delivery_encoder.overlay_frames.merge import cleanup_work_root, clear_output_dir, merge_segments
from delivery_encoder.overlay_frames.planner import plan_segments
from delivery_encoder.overlay_frames.worker import dispatch_segments
from delivery_encoder.utils.video import probe_duration

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    """Lifecycle of one run. DONE and ABORTED are terminal."""
    INIT = "init"
    PROBING = "probing"
    PLANNING = "planning"
    PROCESSING = "processing"
    MERGING = "merging"
    CLEANUP = "cleanup"
    DONE = "done"
    ABORTED = "aborted"


class OverlayRun:
    """Drives one job through probe, plan, parallel processing and merge."""

    def __init__(self, job: EncodeJob, console: Optional[Console] = None):
        self.job = job
        self.console = console
        self.state = RunState.INIT
        self.duration = 0.0
        self.segments: List[Segment] = []
        self.results: List[SegmentResult] = []
        self.work_root: Path | None = None
        self.started = time.monotonic()
        self.processing_elapsed = 0.0

    def _enter(self, state: RunState) -> None:
        logger.debug(f"Run state: {self.state.value} -> {state.value}")
        self.state = state

    def _create_work_root(self) -> Path:
        parent = self.job.work_dir or self.job.project_root
        try:
            parent.mkdir(parents=True, exist_ok=True)
            return Path(tempfile.mkdtemp(prefix=".segments-", dir=parent))
        except OSError as e:
            raise PreconditionError(f"Failed to create temporary directory in {parent}: {e}")

    def _process(self) -> None:
        self._enter(RunState.PROCESSING)
        logger.info(f"Processing {len(self.segments)} segments in parallel...")
        started = time.monotonic()
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        ) as progress:
            self.results = dispatch_segments(self.segments, self.job, self.work_root, progress)
        self.processing_elapsed = time.monotonic() - started
        logger.info(f"FFmpeg processing time: {self.processing_elapsed:.2f} seconds")

    def report(self, **kwargs) -> RunReport:
        return RunReport(
            state=self.state.value,
            video_duration=self.duration,
            workers=self.job.workers,
            segments=self.segments,
            results=self.results,
            processing_elapsed=self.processing_elapsed,
            elapsed=time.monotonic() - self.started,
            **kwargs,
        )

    def execute(self) -> RunReport:
        """
        Run the job to completion.

        Raises:
            ProbeError: If the video duration cannot be determined.
            SegmentsFailedError: If any segment failed; nothing is merged and
                the segment directories are left on disk.
        """
        try:
            self._enter(RunState.PROBING)
            self.duration = probe_duration(self.job.video_path, self.job.ffprobe_path)

            self._enter(RunState.PLANNING)
            self.segments = plan_segments(self.duration, self.job.workers)
            for segment in self.segments:
                logger.debug(
                    f"Segment {segment.index}: {segment.start_offset:.3f}s -> {segment.end:.3f}s"
                )
            self.work_root = self._create_work_root()
            logger.info(f"Working directory: {self.work_root}")

            self._process()
        except DeliveryEncoderError:
            self._enter(RunState.ABORTED)
            raise

        failed = [result.segment_index for result in self.results if not result.success]
        if failed:
            self._enter(RunState.ABORTED)
            logger.error(f"Segment directories kept for inspection in {self.work_root}")
            raise SegmentsFailedError(failed, len(self.results))

        self._enter(RunState.MERGING)
        if self.job.overwrite:
            clear_output_dir(self.job.output_dir)
        merge = merge_segments(self.segments, self.work_root, self.job.output_dir, self.job)

        self._enter(RunState.CLEANUP)
        cleanup_warnings: List[str] = []
        if self.job.keep_work_dir:
            logger.info(f"Keeping working directory: {self.work_root}")
        else:
            cleanup_warnings = cleanup_work_root(self.work_root)

        self._enter(RunState.DONE)
        report = self.report(merge=merge, cleanup_warnings=cleanup_warnings)
        logger.info(f"Total execution time: {report.elapsed:.2f} seconds")
        return report


def write_report(report: RunReport, report_path: Path) -> None:
    report_path.parent.mkdir(parents=True, exist_ok=True)
    with open(report_path, 'w') as f:
        f.write(report.model_dump_json(indent=2))
    logger.info(f"Saved run report to {report_path}")


def main(
    job: EncodeJob,
    report_path: Optional[Path] = None,
    console: Optional[Console] = None,
) -> RunReport:
    """
    Overlay the job's image onto its video and write the merged frame sequence.

    Args:
        job: Validated run settings
        report_path: Where to write a JSON run report, if anywhere
        console: Console shared with the logging handler

    Returns:
        Report of the finished run
    """
    run = OverlayRun(job, console)
    try:
        report = run.execute()
    except SegmentsFailedError:
        if report_path is not None:
            write_report(run.report(), report_path)
        raise
    if report_path is not None:
        write_report(report, report_path)
    return report
