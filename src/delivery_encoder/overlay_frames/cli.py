"""CLI commands for encode and probe."""

import logging
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from delivery_encoder.models.job import DEFAULT_OUTPUT, DEFAULT_OVERLAY, DEFAULT_VIDEO, EncodeJob
from delivery_encoder.overlay_frames.main import main
from delivery_encoder.overlay_frames.planner import default_worker_count
from delivery_encoder.utils.cli import cli_error_handler
from delivery_encoder.utils.dependencies import check_tool_version, resolve_tool
from delivery_encoder.utils.project import (
    check_overlay_image,
    prepare_output_dir,
    resolve_path,
    resolve_project_root,
    validate_inputs,
)
from delivery_encoder.utils.video import probe_duration

console = Console()


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_time=True)],
    )


@cli_error_handler
def encode(
    project_root: Optional[str] = typer.Option(None, "--project-root", help="Directory relative paths resolve against (default: current directory)"),
    video: str = typer.Option(str(DEFAULT_VIDEO), "--video", help="Path to the input video"),
    overlay: str = typer.Option(str(DEFAULT_OVERLAY), "--overlay", help="Path to the overlay image"),
    output: str = typer.Option(str(DEFAULT_OUTPUT), "--output", "-o", help="Folder receiving the numbered PNG frames"),
    work_dir: Optional[str] = typer.Option(None, "--work-dir", help="Where to create the temporary segment folders (default: project root)"),
    workers: Optional[int] = typer.Option(None, "--workers", "-j", min=1, help="Number of parallel segments (default: CPU count)"),
    ffmpeg_bin: Optional[str] = typer.Option(None, "--ffmpeg", help="Path to the ffmpeg binary (default: bundled, then PATH)"),
    ffprobe_bin: Optional[str] = typer.Option(None, "--ffprobe", help="Path to the ffprobe binary (default: bundled, then PATH)"),
    prefix: str = typer.Option("video", "--prefix", help="Filename prefix of the output frames"),
    digits: int = typer.Option(5, "--digits", min=1, max=12, help="Zero-padded width of the frame numbers"),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace the contents of a non-empty output folder"),
    segment_timeout: Optional[float] = typer.Option(None, "--segment-timeout", help="Kill a segment's FFmpeg after this many seconds (default: no limit)"),
    keep_work_dir: bool = typer.Option(False, "--keep-work-dir", help="Keep the temporary segment folders after a successful merge"),
    report: Optional[str] = typer.Option(None, "--report", help="Write a JSON run report to this path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """
    Overlay an image onto a video and export the result as numbered PNG frames.

    The video is split into one time window per worker, each window is
    composited by its own FFmpeg process, and the frames are then merged into a
    single sequence (video00001.png, video00002.png, ...) in the output folder.
    """
    setup_logging(verbose)
    logger = logging.getLogger(__name__)

    console.print("[bold]Starting delivery encoder[/bold]")

    root = resolve_project_root(project_root)
    logger.info(f"Project root: {root}")

    ffmpeg_path = resolve_tool("ffmpeg", root, ffmpeg_bin)
    ffprobe_path = resolve_tool("ffprobe", root, ffprobe_bin)
    video_path = resolve_path(root, video)
    overlay_path = resolve_path(root, overlay)
    output_path = resolve_path(root, output)

    logger.info("Validating input files:")
    validate_inputs([
        ("Video", video_path),
        ("Overlay", overlay_path),
        ("FFmpeg", ffmpeg_path),
        ("FFprobe", ffprobe_path),
    ])
    check_overlay_image(overlay_path)

    ffmpeg_version = check_tool_version(ffmpeg_path, "ffmpeg")
    if verbose:
        console.print(f"[dim]ffmpeg version: {ffmpeg_version}[/dim]")

    prepare_output_dir(output_path, overwrite)

    job = EncodeJob(
        project_root=root,
        video_path=video_path,
        overlay_path=overlay_path,
        output_dir=output_path,
        ffmpeg_path=ffmpeg_path,
        ffprobe_path=ffprobe_path,
        work_dir=resolve_path(root, work_dir) if work_dir else None,
        workers=workers or default_worker_count(),
        prefix=prefix,
        digits=digits,
        overwrite=overwrite,
        segment_timeout=segment_timeout,
        keep_work_dir=keep_work_dir,
    )
    logger.info(f"Using {job.workers} parallel segments")

    report_path = resolve_path(root, report) if report else None
    result = main(job, report_path, console)

    frame_count = result.merge.frame_count if result.merge else 0
    console.print(
        f"\n[bold green]Success![/bold green] {frame_count} PNG frames saved to: {output_path} "
        f"[dim]({result.elapsed:.2f}s)[/dim]"
    )


@cli_error_handler
def probe(
    video: str = typer.Argument(..., help="Path to the video file"),
    ffprobe_bin: Optional[str] = typer.Option(None, "--ffprobe", help="Path to the ffprobe binary (default: bundled, then PATH)"),
    project_root: Optional[str] = typer.Option(None, "--project-root", help="Directory relative paths resolve against (default: current directory)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Print the duration of a video in seconds."""
    setup_logging(verbose)

    root = resolve_project_root(project_root)
    ffprobe_path = resolve_tool("ffprobe", root, ffprobe_bin)
    video_path = resolve_path(root, video)
    validate_inputs([("Video", video_path)])

    duration = probe_duration(video_path, ffprobe_path)
    typer.echo(f"{duration:.6f}")
