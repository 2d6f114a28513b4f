"""Validated settings for one overlay encoding run."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_VIDEO = Path("assets/video.mov")
DEFAULT_OVERLAY = Path("assets/overlay.png")
DEFAULT_OUTPUT = Path("output")


class EncodeJob(BaseModel):
    """All paths are absolute once the job is built from CLI options."""
    model_config = ConfigDict(frozen=True)

    project_root: Path
    video_path: Path
    overlay_path: Path
    output_dir: Path
    ffmpeg_path: Path
    ffprobe_path: Path
    work_dir: Optional[Path] = Field(None, description="Parent of the temporary segment root")
    workers: int = Field(1, ge=1, description="Number of parallel segments")
    prefix: str = Field("video", description="Filename prefix of the merged frames")
    digits: int = Field(5, ge=1, le=12, description="Zero-padded width of frame numbers")
    suffix: str = Field(".png", description="Image format written by the engine")
    overwrite: bool = False
    segment_timeout: Optional[float] = Field(None, gt=0, description="Seconds before a segment is killed")
    keep_work_dir: bool = False

    def frame_name(self, number: int) -> str:
        return f"{self.prefix}{number:0{self.digits}d}{self.suffix}"

    @property
    def segment_pattern(self) -> str:
        """Engine-side filename pattern inside each segment directory."""
        return f"frame%0{self.digits}d{self.suffix}"
