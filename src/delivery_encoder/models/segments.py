"""Pydantic models for segments, worker results and run reports."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Segment(BaseModel):
    """One contiguous time window of the source video, owned by one worker."""
    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0, description="Position of the segment in time order")
    start_offset: float = Field(..., ge=0, description="Start of the window in seconds")
    length: float = Field(..., ge=0, description="Length of the window in seconds")

    @property
    def end(self) -> float:
        return self.start_offset + self.length

    @property
    def dirname(self) -> str:
        return f"segment_{self.index:03d}"


class SegmentResult(BaseModel):
    """Completion signal reported by a segment worker."""
    segment_index: int
    success: bool
    returncode: Optional[int] = None
    error: Optional[str] = None
    elapsed: float = 0.0


class MergeReport(BaseModel):
    """Outcome of reassembling segment frames into the output directory."""
    frame_count: int = 0
    frames_per_segment: Dict[int, int] = Field(default_factory=dict)
    skipped: List[str] = Field(default_factory=list)
    empty_segments: List[int] = Field(default_factory=list)


class RunReport(BaseModel):
    """Summary of a full overlay run, optionally written as JSON."""
    version: str = "1.0"
    state: str
    video_duration: float
    workers: int
    segments: List[Segment]
    results: List[SegmentResult]
    merge: Optional[MergeReport] = None
    cleanup_warnings: List[str] = Field(default_factory=list)
    processing_elapsed: float = 0.0
    elapsed: float = 0.0
