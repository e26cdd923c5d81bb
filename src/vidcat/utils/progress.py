"""Progress tracking types shared across CLI and services."""

from __future__ import annotations

from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProcessingStage(str, Enum):
    """Lifecycle stages for registering a video from a submitted URL."""

    RESOLVING = "resolving"
    FETCHING_METADATA = "fetching_metadata"
    SUMMARIZING = "summarizing"
    NORMALIZING = "normalizing"
    STORING = "storing"
    COMPLETE = "complete"
    FAILED = "failed"


STAGE_WEIGHTS = {
    ProcessingStage.RESOLVING: 5,
    ProcessingStage.FETCHING_METADATA: 30,
    ProcessingStage.SUMMARIZING: 75,
    ProcessingStage.NORMALIZING: 85,
    ProcessingStage.STORING: 95,
    ProcessingStage.COMPLETE: 100,
    ProcessingStage.FAILED: 100,
}


class ProgressUpdate(BaseModel):
    """Structured progress payload for UI rendering and logging."""

    stage: ProcessingStage
    stage_progress: int = Field(ge=0, le=100)
    overall_progress: int = Field(ge=0, le=100)
    message: str
    video_url: str

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def for_stage(cls, stage: ProcessingStage, message: str, video_url: str, *, done: bool = False) -> "ProgressUpdate":
        return cls(
            stage=stage,
            stage_progress=100 if done or stage in {ProcessingStage.COMPLETE, ProcessingStage.FAILED} else 0,
            overall_progress=STAGE_WEIGHTS[stage],
            message=message,
            video_url=video_url,
        )


ProgressCallback = Optional[Callable[[ProgressUpdate], None]]


__all__ = ["ProcessingStage", "ProgressCallback", "ProgressUpdate", "STAGE_WEIGHTS"]
