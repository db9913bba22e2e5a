"""API response models."""

from typing import Optional

from pydantic import BaseModel, Field


class AudioStreamResponse(BaseModel):
    """Direct audio stream resolved for a video."""

    url: str = Field(description="Direct, time-limited audio stream URL")
    title: Optional[str] = None
    contentType: str = Field(description="audio/ogg for Opus streams, audio/mp4 otherwise")


class HealthResponse(BaseModel):
    status: str
