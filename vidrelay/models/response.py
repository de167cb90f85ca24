from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FormatDescriptor(BaseModel):
    """A combined audio+video encoding the caller can download"""
    model_config = ConfigDict(populate_by_name=True)

    quality: Optional[str] = None
    container: str
    url: str
    has_video: bool = Field(..., alias="hasVideo")
    has_audio: bool = Field(..., alias="hasAudio")
    itag: int


class VideoInfo(BaseModel):
    """Video information response"""
    title: str
    thumbnail: Optional[str] = None
    duration: int = Field(0, ge=0)
    author: str = ""
    formats: List[FormatDescriptor] = []


class ErrorResponse(BaseModel):
    error: str
