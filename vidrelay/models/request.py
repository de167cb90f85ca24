from pydantic import BaseModel, Field, field_validator
from typing import Optional

class VideoRequest(BaseModel):
    url: Optional[str] = Field(None, description="Video page URL")

    @field_validator("url", mode="before")
    @classmethod
    def strip_url(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v

class DownloadRequest(VideoRequest):
    itag: Optional[int] = Field(None, description="Format selector; absent means highest quality")

    @field_validator("itag", mode="before")
    @classmethod
    def parse_itag(cls, v):
        """Anything that is not a non-negative integer falls back to None (highest quality)"""
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, int):
            return v if v >= 0 else None
        text = str(v).strip()
        if not (text.isascii() and text.isdigit()):
            return None
        return int(text)
