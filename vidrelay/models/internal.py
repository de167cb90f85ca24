from pydantic import BaseModel, Field
from typing import List, Optional

class RawThumbnail(BaseModel):
    url: str

class RawAuthor(BaseModel):
    name: str = ""

class RawFormat(BaseModel):
    """One encoding as reported by the extraction backend"""
    quality_label: Optional[str] = None
    container: str
    url: str
    itag: int
    has_video: bool
    has_audio: bool

class RawVideoInfo(BaseModel):
    """Extraction backend result (separated from HTTP concerns)"""
    title: str
    thumbnails: List[RawThumbnail] = []
    length_seconds: int = 0
    author: RawAuthor = Field(default_factory=RawAuthor)
    formats: List[RawFormat] = []
