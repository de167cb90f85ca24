"""Contract between the services and the extraction backend.

The services only talk to an ``ExtractionClient``; the yt-dlp implementation
is wired in through ``get_extraction_client`` so routes can receive it with
``Depends`` and tests can replace it via ``app.dependency_overrides``.
"""
from functools import lru_cache
from typing import AsyncIterator, Optional, Protocol

from vidrelay.models.internal import RawVideoInfo
from vidrelay.services.ytdlp import YtDlpExtractionClient


class MediaStream(Protocol):
    def __aiter__(self) -> AsyncIterator[bytes]:
        ...

    async def aclose(self) -> None:
        """Release the upstream connection; safe to call repeatedly"""
        ...


class ExtractionClient(Protocol):
    def validate(self, url: str) -> bool:
        """URL syntax check, no network access"""
        ...

    async def get_info(self, url: str) -> RawVideoInfo:
        """Fetch metadata; raises on any failure"""
        ...

    async def open_stream(
        self,
        url: str,
        container: str = "mp4",
        itag: Optional[int] = None
    ) -> MediaStream:
        """Open a combined audio+video stream; ``itag=None`` means highest quality"""
        ...


@lru_cache(maxsize=1)
def get_extraction_client() -> ExtractionClient:
    return YtDlpExtractionClient()
