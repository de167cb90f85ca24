from typing import Awaitable, Callable, Optional
import anyio
from fastapi import APIRouter, Request, Depends, Query
from fastapi.responses import StreamingResponse
from starlette.types import Receive, Scope, Send
from vidrelay.config.settings import config
from vidrelay.models.request import DownloadRequest
from vidrelay.models.response import ErrorResponse
from vidrelay.services.download import DownloadService
from vidrelay.services.extraction import ExtractionClient, get_extraction_client
from vidrelay.core.logging import log_info
from vidrelay.utils.locale import safe_url_for_log
from vidrelay.i18n import i18n

router = APIRouter()


class RelayResponse(StreamingResponse):
    """
    StreamingResponse that always releases the upstream stream.
    Starlette neither closes the body iterator nor runs background tasks
    when the client goes away mid-transfer, so cleanup happens here on
    every exit path, shielded from the cancellation that caused it.
    """

    def __init__(self, content, on_close: Callable[[], Awaitable[None]], **kwargs):
        super().__init__(content, **kwargs)
        self.on_close = on_close

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            with anyio.CancelScope(shield=True):
                aclose = getattr(self.body_iterator, "aclose", None)
                if aclose is not None:
                    await aclose()
                await self.on_close()


@router.get(
    "/api/download",
    response_class=StreamingResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def download_video(
    request: Request,
    url: Optional[str] = Query(None, description="Video page URL"),
    itag: Optional[str] = Query(None, description="Format selector; invalid values mean highest quality"),
    client: ExtractionClient = Depends(get_extraction_client),
):
    """Relay the selected format as a file attachment"""
    download_request = DownloadRequest(url=url, itag=itag)

    if download_request.url:
        log_info(request, i18n.get(
            "log.starting_download",
            url=safe_url_for_log(download_request.url),
            itag=download_request.itag if download_request.itag is not None else "highest",
        ))

    generator, headers, stream = await DownloadService.download(download_request, client)
    log_info(request, i18n.get("log.download_ready", disposition=headers["Content-Disposition"]))

    return RelayResponse(
        generator,
        on_close=stream.aclose,
        media_type=f"video/{config.ytdlp.default_container}",
        headers=headers,
    )
