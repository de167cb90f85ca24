from typing import Optional
from fastapi import APIRouter, Request, Depends, Query
from vidrelay.models.request import VideoRequest
from vidrelay.models.response import ErrorResponse, VideoInfo
from vidrelay.services.extraction import ExtractionClient, get_extraction_client
from vidrelay.services.info import VideoInfoService
from vidrelay.core.logging import log_info
from vidrelay.utils.locale import safe_url_for_log
from vidrelay.i18n import i18n

router = APIRouter()

@router.get(
    "/api/info",
    response_model=VideoInfo,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_video_info(
    request: Request,
    url: Optional[str] = Query(None, description="Video page URL"),
    client: ExtractionClient = Depends(get_extraction_client),
):
    """Get video metadata and its combined audio+video formats"""
    video_request = VideoRequest(url=url)

    if video_request.url:
        log_info(request, i18n.get("log.fetching_info", url=safe_url_for_log(video_request.url)))

    video_info = await VideoInfoService.fetch(video_request, client)
    log_info(request, i18n.get("log.info_retrieved", title=video_info.title, count=len(video_info.formats)))
    return video_info
