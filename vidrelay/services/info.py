import logging

from vidrelay.core.errors import InvalidInput, UpstreamFetchFailed
from vidrelay.models.request import VideoRequest
from vidrelay.models.response import FormatDescriptor, VideoInfo
from vidrelay.services.extraction import ExtractionClient
from vidrelay.utils.locale import safe_url_for_log

logger = logging.getLogger(__name__)


def require_valid_url(video_request: VideoRequest, client: ExtractionClient) -> str:
    """Return the request URL or raise InvalidInput; never touches the network"""
    url = video_request.url
    if not url:
        raise InvalidInput("error.url_required")
    if not client.validate(url):
        raise InvalidInput("error.invalid_url")
    return url


class VideoInfoService:
    """Video info fetching service"""

    @staticmethod
    async def fetch(video_request: VideoRequest, client: ExtractionClient) -> VideoInfo:
        """
        Fetch metadata and project it to the public view.
        Only combined audio+video formats are kept; an empty list is not an error.
        """
        url = require_valid_url(video_request, client)

        try:
            info = await client.get_info(url)
        except Exception as e:
            logger.error(f"Error fetching info for {safe_url_for_log(url)}: {e}")
            raise UpstreamFetchFailed("error.fetch_info_failed") from e

        thumbnail = info.thumbnails[-1].url if info.thumbnails else None

        formats = [
            FormatDescriptor(
                quality=f.quality_label,
                container=f.container,
                url=f.url,
                has_video=f.has_video,
                has_audio=f.has_audio,
                itag=f.itag,
            )
            for f in info.formats
            if f.has_video and f.has_audio
        ]

        return VideoInfo(
            title=info.title,
            thumbnail=thumbnail,
            duration=max(info.length_seconds, 0),
            author=info.author.name,
            formats=formats,
        )
