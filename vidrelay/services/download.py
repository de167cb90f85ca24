import logging
from typing import AsyncIterator, Dict, Tuple

from vidrelay.config.settings import config
from vidrelay.core.errors import DownloadFailed
from vidrelay.models.request import DownloadRequest
from vidrelay.services.extraction import ExtractionClient, MediaStream
from vidrelay.services.info import require_valid_url
from vidrelay.utils.filename import sanitize_title
from vidrelay.utils.hash import hash_stable
from vidrelay.utils.locale import safe_url_for_log

logger = logging.getLogger(__name__)


def build_filename(title: str, url: str, ext: str) -> str:
    name = sanitize_title(title)
    if not name:
        name = f"video_{hash_stable(url)[:8]}"
    return f"{name}.{ext}"


def build_headers(filename: str) -> Dict[str, str]:
    return {
        'Content-Disposition': f'attachment; filename="{filename}"',
        'X-Content-Type-Options': 'nosniff',
        'Cache-Control': 'no-cache',
        'Accept-Ranges': 'none',
    }


async def relay(stream: MediaStream, url: str) -> AsyncIterator[bytes]:
    """
    Forward upstream chunks one at a time.
    The upstream stream is closed on every exit path, including the caller
    disconnecting. A failure after the first byte cannot change the status
    code any more, so it is re-raised and the transfer ends truncated.
    """
    try:
        async for chunk in stream:
            yield chunk
    except Exception as e:
        logger.error(f"Stream interrupted for {safe_url_for_log(url)}: {e}")
        raise
    finally:
        await stream.aclose()


class DownloadService:
    """Video download relay"""

    @staticmethod
    async def download(
        download_request: DownloadRequest,
        client: ExtractionClient
    ) -> Tuple[AsyncIterator[bytes], Dict[str, str], MediaStream]:
        """
        Resolve the file name and open the upstream stream.
        Returns (generator, headers, stream); nothing is buffered beyond one chunk.
        """
        url = require_valid_url(download_request, client)
        container = config.ytdlp.default_container
        safe_url = safe_url_for_log(url)

        try:
            info = await client.get_info(url)
        except Exception as e:
            logger.error(f"Error fetching info for download of {safe_url}: {e}")
            raise DownloadFailed("error.download_failed") from e

        filename = build_filename(info.title, url, container)

        try:
            stream = await client.open_stream(url, container=container, itag=download_request.itag)
        except Exception as e:
            logger.error(f"Error opening stream for {safe_url}: {e}")
            raise DownloadFailed("error.download_failed") from e

        return relay(stream, url), build_headers(filename), stream
