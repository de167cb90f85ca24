from typing import Optional
from vidrelay.config.settings import config

class FormatDecision:
    """Make format decisions"""

    @staticmethod
    def decide(container: Optional[str] = None, itag: Optional[int] = None) -> str:
        """Build the yt-dlp format selector for a combined audio+video stream"""
        if itag is not None:
            return str(itag)

        container = container or config.ytdlp.default_container
        # Highest combined encoding in the container; progressive streams
        # sometimes omit codec info, hence the looser fallback
        return (
            f"best[ext={container}][vcodec!=none][acodec!=none]/"
            f"best[ext={container}]"
        )
