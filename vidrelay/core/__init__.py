from .errors import DownloadFailed, ExtractionError, InvalidInput, UpstreamFetchFailed, VidRelayError

__all__ = ["DownloadFailed", "ExtractionError", "InvalidInput", "UpstreamFetchFailed", "VidRelayError"]
