from .internal import RawAuthor, RawFormat, RawThumbnail, RawVideoInfo
from .request import DownloadRequest, VideoRequest
from .response import ErrorResponse, FormatDescriptor, VideoInfo

__all__ = [
    "DownloadRequest",
    "ErrorResponse",
    "FormatDescriptor",
    "RawAuthor",
    "RawFormat",
    "RawThumbnail",
    "RawVideoInfo",
    "VideoInfo",
    "VideoRequest",
]
