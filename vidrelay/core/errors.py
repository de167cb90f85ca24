"""Error taxonomy shared by the services and the HTTP layer.

Services translate every failure of the extraction backend into one of the
``VidRelayError`` subclasses below. Each carries an i18n message key that is
resolved against the caller's locale when the response is rendered, so raw
upstream error text never reaches a response body.
"""


class VidRelayError(Exception):
    """Base class for errors that map to an HTTP response"""

    status_code: int = 500

    def __init__(self, message_key: str, **params):
        super().__init__(message_key)
        self.message_key = message_key
        self.params = params


class InvalidInput(VidRelayError):
    """Missing or malformed input; the caller can fix it"""

    status_code = 400


class UpstreamFetchFailed(VidRelayError):
    """Metadata could not be fetched from the video host"""


class DownloadFailed(VidRelayError):
    """Metadata or media stream could not be obtained for a download"""


class ExtractionError(Exception):
    """Raised by the extraction backend for any failure.

    The message is a short summary for server-side logs only.
    """
