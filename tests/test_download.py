import asyncio
from contextlib import suppress

import pytest
from httpx import ASGITransport, AsyncClient

from vidrelay.core.errors import DownloadFailed, ExtractionError
from vidrelay.api.download import RelayResponse
from vidrelay.main import app
from vidrelay.models.request import DownloadRequest
from vidrelay.services.download import DownloadService, build_filename, relay
from stubs import StubStream

URL = "https://youtu.be/abc123"


def make_client():
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_download_streams_attachment(stub_client):
    async with make_client() as ac:
        response = await ac.get("/api/download", params={"url": URL, "itag": "22"})

    assert response.status_code == 200
    assert response.headers["content-disposition"] == 'attachment; filename="Test Video.mp4"'
    assert response.headers["content-type"] == "video/mp4"
    assert response.content == b"chunk-1chunk-2chunk-3"
    assert stub_client.upstream_calls == [
        ("get_info", URL),
        ("open_stream", URL, "mp4", 22),
    ]
    assert stub_client.stream.close_calls >= 1


@pytest.mark.asyncio
@pytest.mark.parametrize("itag", ["abc", "", "-5", "22abc", "1.5"])
async def test_invalid_itag_falls_back_to_highest(stub_client, itag):
    async with make_client() as ac:
        response = await ac.get("/api/download", params={"url": URL, "itag": itag})

    assert response.status_code == 200
    assert stub_client.upstream_calls[-1] == ("open_stream", URL, "mp4", None)


@pytest.mark.asyncio
async def test_missing_itag_requests_highest(stub_client):
    async with make_client() as ac:
        await ac.get("/api/download", params={"url": URL})

    assert stub_client.upstream_calls[-1] == ("open_stream", URL, "mp4", None)


@pytest.mark.asyncio
async def test_title_is_sanitized_for_header(stub_client, sample_info):
    sample_info.title = "My Video: Part #1!"

    async with make_client() as ac:
        response = await ac.get("/api/download", params={"url": URL})

    assert response.headers["content-disposition"] == 'attachment; filename="My Video Part 1.mp4"'


@pytest.mark.asyncio
@pytest.mark.parametrize("params", [{}, {"url": ""}, {"itag": "22"}])
async def test_download_requires_url(stub_client, params):
    async with make_client() as ac:
        response = await ac.get("/api/download", params=params)

    assert response.status_code == 400
    assert response.json() == {"error": "URL is required"}
    assert stub_client.calls == []


@pytest.mark.asyncio
async def test_download_rejects_invalid_url(stub_client):
    stub_client.valid = False

    async with make_client() as ac:
        response = await ac.get("/api/download", params={"url": "https://example.com/x"})

    assert response.status_code == 400
    assert stub_client.upstream_calls == []


@pytest.mark.asyncio
async def test_download_metadata_failure(stub_client):
    stub_client.info_error = ExtractionError("HTTP Error 403: Forbidden")

    async with make_client() as ac:
        response = await ac.get("/api/download", params={"url": URL})

    assert response.status_code == 500
    assert response.json() == {"error": "Download failed"}
    assert "403" not in response.text
    assert stub_client.upstream_calls == [("get_info", URL)]


@pytest.mark.asyncio
async def test_download_stream_open_failure(stub_client):
    stub_client.stream_error = ExtractionError("Requested format is not available")

    async with make_client() as ac:
        response = await ac.get("/api/download", params={"url": URL, "itag": "9999"})

    assert response.status_code == 500
    assert response.json() == {"error": "Download failed"}
    assert "content-disposition" not in response.headers


@pytest.mark.asyncio
async def test_service_maps_any_upstream_error(stub_client):
    stub_client.info_error = ValueError("unexpected")

    with pytest.raises(DownloadFailed) as exc_info:
        await DownloadService.download(DownloadRequest(url=URL), stub_client)

    assert isinstance(exc_info.value.__cause__, ValueError)


@pytest.mark.asyncio
async def test_relay_holds_at_most_one_chunk():
    produced = []

    class CountingStream:
        closed = False

        async def __aiter__(self):
            for _ in range(10_000):
                produced.append(1)
                yield b"x" * 1024

        async def aclose(self):
            self.closed = True

    stream = CountingStream()
    consumed = 0
    async for chunk in relay(stream, URL):
        consumed += 1
        assert len(produced) - consumed == 0
        assert len(chunk) == 1024

    assert consumed == 10_000
    assert stream.closed


@pytest.mark.asyncio
async def test_relay_closes_upstream_on_disconnect():
    stream = StubStream([b"a", b"b", b"c"])
    body = relay(stream, URL)

    assert await body.__anext__() == b"a"
    await body.aclose()

    assert stream.close_calls == 1
    assert stream.produced == 1


@pytest.mark.asyncio
async def test_relay_truncates_on_upstream_failure():
    stream = StubStream([b"a", b"b", b"c"], fail_after=2)
    received = []

    with pytest.raises(ExtractionError):
        async for chunk in relay(stream, URL):
            received.append(chunk)

    assert received == [b"a", b"b"]
    assert stream.close_calls == 1


def test_build_filename_falls_back_to_url_hash():
    name = build_filename("日本語のタイトル", URL, "mp4")

    assert name.startswith("video_")
    assert name.endswith(".mp4")
    assert len(name) == len("video_12345678.mp4")


async def download_with_dropped_connection(spec_version, drop_on_body_message=2):
    """Drive the app over raw ASGI; the client connection fails mid-body"""
    scope = {
        "type": "http",
        "asgi": {"version": "3.0", "spec_version": spec_version},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": "/api/download",
        "raw_path": b"/api/download",
        "root_path": "",
        "query_string": b"url=https%3A%2F%2Fyoutu.be%2Fabc123",
        "headers": [(b"host", b"test")],
        "client": ("127.0.0.1", 50000),
        "server": ("test", 80),
    }
    body_messages = []
    requested = False

    async def receive():
        nonlocal requested
        if not requested:
            requested = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await asyncio.Event().wait()

    async def send(message):
        if message["type"] == "http.response.body":
            body_messages.append(message)
            if len(body_messages) == drop_on_body_message:
                raise OSError("connection reset by peer")

    with suppress(Exception):
        await app(scope, receive, send)

    return body_messages


@pytest.mark.asyncio
@pytest.mark.parametrize("spec_version", ["2.3", "2.4"])
async def test_client_disconnect_releases_upstream(stub_client, spec_version):
    stub_client.chunks = [b"x" * 1024] * 1000

    body_messages = await download_with_dropped_connection(spec_version)

    assert len(body_messages) == 2
    assert stub_client.stream.close_calls >= 1
    assert stub_client.stream.produced < 1000


@pytest.mark.asyncio
async def test_relay_response_closes_stream_before_body_starts():
    stream = StubStream([b"a", b"b"])

    async def send(message):
        raise OSError("connection reset by peer")

    async def receive():
        await asyncio.Event().wait()

    response = RelayResponse(relay(stream, URL), on_close=stream.aclose, media_type="video/mp4")
    scope = {"type": "http", "asgi": {"version": "3.0", "spec_version": "2.4"}}

    with suppress(Exception):
        await response(scope, receive, send)

    assert stream.close_calls == 1
    assert stream.produced == 0


@pytest.mark.asyncio
async def test_service_returns_opened_stream(stub_client):
    body, headers, stream = await DownloadService.download(DownloadRequest(url=URL, itag=22), stub_client)

    assert stream is stub_client.stream
    assert headers["Content-Disposition"] == 'attachment; filename="Test Video.mp4"'
    assert [chunk async for chunk in body] == stub_client.chunks
    assert stream.close_calls == 1
