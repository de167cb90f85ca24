import pytest

from stubs import StubExtractionClient
from vidrelay.main import app
from vidrelay.models.internal import RawAuthor, RawFormat, RawThumbnail, RawVideoInfo
from vidrelay.services.extraction import get_extraction_client


@pytest.fixture
def sample_info():
    return RawVideoInfo(
        title="Test Video",
        thumbnails=[RawThumbnail(url="t1"), RawThumbnail(url="t2")],
        length_seconds=125,
        author=RawAuthor(name="Author"),
        formats=[
            RawFormat(quality_label="720p", container="mp4", url="u1", itag=22, has_video=True, has_audio=True),
            RawFormat(quality_label="1080p", container="mp4", url="u2", itag=37, has_video=True, has_audio=False),
        ],
    )


@pytest.fixture
def stub_client(sample_info):
    client = StubExtractionClient(sample_info)
    app.dependency_overrides[get_extraction_client] = lambda: client
    yield client
    app.dependency_overrides.clear()
