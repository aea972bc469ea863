"""Shared fixtures for the VidStream test suite."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from vidstream.config import reset_settings
from vidstream.models import Video


# ---------------------------------------------------------------------------
# Ensure we don't hit real APIs during tests
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _block_env_keys(monkeypatch):
    """Clear API keys and overrides so tests never hit real services."""
    keys = [
        "YOUTUBE_API_KEY",
        "VIDSTREAM_CACHE_TTL_SECONDS",
        "VIDSTREAM_REQUEST_TIMEOUT_SECONDS",
        "VIDSTREAM_REGION_CODE",
        "VIDSTREAM_LOG_LEVEL",
    ]
    for key in keys:
        monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()


# ---------------------------------------------------------------------------
# Common datetime fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def sample_utc_now():
    """A fixed UTC datetime for deterministic tests."""
    return datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Video factory
# ---------------------------------------------------------------------------
@pytest.fixture
def make_video(sample_utc_now):
    """Build a Video whose upload date is ``days_ago`` before ``sample_utc_now``."""

    def _make(
        video_id: str = "vid-1",
        title: str = "Sample video",
        views: int = 1000,
        likes: int = 50,
        comments: int = 10,
        days_ago: Optional[float] = 5,
        tags: Optional[List[str]] = None,
        description: str = "",
        duration: int = 600,
    ) -> Video:
        upload_date = (
            sample_utc_now - timedelta(days=days_ago) if days_ago is not None else None
        )
        return Video(
            id=video_id,
            title=title,
            description=description,
            views=views,
            likes=likes,
            comments=comments,
            upload_date=upload_date,
            tags=list(tags or []),
            duration=duration,
        )

    return _make


class FakeClock:
    """Manually advanced monotonic clock for cache tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()
