"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from typing import Any

import pytest
from click.testing import CliRunner

from folio.config import GalleryConfig
from folio.models import GalleryRecord


class RecordingSleep:
    """Stands in for asyncio.sleep and records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def temp_data_dir(tmp_path):
    """Provide a temporary data directory for tests."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def gallery_config() -> GalleryConfig:
    """Gallery hosts pointing at test domains."""
    return GalleryConfig(
        api_host="api.test",
        site_host="site.test",
        thumb_host="thumbs.test",
        image_host="images.test",
    )


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def gallery_payload() -> dict[str, Any]:
    """API payload for a three-page gallery (jpg, png, gif)."""
    return {
        "id": 123456,
        "media_id": "987654",
        "title": {
            "english": "An English Title",
            "japanese": "日本語タイトル",
            "pretty": "Pretty Title",
        },
        "images": {
            "pages": [
                {"t": "j", "w": 1280, "h": 1800},
                {"t": "p", "w": 1280, "h": 1800},
                {"t": "g", "w": 1280, "h": 1800},
            ],
            "cover": {"t": "j", "w": 350, "h": 500},
        },
        "tags": [
            {"id": 1, "type": "artist", "name": "someone"},
            {"id": 2, "type": "language", "name": "english"},
            {"id": 3, "type": "tag", "name": "scenery"},
            {"id": 4, "type": "tag", "name": "color"},
            {"id": 5, "type": "parody", "name": "original"},
        ],
        "num_pages": 3,
        "num_favorites": 42,
    }


@pytest.fixture
def gallery_record(gallery_payload) -> GalleryRecord:
    return GalleryRecord.from_api("123456", gallery_payload)
