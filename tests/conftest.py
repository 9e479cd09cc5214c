"""Shared fixtures."""

from pathlib import Path

import httpx
import pytest

from fakes import RecordingTransport
from wanikani_client.client import WaniKaniClient
from wanikani_client.config import Settings

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def settings(tmp_path):
    """Settings with every file under the test's temporary directory."""
    return Settings(data_dir=tmp_path, app_label="wanikani-client", page_size=None)


@pytest.fixture
def html():
    """Load a saved WaniKani page from tests/fixtures."""

    def load(name: str) -> str:
        return (FIXTURES / name).read_text(encoding="utf-8")

    return load


@pytest.fixture
def make_client(settings):
    """Build a WaniKaniClient on a RecordingTransport."""

    def make(handler, token: str | None = None):
        transport = RecordingTransport(handler)
        http = httpx.AsyncClient(base_url=settings.api_base_url, transport=transport)
        return WaniKaniClient.from_http(http, settings, token=token), transport

    return make
