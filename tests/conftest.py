"""Shared fixtures: settings, tokens, clients and a mocked TikTok API."""

from datetime import timedelta

import pytest
import respx

from tiktokcomm.auth.store import ENV_CLIENT_KEY, ENV_CLIENT_SECRET, ENV_TOKEN, MemoryTokenStore
from tiktokcomm.config import Settings
from tiktokcomm.connectors.tiktok.client import TikTokClient
from tiktokcomm.connectors.tiktok.endpoints import TikTokEndpoints
from tiktokcomm.models.auth_models import Credentials, Token, utcnow

BASE_URL = "https://open.tiktokapis.com"
OAUTH_URL = f"{BASE_URL}/v2/oauth/token/"
ADLIB_URL = f"{BASE_URL}/v2/research/adlib"


def ok(data: dict) -> dict:
    """Wrap a ``data`` payload the way the research API does."""
    return {"data": data, "error": {"code": "ok", "message": "", "log_id": "log-1"}}


def make_ad(ad_id: int, status: str = "active") -> dict:
    return {
        "ad": {
            "id": ad_id,
            "first_shown_date": "20240105",
            "last_shown_date": "20240220",
            "status": status,
            "image_urls": [f"https://img.example/{ad_id}.jpg"],
            "videos": [{"url": f"https://video.example/{ad_id}.mp4", "cover_image_url": "c.jpg"}],
            "reach": {"unique_users_seen": "10K-100K"},
        },
        "advertiser": {
            "business_id": 7000 + ad_id,
            "business_name": f"Advertiser {ad_id}",
            "paid_for_by": f"Payer {ad_id}",
        },
    }


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the process-wide credential variables out of every test."""
    for key in (ENV_CLIENT_KEY, ENV_CLIENT_SECRET, ENV_TOKEN):
        # setenv first so monkeypatch also undoes values the test writes
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


@pytest.fixture
def settings():
    return Settings(_env_file=None, tiktok_base_url=BASE_URL, default_max_pages=50)


@pytest.fixture
def credentials():
    return Credentials(client_key="test_client_key", client_secret="test_client_secret")


@pytest.fixture
def valid_token():
    return Token(
        access_token="valid_access_token",
        token_type="Bearer",
        expires_in=7200,
        expires_at=utcnow() + timedelta(hours=1),
    )


@pytest.fixture
def expired_token():
    return Token(
        access_token="expired_access_token",
        token_type="Bearer",
        expires_in=7200,
        expires_at=utcnow() - timedelta(minutes=5),
    )


@pytest.fixture
def client(settings, valid_token, credentials):
    """Client that is already authenticated with a valid token."""
    tiktok = TikTokClient(
        token_store=MemoryTokenStore(valid_token, credentials),
        settings=settings,
    )
    yield tiktok
    tiktok.close()


@pytest.fixture
def endpoints(client):
    return TikTokEndpoints(client)


@pytest.fixture
def api_mock():
    """respx router for the TikTok API; every unmatched request fails."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock
