"""tiktokcomm — Module-Level Convenience API.

Functions backed by one shared client that reads credentials from, and
saves tokens to, the ``TIKTOK_COMM_*`` environment variables. Code that needs
several independent sessions should build its own ``TikTokClient``.

    from tiktokcomm import adlib

    adlib.authenticate("my-key", "my-secret", env_file=".env")
    ads = adlib.query_ads(start_date="2024-01-01", end_date="2024-03-31",
                          country_code="DE", search_term="example")
"""

from typing import Any, Optional

import pandas as pd

from tiktokcomm.auth.credentials import EnvCredentialProvider
from tiktokcomm.auth.store import EnvTokenStore
from tiktokcomm.connectors.tiktok.client import TikTokClient
from tiktokcomm.connectors.tiktok.endpoints import TikTokEndpoints
from tiktokcomm.models.auth_models import Token

_client: Optional[TikTokClient] = None


def get_client() -> TikTokClient:
    """Return (creating on first use) the shared environment-backed client."""
    global _client
    if _client is None:
        _client = TikTokClient(
            credentials_provider=EnvCredentialProvider(),
            token_store=EnvTokenStore(),
        )
    return _client


def reset_client() -> None:
    """Close and forget the shared client."""
    global _client
    if _client is not None:
        _client.close()
        _client = None


def authenticate(
    client_key: Optional[str] = None,
    client_secret: Optional[str] = None,
    env_file: Optional[str] = None,
) -> Token:
    """Obtain a token and store it (and the credentials) in the environment.

    Without arguments the key/secret are read from the environment. With
    ``env_file`` the values are also written to that dotenv file, now and on
    every later renewal.
    """
    client = get_client()
    store = client.tokens.token_store
    if env_file is not None and isinstance(store, EnvTokenStore):
        store.env_file = env_file
    return client.authenticate(client_key, client_secret)


def get_token() -> Token:
    return get_client().tokens.get_token()


def query_ads(**kwargs: Any) -> pd.DataFrame:
    return TikTokEndpoints(get_client()).query_ads(**kwargs)


def get_ad_details(ad_id: Any, **kwargs: Any) -> pd.DataFrame:
    return TikTokEndpoints(get_client()).get_ad_details(ad_id, **kwargs)


def get_ad_report(start_date: Any, end_date: Any, **kwargs: Any) -> pd.DataFrame:
    return TikTokEndpoints(get_client()).get_ad_report(start_date, end_date, **kwargs)


def query_advertisers(search_term: str, **kwargs: Any) -> pd.DataFrame:
    return TikTokEndpoints(get_client()).query_advertisers(search_term, **kwargs)


def query_commercial_content(start_date: Any, end_date: Any, **kwargs: Any) -> pd.DataFrame:
    return TikTokEndpoints(get_client()).query_commercial_content(start_date, end_date, **kwargs)
