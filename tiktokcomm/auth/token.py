"""tiktokcomm — Token Manager.

Exchanges client credentials for a bearer token (OAuth client-credentials
grant) and renews it lazily once it has expired.
"""

from datetime import datetime
from typing import Optional

import httpx

from tiktokcomm.auth.credentials import CredentialProvider
from tiktokcomm.auth.store import MemoryTokenStore, TokenStore
from tiktokcomm.core.errors import AuthError, AuthRequiredError, ValidationError
from tiktokcomm.core.logging import get_logger
from tiktokcomm.models.auth_models import Credentials, Token, utcnow

logger = get_logger("auth.token")


class TokenManager:
    """Owns the current token for one client.

    No lock is taken around renewal: two callers sharing a store can both
    notice expiry and both re-authenticate.
    """

    def __init__(
        self,
        http_client: httpx.Client,
        oauth_url: str,
        credentials_provider: Optional[CredentialProvider] = None,
        token_store: Optional[TokenStore] = None,
    ):
        self.http_client = http_client
        self.oauth_url = oauth_url
        self.credentials_provider = credentials_provider
        self.token_store = token_store or MemoryTokenStore()

    def _resolve_credentials(self) -> Optional[Credentials]:
        credentials = self.token_store.load_credentials()
        if credentials is None and self.credentials_provider is not None:
            credentials = self.credentials_provider.get_credentials()
        return credentials

    def authenticate(
        self,
        client_key: Optional[str] = None,
        client_secret: Optional[str] = None,
    ) -> Token:
        """Request a new token and persist it with the credentials used.

        Raises:
            AuthRequiredError: no key/secret given and none configured.
            AuthError: the token endpoint refused the exchange.
            ValidationError: only one of key/secret was given.
        """
        if (client_key is None) != (client_secret is None):
            raise ValidationError("client_key and client_secret must be given together")
        if client_key is not None and client_secret is not None:
            credentials = Credentials(client_key=client_key, client_secret=client_secret)
        elif self.credentials_provider is not None:
            credentials = self.credentials_provider.get_credentials()
        else:
            credentials = None
        if credentials is None:
            raise AuthRequiredError(
                "No client credentials available. Pass client_key and client_secret "
                "or set TIKTOK_COMM_CLIENT_KEY / TIKTOK_COMM_CLIENT_SECRET."
            )

        token = self._request_token(credentials)
        self.token_store.save(token, credentials)
        logger.info(f"Authenticated; token valid until {token.expires_at.isoformat()}")
        return token

    def _request_token(self, credentials: Credentials) -> Token:
        form = {
            "client_key": credentials.client_key,
            "client_secret": credentials.client_secret,
            "grant_type": "client_credentials",
        }
        try:
            resp = self.http_client.post(
                self.oauth_url,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.RequestError as e:
            logger.error(f"Failed to connect to TikTok API: {e}")
            raise AuthError(f"Failed to connect to TikTok API: {e}") from e

        if resp.status_code != 200:
            logger.error(
                "Authentication failed", extra={"status_code": resp.status_code}
            )
            error, description = _oauth_error(resp)
            raise AuthError(
                f"Authentication failed: {description or resp.reason_phrase}",
                status_code=resp.status_code,
                error=error,
                error_description=description,
            )

        try:
            content = resp.json()
        except ValueError as e:
            raise AuthError("Authentication failed: token response is not JSON", 200) from e

        if "error" in content:
            description = content.get("error_description", "")
            logger.error(f"Authentication error: {description}")
            raise AuthError(
                f"Authentication error: {description or content['error']}",
                status_code=resp.status_code,
                error=str(content["error"]),
                error_description=description,
            )

        try:
            return Token.issue(content, issued_at=utcnow())
        except (KeyError, TypeError, ValueError) as e:
            raise AuthError(f"Authentication failed: malformed token response ({e})", 200) from e

    def get_token(self, now: Optional[datetime] = None) -> Token:
        """Return the stored token, renewing it first if it has expired.

        Raises:
            AuthRequiredError: nothing stored yet; call ``authenticate`` first.
        """
        token = self.token_store.load()
        if token is None:
            raise AuthRequiredError("Authentication required. Please run authenticate() first.")

        if not token.is_expired(now):
            return token

        logger.info("Stored token has expired. Refreshing...")
        credentials = self._resolve_credentials()
        if credentials is None:
            raise AuthRequiredError(
                "Stored token has expired and no credentials are available to renew it."
            )
        token = self._request_token(credentials)
        self.token_store.save(token, credentials)
        return token


def _oauth_error(resp: httpx.Response) -> tuple[str, str]:
    """Pull ``error`` / ``error_description`` out of a failed token response."""
    try:
        body = resp.json()
    except ValueError:
        return "", ""
    if not isinstance(body, dict):
        return "", ""
    return str(body.get("error", "")), str(body.get("error_description", ""))
