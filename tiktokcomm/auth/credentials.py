"""tiktokcomm — Credential Providers.

A provider hands the Token Manager a client key/secret when it needs to
(re-)authenticate. Nothing here prompts; interactive entry belongs to the
caller.
"""

from abc import ABC, abstractmethod
from typing import Optional

from tiktokcomm.config import Settings
from tiktokcomm.models.auth_models import Credentials


class CredentialProvider(ABC):
    """Abstract source of client credentials."""

    @abstractmethod
    def get_credentials(self) -> Optional[Credentials]:
        """Return credentials, or None when none are configured."""
        ...


class StaticCredentialProvider(CredentialProvider):
    """Credentials passed in directly by the caller."""

    def __init__(self, client_key: str, client_secret: str):
        self._credentials = Credentials(client_key=client_key, client_secret=client_secret)

    def get_credentials(self) -> Optional[Credentials]:
        return self._credentials


class EnvCredentialProvider(CredentialProvider):
    """Reads ``TIKTOK_COMM_CLIENT_KEY`` / ``TIKTOK_COMM_CLIENT_SECRET``.

    A fresh ``Settings`` is built on every call so values written to the
    environment after import are still picked up.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings

    def get_credentials(self) -> Optional[Credentials]:
        current = self._settings or Settings()
        if not current.tiktok_comm_client_key or not current.tiktok_comm_client_secret:
            return None
        return Credentials(
            client_key=current.tiktok_comm_client_key,
            client_secret=current.tiktok_comm_client_secret,
        )
