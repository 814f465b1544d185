"""tiktokcomm — Token Stores.

Where the current token (and the credentials that produced it) live between
requests. ``MemoryTokenStore`` belongs to a single client; ``EnvTokenStore``
is the process-wide store shared through ``os.environ``.
"""

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from dotenv import set_key
from pydantic import ValidationError as PydanticValidationError

from tiktokcomm.config import Settings
from tiktokcomm.models.auth_models import Credentials, Token
from tiktokcomm.core.logging import get_logger

logger = get_logger("auth.store")

ENV_CLIENT_KEY = "TIKTOK_COMM_CLIENT_KEY"
ENV_CLIENT_SECRET = "TIKTOK_COMM_CLIENT_SECRET"
ENV_TOKEN = "TIKTOK_COMM_TOKEN"


class TokenStore(ABC):
    """Abstract persisted token + credentials."""

    @abstractmethod
    def load(self) -> Optional[Token]:
        ...

    @abstractmethod
    def save(self, token: Token, credentials: Credentials) -> None:
        ...

    @abstractmethod
    def load_credentials(self) -> Optional[Credentials]:
        """Credentials saved alongside the last token, if any."""
        ...


class MemoryTokenStore(TokenStore):
    """Keeps the token on the instance."""

    def __init__(self, token: Optional[Token] = None, credentials: Optional[Credentials] = None):
        self._token = token
        self._credentials = credentials

    def load(self) -> Optional[Token]:
        return self._token

    def save(self, token: Token, credentials: Credentials) -> None:
        self._token = token
        self._credentials = credentials

    def load_credentials(self) -> Optional[Credentials]:
        return self._credentials


class EnvTokenStore(TokenStore):
    """Process-wide store backed by the ``TIKTOK_COMM_*`` environment variables.

    Values are read through ``Settings``, so the process environment wins over
    the dotenv file. With ``env_file`` set, saved values are also written to
    that file so the next process starts authenticated.
    """

    def __init__(self, env_file: Optional[str] = None):
        self.env_file = env_file

    def _current(self) -> Settings:
        if self.env_file:
            return Settings(_env_file=self.env_file)
        return Settings()

    def load(self) -> Optional[Token]:
        raw = self._current().tiktok_comm_token
        if not raw:
            return None
        try:
            return Token.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.warning(f"Ignoring unreadable stored token: {e.error_count()} error(s)")
            return None

    def save(self, token: Token, credentials: Credentials) -> None:
        values = {
            ENV_CLIENT_KEY: credentials.client_key,
            ENV_CLIENT_SECRET: credentials.client_secret,
            ENV_TOKEN: token.model_dump_json(),
        }
        os.environ.update(values)
        if self.env_file:
            Path(self.env_file).touch(exist_ok=True)
            for key, value in values.items():
                set_key(self.env_file, key, value, quote_mode="always")
            logger.info(f"Credentials stored in {self.env_file}")

    def load_credentials(self) -> Optional[Credentials]:
        current = self._current()
        key = current.tiktok_comm_client_key
        secret = current.tiktok_comm_client_secret
        if not key or not secret:
            return None
        return Credentials(client_key=key, client_secret=secret)
