"""tiktokcomm — Credential & Token Models."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Credentials(BaseModel):
    """Client key/secret pair issued for the research API."""

    client_key: str
    client_secret: str

    def __repr__(self) -> str:
        return f"Credentials(client_key={self.client_key!r}, client_secret='****')"


class Token(BaseModel):
    """Bearer token from the client-credentials grant.

    ``expires_at`` is always ``issued_at + expires_in``; the token is
    unusable once the current time reaches it.
    """

    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    expires_at: datetime

    @classmethod
    def issue(cls, payload: Dict[str, Any], issued_at: Optional[datetime] = None) -> "Token":
        """Build a token from the OAuth response body."""
        issued_at = issued_at or utcnow()
        expires_in = int(payload["expires_in"])
        return cls(
            access_token=payload["access_token"],
            token_type=payload.get("token_type") or "Bearer",
            expires_in=expires_in,
            expires_at=issued_at + timedelta(seconds=expires_in),
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return now >= expires_at

    @property
    def authorization(self) -> str:
        return f"Bearer {self.access_token}"

    def __repr__(self) -> str:
        return f"Token(token_type={self.token_type!r}, expires_at={self.expires_at.isoformat()!r})"
