"""tiktokcomm — Central Configuration via Pydantic Settings."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Client settings loaded from environment variables / .env file."""

    # ── Credentials (process-wide store) ──
    tiktok_comm_client_key: str = ""
    tiktok_comm_client_secret: str = ""
    tiktok_comm_token: str = ""  # JSON-serialized Token

    # ── TikTok API ──
    tiktok_base_url: str = "https://open.tiktokapis.com"
    tiktok_api_version: str = "v2"

    # ── Pagination ──
    default_max_pages: int = 50

    # ── App ──
    log_level: str = "INFO"

    @property
    def oauth_url(self) -> str:
        """OAuth client-credentials token endpoint."""
        return f"{self.tiktok_base_url}/{self.tiktok_api_version}/oauth/token/"

    @property
    def research_base_url(self) -> str:
        """Base URL of the commercial content (ad library) research API."""
        return f"{self.tiktok_base_url}/{self.tiktok_api_version}/research/adlib"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
