"""tiktokcomm — Error Taxonomy."""


class TikTokCommError(Exception):
    """Base class for every error raised by this client."""

    def __init__(self, message: str, status_code: int = 0):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class AuthRequiredError(TikTokCommError):
    """No token (or no credentials to renew one) is available.

    The caller must authenticate first; query functions never prompt.
    """


class AuthError(TikTokCommError):
    """The OAuth endpoint rejected the credential exchange."""

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        error: str = "",
        error_description: str = "",
    ):
        self.error = error
        self.error_description = error_description
        super().__init__(message, status_code)


class HttpError(TikTokCommError):
    """A data endpoint answered with something other than success."""

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        error_code: str = "",
        log_id: str = "",
    ):
        self.error_code = error_code
        self.log_id = log_id
        super().__init__(message, status_code)

    def __str__(self) -> str:
        return f"{self.message} (status code: {self.status_code})"


class ValidationError(TikTokCommError, ValueError):
    """Query parameters were rejected before any request was sent."""


class ResponseSchemaError(TikTokCommError):
    """A response body did not match the expected endpoint schema."""
