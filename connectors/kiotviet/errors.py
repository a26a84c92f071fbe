"""KiotViet API exceptions."""


class KiotVietApiError(Exception):
    """Base exception for KiotViet API errors."""
    def __init__(self, message: str, status_code: int = 0, response_body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class KiotVietAuthError(KiotVietApiError):
    """Token request failed or the token was rejected (401/403)."""
    pass


class KiotVietRateLimitError(KiotVietApiError):
    """Rate limit exceeded (429) after all retries."""
    def __init__(self, message: str, retry_after: float = 60):
        super().__init__(message, 429)
        self.retry_after = retry_after
