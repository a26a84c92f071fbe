"""KiotViet public API connector."""

from connectors.kiotviet.auth import (
    KiotVietAuthConfig,
    KiotVietAuthProvider,
    KiotVietToken,
)
from connectors.kiotviet.client import (
    KiotVietApiConfig,
    KiotVietClient,
    PacingPolicy,
    RetryConfig,
)
from connectors.kiotviet.errors import (
    KiotVietApiError,
    KiotVietAuthError,
    KiotVietRateLimitError,
)


def build_kiotviet_client(settings) -> KiotVietClient:
    """Create a client from ``core.config.Settings``.

    Raises:
        ValueError: If KiotViet credentials are missing
    """
    settings.require_kiotviet()
    auth = KiotVietAuthProvider(KiotVietAuthConfig(
        client_id=settings.kiot_client_id,
        client_secret=settings.kiot_secret_key,
        token_url=settings.kiot_token_url,
    ))
    return KiotVietClient(auth, KiotVietApiConfig(
        base_url=settings.kiot_base_url,
        shop_name=settings.kiot_shop_name,
    ))


__all__ = [
    "KiotVietAuthConfig",
    "KiotVietAuthProvider",
    "KiotVietToken",
    "KiotVietApiConfig",
    "KiotVietClient",
    "PacingPolicy",
    "RetryConfig",
    "KiotVietApiError",
    "KiotVietAuthError",
    "KiotVietRateLimitError",
    "build_kiotviet_client",
]
