"""KiotViet Authentication Provider.

Client-credentials OAuth2 against the KiotViet identity server. The token is
cached in memory and refreshed five minutes before it expires.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

import aiohttp

from connectors.kiotviet.errors import KiotVietAuthError
from core.observability.logging import get_logger


logger = get_logger(__name__)


@dataclass
class KiotVietAuthConfig:
    """Configuration for KiotViet authentication.

    Attributes:
        client_id: Public API client id
        client_secret: Public API secret key
        token_url: Identity server token endpoint
        scopes: Requested scopes
    """
    client_id: str
    client_secret: str
    token_url: str = "https://id.kiotviet.vn/connect/token"
    scopes: str = "PublicApi.Access"


@dataclass
class KiotVietToken:
    """OAuth2 access token with expiration tracking."""
    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 86400
    obtained_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def expires_at(self) -> datetime:
        return self.obtained_at + timedelta(seconds=self.expires_in)

    @property
    def is_expired(self) -> bool:
        """Check if token is expired (with 5-minute buffer)."""
        buffer = timedelta(minutes=5)
        return datetime.utcnow() >= (self.expires_at - buffer)

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type} {self.access_token}"


class KiotVietAuthProvider:
    """Authentication provider for the KiotViet public API.

    Usage:
        auth = KiotVietAuthProvider(KiotVietAuthConfig(client_id, secret))
        async with aiohttp.ClientSession() as session:
            await auth.ensure_valid_token(session)
            headers = {"Authorization": auth.get_authorization_header()}
    """

    def __init__(self, config: KiotVietAuthConfig):
        self.config = config
        self._token: Optional[KiotVietToken] = None

    def get_token(self) -> Optional[KiotVietToken]:
        if self._token and not self._token.is_expired:
            return self._token
        return None

    def get_authorization_header(self) -> Optional[str]:
        token = self.get_token()
        return token.authorization_header if token else None

    def invalidate(self) -> None:
        """Forget the cached token (after a 401)."""
        self._token = None

    async def ensure_valid_token(self, session: aiohttp.ClientSession) -> KiotVietToken:
        """Return a valid token, fetching a new one if needed.

        Raises:
            KiotVietAuthError: If the identity server refuses the request
        """
        token = self.get_token()
        if token:
            return token
        return await self._fetch_token(session)

    async def _fetch_token(self, session: aiohttp.ClientSession) -> KiotVietToken:
        data = {
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "grant_type": "client_credentials",
            "scopes": self.config.scopes,
        }

        try:
            async with session.post(
                self.config.token_url,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise KiotVietAuthError(
                        f"Token request failed: {response.status} - {error_text}",
                        response.status,
                        error_text,
                    )
                token_data = await response.json()
        except aiohttp.ClientError as e:
            raise KiotVietAuthError(f"Token request failed: {e}") from e

        if "access_token" not in token_data:
            raise KiotVietAuthError("Token response has no access_token")

        self._token = KiotVietToken(
            access_token=token_data["access_token"],
            token_type=token_data.get("token_type", "Bearer"),
            expires_in=int(token_data.get("expires_in", 86400)),
        )
        logger.info("Obtained KiotViet access token")
        return self._token
