"""Business Central Credential Provider.

Obtains app-to-app (client credentials) bearer tokens from Azure AD for the
Business Central APIs and caches them until shortly before expiry.

One provider is shared by both API adapters. Callers only ever ask for a
valid credential; refresh happens behind an asyncio.Lock so that concurrent
requests near expiry trigger a single token exchange.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

import aiohttp

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class BCAuthConfig:
    """Configuration for BC authentication.

    Attributes:
        tenant_id: Azure AD tenant ID
        client_id: Application (client) ID
        client_secret: Client secret
        scope: OAuth2 scope (the BC API default scope)
    """
    tenant_id: str
    client_id: str
    client_secret: str
    scope: str = "https://api.businesscentral.dynamics.com/.default"
    authority_url: str = "https://login.microsoftonline.com"
    timeout_seconds: int = 30

    @property
    def token_endpoint(self) -> str:
        """Get the OAuth2 token endpoint."""
        return f"{self.authority_url}/{self.tenant_id}/oauth2/v2.0/token"


@dataclass
class BCToken:
    """OAuth2 access token with expiration tracking."""
    access_token: str
    token_type: str
    expires_in: int
    obtained_at: datetime = field(default_factory=_utcnow)

    @property
    def expires_at(self) -> datetime:
        return self.obtained_at + timedelta(seconds=self.expires_in)

    @property
    def is_expired(self) -> bool:
        """Check if token is expired (with 5-minute buffer)."""
        buffer = timedelta(minutes=5)
        return _utcnow() >= (self.expires_at - buffer)

    @property
    def authorization_header(self) -> str:
        """Get the Authorization header value."""
        return f"{self.token_type} {self.access_token}"


class BCCredentialProvider:
    """Client-credentials token source for Business Central.

    Usage:
        provider = BCCredentialProvider(BCAuthConfig(tenant_id=..., client_id=..., client_secret=...))
        token = await provider.get_valid_credential()
        headers = {"Authorization": token.authorization_header}
    """

    def __init__(self, config: BCAuthConfig, session: Optional[aiohttp.ClientSession] = None):
        """Initialize credential provider.

        Args:
            config: Authentication configuration
            session: Optional shared aiohttp session; a short-lived one is
                opened per token exchange otherwise
        """
        self.config = config
        self._session = session
        self._token: Optional[BCToken] = None
        self._lock = asyncio.Lock()

    async def get_valid_credential(self) -> BCToken:
        """Return a non-expired token, exchanging credentials if needed.

        Raises:
            CredentialError: The token endpoint refused or could not be reached
        """
        token = self._token
        if token is not None and not token.is_expired:
            return token

        async with self._lock:
            # Another caller may have refreshed while we waited
            token = self._token
            if token is not None and not token.is_expired:
                return token

            self._token = await self._fetch_token()
            return self._token

    async def _fetch_token(self) -> BCToken:
        """Fetch a new access token from Azure AD."""
        from connectors.business_central.bc_client import CredentialError

        data = {
            "grant_type": "client_credentials",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "scope": self.config.scope,
        }
        timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)

        owns_session = self._session is None
        session = aiohttp.ClientSession() if owns_session else self._session
        try:
            async with session.post(
                self.config.token_endpoint,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=timeout,
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise CredentialError(
                        f"Token request failed: {response.status}",
                        status_code=response.status,
                        response_body=error_text,
                    )
                token_data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise CredentialError(f"Token request failed: {type(e).__name__}: {e}") from e
        finally:
            if owns_session:
                await session.close()

        if "access_token" not in token_data:
            raise CredentialError("Token response did not contain access_token")

        logger.info(f"Obtained Business Central token (expires in {token_data.get('expires_in', 3600)}s)")
        return BCToken(
            access_token=token_data["access_token"],
            token_type=token_data.get("token_type", "Bearer"),
            expires_in=int(token_data.get("expires_in", 3600)),
        )
