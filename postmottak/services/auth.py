"""
OAuth2 client-credentials tokens for Graph and the archive API.
"""

import time

import httpx

from postmottak.config import settings
from postmottak.core.errors import PostmottakError
from postmottak.core.logging import get_logger

log = get_logger(__name__)

# Refresh tokens this many seconds before they expire
EXPIRY_MARGIN = 300


class TokenProvider:
    """Fetches and caches app-only access tokens from Entra ID."""

    def __init__(
        self,
        tenant_id: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        timeout: float = 30.0,
    ):
        self.tenant_id = tenant_id or settings.azure_tenant_id
        self.client_id = client_id or settings.azure_client_id
        self.client_secret = client_secret or settings.azure_client_secret
        self._client = httpx.Client(timeout=timeout)
        self._tokens: dict[str, tuple[str, float]] = {}

    @property
    def token_url(self) -> str:
        return f"https://login.microsoftonline.com/{self.tenant_id}/oauth2/v2.0/token"

    def get_token(self, scopes: list[str]) -> str:
        """
        Get an access token for the given scopes.

        Returns a cached token while it is still valid.
        """
        key = " ".join(scopes)
        cached = self._tokens.get(key)
        if cached and cached[1] > time.monotonic():
            return cached[0]

        try:
            response = self._client.post(
                self.token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "scope": key,
                },
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            log.error(
                "token_request_failed",
                status=e.response.status_code,
                scopes=key,
                error=e.response.text[:500],
            )
            raise PostmottakError(f"Token request failed for {key}: {e}")
        except httpx.RequestError as e:
            log.error("token_request_error", scopes=key, error=str(e))
            raise PostmottakError(f"Failed to reach token endpoint: {e}")

        token = data["access_token"]
        expires_in = int(data.get("expires_in", 3600))
        self._tokens[key] = (token, time.monotonic() + max(expires_in - EXPIRY_MARGIN, 0))
        log.debug("token_acquired", scopes=key, expires_in=expires_in)
        return token

    def invalidate(self, scopes: list[str]) -> None:
        """Forget the cached token for these scopes."""
        self._tokens.pop(" ".join(scopes), None)
