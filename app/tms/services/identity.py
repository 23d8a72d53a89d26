"""
Client for the external identity provider.

Bearer tokens are issued and checked by the provider; this module only
asks it who a token belongs to and passes the opaque user id on.
"""

import logging

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class AuthenticatedUser(BaseModel):
    """Caller identity as reported by the identity provider."""

    id: str
    email: str | None = None


class AuthenticationError(Exception):
    """Raised when a token is missing, rejected, or cannot be checked."""

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message)
        self.status_code = status_code


class IdentityProvider:
    """Resolves bearer tokens via ``GET {base_url}/user``."""

    def __init__(
        self,
        base_url: str | None,
        api_key: str | None = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.api_key = api_key
        self.timeout = timeout

    async def get_user(self, token: str) -> AuthenticatedUser:
        """
        Look up the user a token belongs to.

        Raises:
            AuthenticationError: 401 for rejected tokens, 503 when the
                provider is not configured or unreachable.
        """
        if not self.base_url:
            raise AuthenticationError("Identity provider not configured", status_code=503)

        headers = {"Authorization": f"Bearer {token}"}
        if self.api_key:
            headers["apikey"] = self.api_key

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(f"{self.base_url}/user", headers=headers)
        except httpx.HTTPError as e:
            logger.error("Identity provider unreachable: %s", e)
            raise AuthenticationError("Identity provider unavailable", status_code=503) from e

        if response.status_code != 200:
            logger.info("Identity provider rejected token (HTTP %d)", response.status_code)
            raise AuthenticationError("Invalid or expired token")

        try:
            data = response.json()
        except ValueError as e:
            logger.error("Identity provider returned a non-JSON body")
            raise AuthenticationError("Identity provider unavailable", status_code=503) from e
        if not isinstance(data, dict) or not data.get("id"):
            raise AuthenticationError("Invalid or expired token")
        return AuthenticatedUser(id=str(data["id"]), email=data.get("email"))


_identity_provider: IdentityProvider | None = None


def get_identity_provider() -> IdentityProvider:
    """Get or create the identity provider singleton."""
    global _identity_provider
    if _identity_provider is None:
        from ..config import get_settings

        settings = get_settings()
        _identity_provider = IdentityProvider(settings.identity_url, settings.identity_api_key)
    return _identity_provider
