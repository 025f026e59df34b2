"""
User info retrieval from the provider's profile endpoint.
"""

from typing import Any, Dict, Optional

import httpx

from shared.circuit_breaker import CircuitBreaker, CircuitOpenError
from shared.errors import InvalidTokenError, ProviderError
from shared.logging import get_logger
from .discovery import OIDCProvider


class UserInfoClient:
    """Fetches identity attributes for an access token (OIDC Core 5.3)."""

    def __init__(self, provider: OIDCProvider, breaker: Optional[CircuitBreaker] = None) -> None:
        self.provider = provider
        self.breaker = breaker or CircuitBreaker(
            "oidc.userinfo",
            tracked_exceptions=(httpx.TransportError,),
        )
        self.logger = get_logger("gate.oidc.userinfo")

    @property
    def endpoint(self) -> Optional[str]:
        if not self.provider.configuration:
            return None
        return self.provider.configuration.get("userinfo_endpoint")

    async def fetch_user_info(self, token: str) -> Dict[str, Any]:
        """Return the attributes the provider publishes for ``token``'s subject."""
        endpoint = self.endpoint
        if not endpoint:
            raise ProviderError("userinfo", "Provider does not advertise a userinfo endpoint")

        try:
            response = await self.breaker.call(
                self.provider.http_client.get,
                endpoint,
                headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            )
        except CircuitOpenError as e:
            raise ProviderError("userinfo", "Identity endpoint temporarily unavailable", status_code=503) from e
        except httpx.TransportError as e:
            self.logger.error("Identity endpoint unreachable", error=str(e))
            raise ProviderError("userinfo", "Identity endpoint unreachable", status_code=503) from e

        if response.status_code in (401, 403):
            self.logger.warning("Identity endpoint rejected access token", status_code=response.status_code)
            raise InvalidTokenError("Invalid access token", details={"source": "userinfo"})

        if response.status_code != 200:
            raise ProviderError(
                "userinfo",
                f"Unexpected status {response.status_code}",
                details={"status_code": response.status_code}
            )

        try:
            user_info = response.json()
        except ValueError as e:
            raise ProviderError("userinfo", "Response is not valid JSON") from e

        if not isinstance(user_info, dict):
            raise ProviderError("userinfo", "Response is not a JSON object")

        return user_info
