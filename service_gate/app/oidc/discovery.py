"""
Provider metadata and signing keys of the issuing authority.
"""

import asyncio
from typing import Any, Dict, Optional

import httpx

from shared.circuit_breaker import CircuitBreaker, CircuitOpenError
from shared.errors import ProviderError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.retry import RetryConfig, RetryError, retry_on_exception

WELL_KNOWN_PATH = "/.well-known/openid-configuration"


class OIDCProvider:
    """Discovers an OpenID provider and caches its JWKS for the process lifetime.

    ``initialize()`` is single-flight: concurrent callers that find the cache
    empty wait on one lock and only the first performs the discovery and
    JWKS requests. A failed initialization leaves the cache empty so the
    next request tries again.
    """

    def __init__(
        self,
        issuer: str,
        *,
        jwks_uri: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        http_timeout: float = 10.0,
        retry_config: Optional[RetryConfig] = None,
        breaker: Optional[CircuitBreaker] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.issuer = issuer.rstrip("/")
        self.jwks_uri_override = jwks_uri
        self.retry_config = retry_config or RetryConfig()
        self.breaker = breaker or CircuitBreaker(
            "oidc.discovery",
            tracked_exceptions=(httpx.HTTPError, RetryError, ValueError),
        )
        self.metrics = metrics
        self.logger = get_logger("gate.oidc.discovery")

        self.configuration: Optional[Dict[str, Any]] = None
        self.jwks: Optional[Dict[str, Any]] = None
        self._lock = asyncio.Lock()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=http_timeout)

    @property
    def http_client(self) -> httpx.AsyncClient:
        return self._client

    @property
    def ready(self) -> bool:
        return self.jwks is not None

    @property
    def jwks_uri(self) -> Optional[str]:
        if self.jwks_uri_override:
            return self.jwks_uri_override
        if self.configuration:
            return self.configuration.get("jwks_uri")
        return None

    async def close(self) -> None:
        """Close the underlying HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()

    async def initialize(self) -> None:
        """Discover the provider and load its signing keys, once."""
        if self.jwks is not None:
            return

        async with self._lock:
            if self.jwks is not None:
                return

            if self.metrics is not None:
                with self.metrics.time_jwks_refresh():
                    await self._load()
            else:
                await self._load()

    async def _load(self) -> None:
        await self.discover()
        await self.get_jwks()
        self.logger.info(
            "Trust material initialized",
            issuer=self.issuer,
            keys_count=len(self.jwks.get("keys", [])) if self.jwks else 0
        )

    async def discover(self) -> Dict[str, Any]:
        """Fetch and validate the provider configuration document."""
        url = f"{self.issuer}{WELL_KNOWN_PATH}"
        configuration = await self._get_json(url, "discovery")

        if not isinstance(configuration, dict):
            raise ProviderError("discovery", "Provider configuration is not a JSON object")

        advertised = str(configuration.get("issuer", "")).rstrip("/")
        if advertised and advertised != self.issuer:
            raise ProviderError(
                "discovery",
                "Provider issuer mismatch",
                details={"expected": self.issuer, "advertised": advertised}
            )

        if not configuration.get("jwks_uri") and not self.jwks_uri_override:
            raise ProviderError("discovery", "Provider configuration missing jwks_uri")

        self.configuration = configuration
        return configuration

    async def get_jwks(self) -> Dict[str, Any]:
        """Fetch the signing keys advertised by the provider."""
        jwks_uri = self.jwks_uri
        if not jwks_uri:
            raise ProviderError("jwks", "Provider has not been discovered")

        jwks = await self._get_json(jwks_uri, "jwks")
        if not isinstance(jwks, dict) or not isinstance(jwks.get("keys"), list):
            raise ProviderError("jwks", "JWKS response missing 'keys' array")

        self.jwks = jwks
        return jwks

    def get_key(self, kid: Optional[str]) -> Optional[Dict[str, Any]]:
        """Return the cached signing key for ``kid``.

        Without a ``kid`` the key is only resolved when the set holds a
        single signing key.
        """
        keys = [
            key for key in (self.jwks or {}).get("keys", [])
            if isinstance(key, dict) and key.get("use", "sig") == "sig"
        ]
        if kid is None:
            return keys[0] if len(keys) == 1 else None

        for key in keys:
            if key.get("kid") == kid:
                return key
        return None

    def clear_cache(self) -> None:
        """Forget configuration and keys; the next request rediscovers."""
        self.configuration = None
        self.jwks = None
        self.logger.info("Trust material cache cleared", issuer=self.issuer)

    async def _get_json(self, url: str, service: str) -> Any:
        try:
            return await self.breaker.call(self._fetch_json, url)
        except CircuitOpenError as e:
            raise ProviderError(
                service,
                "Issuing authority temporarily unavailable",
                status_code=503,
                details={"retry_after": round(e.retry_after, 1)}
            ) from e
        except RetryError as e:
            self.logger.error("Issuing authority unreachable", url=url, error=str(e.last_exception))
            raise ProviderError(service, "Issuing authority unreachable", status_code=503) from e
        except httpx.HTTPStatusError as e:
            self.logger.error("Issuing authority error", url=url, status_code=e.response.status_code)
            raise ProviderError(
                service,
                f"Unexpected status {e.response.status_code}",
                details={"url": url}
            ) from e
        except ValueError as e:
            raise ProviderError(service, "Response is not valid JSON", details={"url": url}) from e

    @retry_on_exception((httpx.TransportError,), config_getter=lambda self, *args, **kwargs: self.retry_config)
    async def _fetch_json(self, url: str) -> Any:
        response = await self._client.get(url, headers={"Accept": "application/json"})
        response.raise_for_status()
        return response.json()
