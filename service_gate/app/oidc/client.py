"""
OpenID Connect client bundling discovery, verification and user info.
"""

from typing import Any, Dict, Optional

import httpx

from shared.circuit_breaker import CircuitBreaker
from shared.config import GateConfig
from shared.metrics import MetricsCollector
from shared.retry import RetryConfig, RetryError
from ..options import VerifyOptions
from .discovery import OIDCProvider
from .userinfo import UserInfoClient
from .verifier import TokenVerifier


class OIDCClient:
    """One issuing authority: its trust material, verifier and identity endpoint."""

    def __init__(
        self,
        issuer: str,
        *,
        jwks_uri: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        http_timeout: float = 10.0,
        retry_config: Optional[RetryConfig] = None,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        leeway: int = 0,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.provider = OIDCProvider(
            issuer,
            jwks_uri=jwks_uri,
            http_client=http_client,
            http_timeout=http_timeout,
            retry_config=retry_config,
            breaker=CircuitBreaker(
                "oidc.discovery",
                failure_threshold=failure_threshold,
                recovery_timeout=recovery_timeout,
                tracked_exceptions=(httpx.HTTPError, RetryError, ValueError),
            ),
            metrics=metrics,
        )
        self.verifier = TokenVerifier(self.provider, leeway=leeway)
        self.userinfo = UserInfoClient(
            self.provider,
            breaker=CircuitBreaker(
                "oidc.userinfo",
                failure_threshold=failure_threshold,
                recovery_timeout=recovery_timeout,
                tracked_exceptions=(httpx.TransportError,),
            ),
        )

    @classmethod
    def from_config(
        cls,
        config: GateConfig,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> "OIDCClient":
        return cls(
            config.issuer,
            jwks_uri=config.jwks_uri,
            http_client=http_client,
            http_timeout=config.http_timeout,
            retry_config=RetryConfig(
                max_attempts=config.retry_attempts,
                base_delay=config.retry_base_delay,
            ),
            failure_threshold=config.circuit_failure_threshold,
            recovery_timeout=config.circuit_recovery_timeout,
            metrics=metrics,
        )

    @property
    def issuer(self) -> str:
        return self.provider.issuer

    @property
    def jwks(self) -> Optional[Dict[str, Any]]:
        return self.provider.jwks

    async def initialize(self) -> None:
        await self.provider.initialize()

    async def verify(self, token: str, options: Optional[VerifyOptions] = None) -> Dict[str, Any]:
        return await self.verifier.verify(token, options)

    async def fetch_user_info(self, token: str) -> Dict[str, Any]:
        return await self.userinfo.fetch_user_info(token)

    async def close(self) -> None:
        await self.provider.close()
