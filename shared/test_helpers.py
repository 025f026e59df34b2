"""
Test helper functions and factory methods for the Bearer Gate.
"""

import asyncio
import time
from collections import Counter
from typing import Any, Dict, Optional, Set

import httpx
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt
from jose.utils import base64url_encode

from shared.config import GateConfig

ISSUER = "https://idp.example.test/realms/gate"
CLIENT_ID = "gate-client"


class TokenFactory:
    """Issues HS256 access tokens and publishes the matching JWKS."""

    algorithm = "HS256"

    def __init__(self, issuer: str = ISSUER, kid: str = "test-key-1", secret: str = "gate-test-secret-0123456789abcdef"):
        self.issuer = issuer
        self.kid = kid
        self.secret = secret

    @property
    def signing_key(self) -> Any:
        return self.secret

    @property
    def public_jwk(self) -> Dict[str, Any]:
        return {
            "kty": "oct",
            "kid": self.kid,
            "use": "sig",
            "alg": self.algorithm,
            "k": base64url_encode(self.secret.encode("utf-8")).decode("ascii"),
        }

    @property
    def jwks(self) -> Dict[str, Any]:
        return {"keys": [self.public_jwk]}

    def claims(
        self,
        sub: str = "u1",
        *,
        expires_in: int = 3600,
        audience: Any = CLIENT_ID,
        scope: Optional[str] = "openid profile",
        issuer: Optional[str] = None,
        **extra: Any,
    ) -> Dict[str, Any]:
        now = int(time.time())
        payload: Dict[str, Any] = {
            "iss": issuer or self.issuer,
            "sub": sub,
            "azp": CLIENT_ID,
            "iat": now,
            "exp": now + expires_in,
        }
        if audience is not None:
            payload["aud"] = audience
        if scope is not None:
            payload["scope"] = scope
        payload.update(extra)
        return payload

    def issue(self, sub: str = "u1", *, kid: Optional[str] = None, **kwargs: Any) -> str:
        """Sign an access token for ``sub``; keyword arguments go to ``claims()``."""
        return jwt.encode(
            self.claims(sub, **kwargs),
            self.signing_key,
            algorithm=self.algorithm,
            headers={"kid": kid or self.kid},
        )


class RSATokenFactory(TokenFactory):
    """Issues RS256 access tokens from a freshly generated key pair."""

    algorithm = "RS256"

    def __init__(self, issuer: str = ISSUER, kid: str = "test-rsa-1"):
        super().__init__(issuer=issuer, kid=kid)
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        self._private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("ascii")
        self.public_pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")

    @property
    def signing_key(self) -> Any:
        return self._private_pem

    @property
    def public_jwk(self) -> Dict[str, Any]:
        key = jwk.construct(self.public_pem, self.algorithm).to_dict()
        key.update({"kid": self.kid, "use": "sig"})
        return key


class MockIdentityProvider:
    """In-memory OpenID provider served through ``httpx.MockTransport``.

    Counts requests per path, can delay responses to widen race windows
    and can be told to fail specific endpoints.
    """

    def __init__(self, tokens: TokenFactory, user_info: Optional[Dict[str, Any]] = None, delay: float = 0.0):
        self.tokens = tokens
        self.issuer = tokens.issuer
        self.user_info = user_info if user_info is not None else {"sub": "u1", "email": "a@b.com"}
        self.delay = delay
        self.calls: Counter = Counter()
        self.failures: Dict[str, Any] = {}
        self.rejected_tokens: Set[str] = set()

    @property
    def discovery_path(self) -> str:
        return httpx.URL(self.issuer).path + "/.well-known/openid-configuration"

    @property
    def jwks_uri(self) -> str:
        return f"{self.issuer}/protocol/openid-connect/certs"

    @property
    def userinfo_endpoint(self) -> str:
        return f"{self.issuer}/protocol/openid-connect/userinfo"

    def configuration(self) -> Dict[str, Any]:
        return {
            "issuer": self.issuer,
            "jwks_uri": self.jwks_uri,
            "userinfo_endpoint": self.userinfo_endpoint,
            "response_types_supported": ["code"],
            "subject_types_supported": ["public"],
            "id_token_signing_alg_values_supported": [self.tokens.algorithm],
        }

    def fail(self, endpoint: str, outcome: Any) -> None:
        """Make ``endpoint`` (``discovery``, ``jwks`` or ``userinfo``) return a status or raise."""
        self.failures[endpoint] = outcome

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport())

    async def handle(self, request: httpx.Request) -> httpx.Response:
        endpoint = self._endpoint_for(request.url)
        self.calls[endpoint] += 1

        if self.delay:
            await asyncio.sleep(self.delay)

        failure = self.failures.get(endpoint)
        if isinstance(failure, Exception):
            raise failure
        if isinstance(failure, int):
            return httpx.Response(failure, json={"error": "upstream"})

        if endpoint == "discovery":
            return httpx.Response(200, json=self.configuration())
        if endpoint == "jwks":
            return httpx.Response(200, json=self.tokens.jwks)
        if endpoint == "userinfo":
            authorization = request.headers.get("authorization", "")
            token = authorization[len("Bearer "):]
            if not authorization.startswith("Bearer ") or token in self.rejected_tokens:
                return httpx.Response(401, json={"error": "invalid_token"})
            return httpx.Response(200, json=self.user_info)
        return httpx.Response(404, json={"error": "not_found"})

    def _endpoint_for(self, url: httpx.URL) -> str:
        paths = {
            self.discovery_path: "discovery",
            httpx.URL(self.jwks_uri).path: "jwks",
            httpx.URL(self.userinfo_endpoint).path: "userinfo",
        }
        return paths.get(url.path, "unknown")


def create_mock_config(**overrides: Any) -> GateConfig:
    """Gate configuration for tests: fast retries, mock issuer, no env leakage."""
    settings: Dict[str, Any] = {
        "issuer": ISSUER,
        "client_ids": [CLIENT_ID],
        "retry_attempts": 1,
        "retry_base_delay": 0.0,
        "log_level": "warning",
        "env": "test",
    }
    settings.update(overrides)
    return GateConfig(_env_file=None, **settings)
