"""
Verification orchestration: locate, ensure trust material, verify, enrich.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from shared.errors import UnauthorizedError
from shared.logging import get_logger
from ..locator import TokenRequest, locate
from ..oidc import OIDCClient
from ..options import VerifyOptions


@dataclass(frozen=True)
class AuthContext:
    """Outcome of a successful authentication.

    ``access_token`` is None only when the route allows anonymous requests
    and none was presented.
    """

    access_token: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict)
    user_info: Optional[Dict[str, Any]] = None

    @property
    def authenticated(self) -> bool:
        return self.access_token is not None

    @property
    def subject(self) -> Optional[str]:
        return self.claims.get("sub")


ANONYMOUS = AuthContext()


class Orchestrator:
    """Runs the authentication steps for one request.

    ``client`` provides ``jwks``, ``initialize()``, ``verify(token, options)``
    and ``fetch_user_info(token)``. Every failure is raised as an
    ``OAuthError`` from whichever step produced it; nothing is retried here.
    """

    def __init__(self, client: OIDCClient) -> None:
        self.client = client
        self.logger = get_logger("gate.orchestrator")

    async def authenticate(self, request: TokenRequest, options: VerifyOptions) -> AuthContext:
        token = locate(request)

        if not token:
            if options.allow_no_token:
                return ANONYMOUS
            raise UnauthorizedError("An access token is required")

        if self.client.jwks is None:
            await self.client.initialize()

        claims = await self.client.verify(token, options)

        user_info = None
        if options.load_user_info:
            user_info = await self.client.fetch_user_info(token)

        return AuthContext(access_token=token, claims=claims, user_info=user_info)
