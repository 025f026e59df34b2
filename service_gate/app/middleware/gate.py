"""
Starlette middleware surface of the gate.
"""

import json
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from shared.config import GateConfig
from shared.errors import OAuthError
from shared.logging import get_logger, set_request_id, set_user_context
from shared.metrics import MetricsCollector
from ..locator import TokenRequest
from ..locator.token_locator import FORM_CONTENT_TYPE, media_type
from ..oidc import OIDCClient
from ..options import VerifyOptions
from .orchestrator import AuthContext, Orchestrator
from .responder import ErrorResponder

CallNext = Callable[[Request], Awaitable[Response]]
Dispatch = Callable[[Request, CallNext], Awaitable[Response]]

JSON_CONTENT_TYPE = "application/json"
MULTIPART_CONTENT_TYPE = "multipart/form-data"


class BearerGate:
    """Authenticates requests with bearer tokens issued by one OIDC provider.

    ``verifier(**overrides)`` returns a ``BaseHTTPMiddleware`` dispatch
    function; overrides are merged over the gate's default ``VerifyOptions``.
    On success the request gains ``state.access_token``,
    ``state.access_token_claims``, ``state.auth_context`` and, when user info
    is loaded, ``state.user_info`` before ``call_next`` runs. On failure the
    ``ErrorResponder`` answers or re-raises.
    """

    def __init__(
        self,
        client: OIDCClient,
        *,
        respond: bool = True,
        defaults: Optional[VerifyOptions] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.client = client
        self.orchestrator = Orchestrator(client)
        self.responder = ErrorResponder(respond)
        self.defaults = defaults or VerifyOptions()
        self.metrics = metrics
        self.logger = get_logger("gate.middleware")

    @classmethod
    def from_config(
        cls,
        config: GateConfig,
        client: Optional[OIDCClient] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> "BearerGate":
        return cls(
            client or OIDCClient.from_config(config, metrics=metrics),
            respond=config.respond,
            defaults=VerifyOptions.from_config(config),
            metrics=metrics,
        )

    @property
    def respond(self) -> bool:
        return self.responder.respond

    def verifier(self, **overrides: Any) -> Dispatch:
        """Build a middleware dispatch function for ``overrides``."""
        options = self.defaults.merge(overrides)

        async def dispatch(request: Request, call_next: CallNext) -> Response:
            set_request_id(request.headers.get("x-request-id"))
            try:
                context = await self.orchestrator.authenticate(
                    await self.build_token_request(request), options
                )
            except OAuthError as e:
                self._record_rejection(request, e)
                return self.responder.handle(e)

            self._record_success(context)
            if context.authenticated:
                enrich(request, context)
            return await call_next(request)

        return dispatch

    def middleware(self, **overrides: Any) -> Middleware:
        """Middleware entry for ``Starlette(middleware=[...])`` or ``Mount``."""
        return Middleware(BaseHTTPMiddleware, dispatch=self.verifier(**overrides))

    async def build_token_request(self, request: Request) -> TokenRequest:
        return TokenRequest(
            headers=request.headers,
            query=request.query_params,
            body=await self._read_body(request),
        )

    async def _read_body(self, request: Request) -> Mapping[str, Any]:
        content_type = media_type(request.headers.get("content-type"))

        # multipart tokens are located too, then rejected on content type
        if content_type in (FORM_CONTENT_TYPE, MULTIPART_CONTENT_TYPE):
            # body() caches the payload so the downstream app can read it again
            await request.body()
            return await request.form()

        if content_type == JSON_CONTENT_TYPE:
            raw = await request.body()
            if not raw:
                return {}
            try:
                payload = json.loads(raw)
            except ValueError:
                self.logger.debug("Request body is not valid JSON; ignoring for token lookup")
                return {}
            return payload if isinstance(payload, dict) else {}

        return {}

    def _record_success(self, context: AuthContext) -> None:
        if not context.authenticated:
            if self.metrics is not None:
                self.metrics.record_auth("anonymous")
            return

        set_user_context(context.subject, context.claims.get("azp") or context.claims.get("client_id"))
        self.logger.info("Request authenticated", sub=context.subject)
        if self.metrics is not None:
            self.metrics.record_auth("authenticated")

    def _record_rejection(self, request: Request, error: OAuthError) -> None:
        log = self.logger.error if error.status_code >= 500 else self.logger.warning
        log(
            "Request rejected",
            path=request.url.path,
            error=error.error,
            error_description=error.error_description,
            status_code=error.status_code
        )
        if self.metrics is not None:
            self.metrics.record_auth("rejected", error.error)


def enrich(request: Request, context: AuthContext) -> None:
    """Attach a verified identity to ``request.state`` in one step."""
    state: Dict[str, Any] = {
        "access_token": context.access_token,
        "access_token_claims": context.claims,
        "auth_context": context,
    }
    if context.user_info is not None:
        state["user_info"] = context.user_info

    for name, value in state.items():
        setattr(request.state, name, value)
