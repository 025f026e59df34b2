"""
Bearer Gate service package.

Authenticates HTTP requests carrying OAuth2 bearer tokens issued by an
OpenID Connect provider:

- app.locator: Finds the one bearer token a request presents.
- app.oidc: Discovery, JWKS cache, JWT verification and user info.
- app.middleware: Orchestration, error rendering and the Starlette gate.
- app.main: FastAPI service exposing health, metrics and a protected API.

Design notes:
- Importing the package performs no network calls. Trust material is
  fetched lazily by the first request that needs it, once per process.
- Use the shared/ utilities for logging, metrics, config and errors.
- No per-request state survives the request.
"""

from .locator import TokenRequest, locate
from .middleware import AuthContext, BearerGate, ErrorResponder, Orchestrator
from .oidc import OIDCClient
from .options import VerifyOptions

__all__ = [
    "AuthContext",
    "BearerGate",
    "ErrorResponder",
    "OIDCClient",
    "Orchestrator",
    "TokenRequest",
    "VerifyOptions",
    "locate",
]
