"""
OpenID Connect collaborators of the gate.

- discovery: provider metadata and the process-wide JWKS cache.
- verifier: JWT signature, lifetime, issuer, audience and scope checks.
- userinfo: identity attributes from the provider's profile endpoint.
- client: facade holding one of each for a single issuer.

Import has no side effects; all network IO happens in ``initialize()``,
``verify()`` and ``fetch_user_info()``.
"""

from .client import OIDCClient
from .discovery import OIDCProvider
from .userinfo import UserInfoClient
from .verifier import TokenVerifier

__all__ = [
    "OIDCClient",
    "OIDCProvider",
    "TokenVerifier",
    "UserInfoClient",
]
