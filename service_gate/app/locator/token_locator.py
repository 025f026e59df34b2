"""
Bearer token location for incoming requests.

A request may present its access token in the ``Authorization`` header,
the ``access_token`` query parameter or the ``access_token`` field of a
form-encoded body (RFC 6750 section 2). Exactly one of them may be used.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Tuple

from shared.errors import InvalidRequestError

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
TOKEN_PARAMETER = "access_token"
BEARER_SCHEME = "Bearer"


def media_type(content_type: Optional[str]) -> str:
    """Lowercased media type of a ``Content-Type`` value, parameters dropped."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


@dataclass(frozen=True)
class TokenRequest:
    """The parts of a request the locator looks at."""

    headers: Mapping[str, str] = field(default_factory=dict)
    query: Mapping[str, Any] = field(default_factory=dict)
    body: Mapping[str, Any] = field(default_factory=dict)

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        value = self.headers.get(name)
        if value is not None:
            return value
        lowered = name.lower()
        for key, candidate in self.headers.items():
            if key.lower() == lowered:
                return candidate
        return None

    @property
    def content_type(self) -> Optional[str]:
        """Raw ``Content-Type`` header value."""
        return self.header("content-type")


Step = Callable[[TokenRequest, Optional[str]], Optional[str]]


def _from_header(request: TokenRequest, candidate: Optional[str]) -> Optional[str]:
    authorization = request.header("authorization")
    if not authorization:
        return candidate

    components = authorization.split()
    if len(components) != 2:
        raise InvalidRequestError("Invalid authorization header")

    scheme, credentials = components
    if scheme != BEARER_SCHEME:
        raise InvalidRequestError("Invalid authorization scheme")

    return credentials


def _from_query(request: TokenRequest, candidate: Optional[str]) -> Optional[str]:
    token = request.query.get(TOKEN_PARAMETER)
    if not token:
        return candidate

    if candidate:
        raise InvalidRequestError("Multiple authentication methods")

    return token


def _from_body(request: TokenRequest, candidate: Optional[str]) -> Optional[str]:
    token = request.body.get(TOKEN_PARAMETER)
    if not token:
        return candidate

    if candidate:
        raise InvalidRequestError("Multiple authentication methods")

    if request.content_type != FORM_CONTENT_TYPE:
        raise InvalidRequestError("Invalid content-type")

    return token


STEPS: Tuple[Step, ...] = (_from_header, _from_query, _from_body)


def locate(request: TokenRequest) -> Optional[str]:
    """Return the single bearer token presented by ``request``, or None.

    Raises ``InvalidRequestError`` (400) for a malformed header, a scheme
    other than ``Bearer``, a token in more than one place, or a body token
    sent with a content type other than form encoding.
    """
    candidate: Optional[str] = None
    for step in STEPS:
        candidate = step(request, candidate)
    return candidate
