"""
Rendering of authentication failures.
"""

from starlette.responses import JSONResponse

from shared.errors import OAuthError


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def www_authenticate(error: OAuthError) -> str:
    """Bearer challenge for a 401 response (RFC 6750 section 3)."""
    params = []
    if error.realm:
        params.append(f'realm="{_quote(error.realm)}"')
    params.append(f'error="{_quote(error.error)}"')
    params.append(f'error_description="{_quote(error.error_description)}"')
    return "Bearer " + ", ".join(params)


class ErrorResponder:
    """Turns an ``OAuthError`` into a response, or hands it upstream.

    With ``respond`` set the error is rendered as
    ``{"error": ..., "error_description": ...}`` with its status code.
    Otherwise the error is re-raised unchanged for the host's own handlers.
    """

    def __init__(self, respond: bool = True) -> None:
        self.respond = respond

    def handle(self, error: OAuthError) -> JSONResponse:
        if not self.respond:
            raise error

        headers = {}
        if error.status_code == 401:
            headers["WWW-Authenticate"] = www_authenticate(error)

        return JSONResponse(
            status_code=error.status_code,
            content=error.to_response().model_dump(),
            headers=headers,
        )
