"""
Access token verification against the provider's signing keys.
"""

from typing import Any, Dict, Iterable, List, Optional

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWKError, JWTError

from shared.errors import ForbiddenTokenError, InsufficientScopeError, InvalidTokenError
from shared.logging import get_logger
from ..options import KeyMaterial, VerifyOptions
from .discovery import OIDCProvider

KTY_ALGORITHMS = {
    "RSA": ["RS256", "RS384", "RS512", "PS256", "PS384", "PS512"],
    "EC": ["ES256", "ES384", "ES512"],
    "oct": ["HS256", "HS384", "HS512"],
}
STATIC_KEY_ALGORITHMS = [alg for algs in KTY_ALGORITHMS.values() for alg in algs]

DECODE_OPTIONS = {
    "verify_aud": False,
    "verify_iss": False,
    "verify_at_hash": False,
}


class TokenVerifier:
    """Verifies a JWT access token and returns its claims.

    Signature and lifetime are checked by python-jose; issuer, audience
    and scope are checked here so each mismatch gets its own error.
    """

    def __init__(self, provider: OIDCProvider, leeway: int = 0) -> None:
        self.provider = provider
        self.leeway = leeway
        self.logger = get_logger("gate.oidc.verifier")

    async def verify(self, token: str, options: Optional[VerifyOptions] = None) -> Dict[str, Any]:
        """Return the verified claims of ``token`` or raise an ``OAuthError``."""
        options = options or VerifyOptions()

        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            self.logger.warning("Access token is not a JWT", error=str(e))
            raise InvalidTokenError() from e

        key = options.key if options.key is not None else self._signing_key(header)

        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=self._algorithms_for(key),
                options=dict(DECODE_OPTIONS, leeway=self.leeway),
            )
        except ExpiredSignatureError as e:
            raise InvalidTokenError("Expired access token") from e
        except (JWTError, JWKError) as e:
            self.logger.warning("Access token rejected", kid=header.get("kid"), error=str(e))
            raise InvalidTokenError() from e

        self._check_issuer(claims, options.issuer or self.provider.issuer)
        if options.clients:
            self._check_audience(claims, options.clients)
        if options.required_scopes:
            self._check_scope(claims, options.required_scopes)

        self.logger.debug("Access token verified", sub=claims.get("sub"), client_id=claims.get("azp"))
        return claims

    def _signing_key(self, header: Dict[str, Any]) -> Dict[str, Any]:
        kid = header.get("kid")
        key = self.provider.get_key(kid)
        if key is None:
            self.logger.warning("Signing key not found", kid=kid)
            raise InvalidTokenError(details={"kid": kid})
        return key

    @staticmethod
    def _algorithms_for(key: KeyMaterial) -> List[str]:
        if isinstance(key, dict):
            if key.get("alg"):
                return [key["alg"]]
            return list(KTY_ALGORITHMS.get(key.get("kty"), []))
        return list(STATIC_KEY_ALGORITHMS)

    @staticmethod
    def _check_issuer(claims: Dict[str, Any], issuer: Optional[str]) -> None:
        if issuer is None:
            return
        if str(claims.get("iss", "")).rstrip("/") != issuer.rstrip("/"):
            raise InvalidTokenError("Mismatching issuer")

    @staticmethod
    def _check_audience(claims: Dict[str, Any], clients: Iterable[str]) -> None:
        audience = _string_list(claims.get("aud"), split=False)
        if audience is None:
            raise ForbiddenTokenError("Mismatching audience", details={"reason": "malformed aud claim"})
        if not set(audience) & set(clients):
            raise ForbiddenTokenError("Mismatching audience")

    @staticmethod
    def _check_scope(claims: Dict[str, Any], required: Iterable[str]) -> None:
        granted = _string_list(claims.get("scope", claims.get("scp", "")), split=True)
        if granted is None:
            raise InsufficientScopeError(details={"reason": "malformed scope claim"})
        missing = sorted(set(required) - set(granted))
        if missing:
            raise InsufficientScopeError(details={"missing": missing})


def _string_list(value: Any, split: bool) -> Optional[List[str]]:
    """Normalise a claim that is a string or a list of strings; None when it is neither."""
    if value is None:
        return []
    if isinstance(value, str):
        return value.split() if split else [value]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    return None
