"""
Shared fixtures for gate unit tests.
"""

import pytest

from shared.retry import RetryConfig
from shared.test_helpers import ISSUER, MockIdentityProvider, TokenFactory
from service_gate.app.oidc import OIDCClient


@pytest.fixture
def tokens():
    """HS256 token factory."""
    return TokenFactory()


@pytest.fixture
def idp(tokens):
    """Mock OpenID provider publishing the factory's key."""
    return MockIdentityProvider(tokens)


@pytest.fixture
def oidc_client(idp):
    """OIDC client talking to the mock provider."""
    return OIDCClient(
        ISSUER,
        http_client=idp.client(),
        retry_config=RetryConfig(max_attempts=1, base_delay=0.0),
    )
