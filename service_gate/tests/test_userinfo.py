"""
Unit tests for UserInfoClient.
"""

import httpx
import pytest
import pytest_asyncio

from shared.errors import InvalidTokenError, ProviderError
from shared.test_helpers import ISSUER
from service_gate.app.oidc import OIDCProvider, UserInfoClient


class TestUserInfoClient:
    """Test cases for the profile endpoint client."""

    @pytest_asyncio.fixture
    async def userinfo(self, oidc_client):
        await oidc_client.initialize()
        return oidc_client.userinfo

    @pytest.mark.asyncio
    async def test_fetch_user_info(self, userinfo, idp):
        user_info = await userinfo.fetch_user_info("t")

        assert user_info == {"sub": "u1", "email": "a@b.com"}
        assert idp.calls["userinfo"] == 1

    @pytest.mark.asyncio
    async def test_rejected_token(self, userinfo, idp):
        idp.rejected_tokens.add("revoked")

        with pytest.raises(InvalidTokenError) as exc_info:
            await userinfo.fetch_user_info("revoked")

        assert exc_info.value.status_code == 401
        assert exc_info.value.details == {"source": "userinfo"}

    @pytest.mark.asyncio
    async def test_upstream_error(self, userinfo, idp):
        idp.fail("userinfo", 500)

        with pytest.raises(ProviderError) as exc_info:
            await userinfo.fetch_user_info("t")

        assert exc_info.value.status_code == 502
        assert exc_info.value.error_description == "userinfo: Unexpected status 500"

    @pytest.mark.asyncio
    async def test_unreachable(self, userinfo, idp):
        idp.fail("userinfo", httpx.ReadTimeout("timed out"))

        with pytest.raises(ProviderError) as exc_info:
            await userinfo.fetch_user_info("t")

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_non_object_body(self, userinfo, idp):
        idp.user_info = ["not", "an", "object"]

        with pytest.raises(ProviderError) as exc_info:
            await userinfo.fetch_user_info("t")

        assert exc_info.value.error_description == "userinfo: Response is not a JSON object"

    @pytest.mark.asyncio
    async def test_endpoint_not_advertised(self):
        client = UserInfoClient(OIDCProvider(ISSUER))

        with pytest.raises(ProviderError) as exc_info:
            await client.fetch_user_info("t")

        assert exc_info.value.error_description == "userinfo: Provider does not advertise a userinfo endpoint"
