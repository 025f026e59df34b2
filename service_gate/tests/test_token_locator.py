"""
Unit tests for bearer token location.
"""

import pytest

from shared.errors import InvalidRequestError
from service_gate.app.locator import TokenRequest, locate
from service_gate.app.locator.token_locator import media_type

FORM = "application/x-www-form-urlencoded"


def assert_invalid(request: TokenRequest, description: str):
    with pytest.raises(InvalidRequestError) as exc_info:
        locate(request)
    assert exc_info.value.error == "invalid_request"
    assert exc_info.value.status_code == 400
    assert exc_info.value.error_description == description


class TestHeader:
    """Authorization header extraction."""

    def test_bearer_header(self):
        assert locate(TokenRequest(headers={"authorization": "Bearer t"})) == "t"

    def test_header_name_is_case_insensitive(self):
        assert locate(TokenRequest(headers={"Authorization": "Bearer abc.def.ghi"})) == "abc.def.ghi"

    def test_wrong_scheme(self):
        assert_invalid(TokenRequest(headers={"authorization": "Basic abc"}), "Invalid authorization scheme")

    def test_scheme_is_case_sensitive(self):
        assert_invalid(TokenRequest(headers={"authorization": "bearer abc"}), "Invalid authorization scheme")

    @pytest.mark.parametrize("value", ["Bearer", "Bearer a b", "Bearer "])
    def test_wrong_number_of_parts(self, value):
        assert_invalid(TokenRequest(headers={"authorization": value}), "Invalid authorization header")

    def test_empty_header_is_absent(self):
        assert locate(TokenRequest(headers={"authorization": ""})) is None


class TestQuery:
    """access_token query parameter extraction."""

    def test_query_token(self):
        assert locate(TokenRequest(query={"access_token": "q"})) == "q"

    def test_header_and_query_conflict(self):
        request = TokenRequest(headers={"authorization": "Bearer h"}, query={"access_token": "q"})
        assert_invalid(request, "Multiple authentication methods")

    def test_malformed_header_wins_over_conflict(self):
        request = TokenRequest(headers={"authorization": "Basic h"}, query={"access_token": "q"})
        assert_invalid(request, "Invalid authorization scheme")


class TestBody:
    """access_token body field extraction."""

    def test_form_body_token(self):
        request = TokenRequest(headers={"content-type": FORM}, body={"access_token": "t"})
        assert locate(request) == "t"

    def test_form_body_with_charset_rejected(self):
        request = TokenRequest(
            headers={"Content-Type": f"{FORM}; charset=UTF-8"},
            body={"access_token": "t"},
        )
        assert_invalid(request, "Invalid content-type")

    def test_content_type_compared_exactly(self):
        request = TokenRequest(
            headers={"Content-Type": "Application/X-WWW-Form-Urlencoded"},
            body={"access_token": "t"},
        )
        assert_invalid(request, "Invalid content-type")

    def test_multipart_body_rejected(self):
        request = TokenRequest(
            headers={"content-type": "multipart/form-data; boundary=xyz"},
            body={"access_token": "t"},
        )
        assert_invalid(request, "Invalid content-type")

    def test_json_body_rejected(self):
        request = TokenRequest(headers={"content-type": "application/json"}, body={"access_token": "t"})
        assert_invalid(request, "Invalid content-type")

    def test_missing_content_type_rejected(self):
        assert_invalid(TokenRequest(body={"access_token": "t"}), "Invalid content-type")

    def test_query_and_body_conflict(self):
        request = TokenRequest(
            headers={"content-type": FORM},
            query={"access_token": "q"},
            body={"access_token": "b"},
        )
        assert_invalid(request, "Multiple authentication methods")

    def test_header_and_body_conflict_checked_before_content_type(self):
        request = TokenRequest(
            headers={"authorization": "Bearer h", "content-type": "application/json"},
            body={"access_token": "b"},
        )
        assert_invalid(request, "Multiple authentication methods")

    def test_other_body_fields_ignored(self):
        request = TokenRequest(headers={"content-type": "application/json"}, body={"name": "x"})
        assert locate(request) is None


def test_no_token_anywhere():
    assert locate(TokenRequest()) is None


def test_token_request_content_type():
    value = "application/x-www-form-urlencoded; charset=utf-8"
    assert TokenRequest(headers={"Content-Type": value}).content_type == value
    assert TokenRequest().content_type is None


def test_media_type():
    assert media_type("Application/X-WWW-Form-Urlencoded; charset=utf-8") == FORM
    assert media_type("multipart/form-data; boundary=xyz") == "multipart/form-data"
    assert media_type(None) == ""
