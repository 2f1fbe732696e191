"""Unit tests for JWT authentication utilities."""

import time

import jwt as pyjwt
import pytest

from conftest import auth_headers
from focushive.auth import (
    AuthError,
    create_jwt_token,
    decode_jwt_token,
    extract_token_from_request,
    get_current_identity,
    select_token,
)


def test_create_and_decode_token(app):
    """Test a token carries the user id and display name."""
    with app.app_context():
        token = create_jwt_token("user-1", "Alice")
        payload = decode_jwt_token(token)

    assert payload["sub"] == "user-1"
    assert payload["userName"] == "Alice"
    assert "jti" in payload


def test_decode_invalid_token_raises_error(app):
    """Test that invalid tokens raise AuthError."""
    with app.app_context():
        with pytest.raises(AuthError, match="Invalid token"):
            decode_jwt_token("invalid.token.here")


def test_decode_token_with_wrong_secret_raises_error(app):
    """Test that tokens signed with wrong secret raise AuthError."""
    wrong_token = pyjwt.encode({"sub": "user-1"}, "wrong-secret-key", algorithm="HS256")
    with app.app_context():
        with pytest.raises(AuthError, match="Invalid token"):
            decode_jwt_token(wrong_token)


def test_decode_expired_token_raises_error(app):
    """Test expired tokens are rejected."""
    expired = pyjwt.encode(
        {"sub": "user-1", "exp": int(time.time()) - 10},
        "test-secret-key",
        algorithm="HS256",
    )
    with app.app_context():
        with pytest.raises(AuthError, match="Token expired"):
            decode_jwt_token(expired)


def test_auth_error_is_unauthorized():
    """Test AuthError renders like every other domain error."""
    error = AuthError("Invalid token")
    assert error.status_code == 401
    assert error.to_dict() == {"error": "Invalid token", "type": "AuthError"}


@pytest.mark.parametrize(
    ("candidates", "expected"),
    [
        (("a", "b", "c"), "a"),
        ((None, "Bearer b", "c"), "b"),
        ((None, "", "c"), "c"),
        (("Bearer ", None, None), None),
        ((None, None, None), None),
    ],
)
def test_select_token_precedence(candidates, expected):
    """Test the first usable credential wins and Bearer is stripped."""
    assert select_token(*candidates) == expected


def test_extract_token_prefers_cookie(app):
    """Test the cookie beats the Authorization header."""
    with app.test_request_context(
        "/", headers={"Authorization": "Bearer header-token", "Cookie": "token=cookie-token"}
    ):
        assert extract_token_from_request() == "cookie-token"


def test_extract_token_from_header_then_query(app):
    """Test the header beats the query parameter."""
    with app.test_request_context(
        "/?token=query-token", headers={"Authorization": "Bearer header-token"}
    ):
        assert extract_token_from_request() == "header-token"
    with app.test_request_context("/?token=query-token"):
        assert extract_token_from_request() == "query-token"


def test_get_current_identity(app):
    """Test the identity is read from the request token."""
    with app.app_context():
        token = create_jwt_token("user-1", "Alice")
    with app.test_request_context("/", headers=auth_headers(token)):
        identity = get_current_identity()

    assert identity.userId == "user-1"
    assert identity.displayName == "Alice"


def test_get_current_identity_without_token(app):
    with app.test_request_context("/"):
        with pytest.raises(AuthError, match="No authentication token"):
            get_current_identity()
