"""JWT authentication utilities for the FocusHive server."""

import logging
import time
import typing as t
import uuid
from functools import wraps

import jwt
from flask import current_app, request

from focushive.exceptions import Unauthorized
from focushive.models import Identity

log = logging.getLogger(__name__)

TOKEN_COOKIE = "token"
BEARER_PREFIX = "Bearer "


class AuthError(Unauthorized):
    """Authentication error.

    Parameters
    ----------
    message : str
        Error message
    status_code : int
        HTTP status code (default: 401)
    """

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message, status_code=status_code)


def _signing_settings() -> tuple[str, str, int]:
    config = current_app.extensions["config"]
    return config.secret_key, config.jwt_algorithm, config.token_expiry_seconds


def create_jwt_token(user_id: str, user_name: str) -> str:
    """Create JWT token for an authenticated user.

    Parameters
    ----------
    user_id : str
        Unique user identifier (UUID)
    user_name : str
        Display name of the user

    Returns
    -------
    str
        Encoded JWT token
    """
    secret_key, algorithm, expiry = _signing_settings()
    now = int(time.time())
    payload = {
        "sub": user_id,  # Subject: user ID
        "userName": user_name,  # Display name
        "iat": now,
        "exp": now + expiry,
        "jti": str(uuid.uuid4()),
    }

    token = jwt.encode(payload, secret_key, algorithm=algorithm)
    log.info(f"Created JWT for user {user_id}")

    return token


def decode_jwt_token(token: str) -> dict:
    """Decode and validate JWT token.

    Raises
    ------
    AuthError
        If token is invalid, expired, or malformed
    """
    secret_key, algorithm, _ = _signing_settings()
    try:
        return jwt.decode(token, secret_key, algorithms=[algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired") from None
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token") from None


def _strip_bearer(value: t.Any) -> str | None:
    if not isinstance(value, str) or not value:
        return None
    if value.startswith(BEARER_PREFIX):
        value = value[len(BEARER_PREFIX) :]
    return value.strip() or None


def select_token(*candidates: t.Any) -> str | None:
    """Return the first usable credential, in the given precedence order."""
    for candidate in candidates:
        token = _strip_bearer(candidate)
        if token is not None:
            return token
    return None


def extract_token_from_request() -> str | None:
    """Extract the JWT from an HTTP request.

    Precedence: ``token`` cookie, ``Authorization`` header, ``token``
    query parameter. A ``Bearer `` prefix is stripped.
    """
    return select_token(
        request.cookies.get(TOKEN_COOKIE),
        request.headers.get("Authorization"),
        request.args.get("token"),
    )


def extract_token_from_handshake(auth: t.Any) -> str | None:
    """Extract the JWT from a Socket.IO connection handshake.

    Precedence: ``token`` cookie, handshake auth payload ``token``,
    ``token`` query parameter.
    """
    auth_token = auth.get("token") if isinstance(auth, dict) else None
    return select_token(
        request.cookies.get(TOKEN_COOKIE),
        auth_token,
        request.args.get("token"),
    )


def identity_from_token(token: str | None) -> Identity:
    """Verify a token and return the identity it carries.

    Raises
    ------
    AuthError
        If the token is missing or invalid
    """
    if not token:
        raise AuthError("No authentication token provided")
    payload = decode_jwt_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise AuthError("Invalid token")
    return Identity(userId=user_id, displayName=payload.get("userName") or user_id)


def get_current_identity() -> Identity:
    """Get the authenticated identity of the current HTTP request.

    Raises
    ------
    AuthError
        If no token found or token is invalid
    """
    return identity_from_token(extract_token_from_request())


def require_auth(f):
    """Decorator to require JWT authentication for route.

    Usage
    -----
    @rooms.route("/api/rooms", methods=["POST"])
    @require_auth
    def create_room():
        identity = get_current_identity()
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            get_current_identity()  # Validate token
        except AuthError as e:
            return e.to_dict(), e.status_code
        return f(*args, **kwargs)

    return decorated_function
