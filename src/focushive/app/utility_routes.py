"""Utility and system routes.

Handles health checks, versioning, login and relay token issuance.
"""

import logging
import uuid

from flask import Blueprint, current_app, request

from focushive.auth import (
    TOKEN_COOKIE,
    AuthError,
    create_jwt_token,
    extract_token_from_request,
    get_current_identity,
    identity_from_token,
    require_auth,
)
from focushive.exceptions import ValidationError

from .relay_auth import generate_client_token

log = logging.getLogger(__name__)

utility = Blueprint("utility", __name__)

MAX_USER_NAME_LENGTH = 50


@utility.route("/health")
def health_check():
    """Health check endpoint for server status verification."""
    return {"status": "ok"}, 200


@utility.route("/api/version")
def get_version():
    """Get the FocusHive server version."""
    import focushive

    return {"version": focushive.__version__}, 200


@utility.route("/api/login", methods=["POST"])
def login():
    """Issue a session token for a display name.

    A caller that already holds a valid token keeps its user id, so a
    rename does not create a new identity.

    Request
    -------
    {
        "userName": "Alice"
    }

    Response
    --------
    {
        "status": "ok",
        "token": "eyJhbGc...",
        "userId": "6f1c...",
        "userName": "Alice"
    }
    """
    data = request.get_json(silent=True) or {}
    user_name = data.get("userName")
    if not isinstance(user_name, str) or not user_name.strip():
        raise ValidationError("userName is required", field="userName")
    user_name = user_name.strip()
    if len(user_name) > MAX_USER_NAME_LENGTH:
        raise ValidationError(
            f"userName must be at most {MAX_USER_NAME_LENGTH} characters",
            field="userName",
        )

    try:
        user_id = identity_from_token(extract_token_from_request()).userId
    except AuthError:
        user_id = str(uuid.uuid4())

    token = create_jwt_token(user_id, user_name)
    log.info(f"User '{user_name}' logged in as {user_id}")

    config = current_app.extensions["config"]
    response = current_app.make_response(
        {"status": "ok", "token": token, "userId": user_id, "userName": user_name}
    )
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=config.token_expiry_seconds,
        httponly=True,
        samesite="Lax",
    )
    return response


@utility.route("/api/relay/token", methods=["GET"])
@require_auth
def relay_token():
    """Issue a subscribe-only token for the pub/sub relay.

    Returns 503 when the relay transport is disabled.
    """
    config = current_app.extensions["config"]
    if not config.relay_active:
        return {"error": "Relay transport is disabled"}, 503
    identity = get_current_identity()
    token = generate_client_token(
        identity.userId,
        config.relay_secret,
        ttl_seconds=config.relay_token_ttl_seconds,
        algorithm=config.jwt_algorithm,
    )
    return {
        "token": token,
        "clientId": identity.userId,
        "expiresIn": config.relay_token_ttl_seconds,
    }, 200
