"""Relay token generation.

Clients never publish to the relay. They receive a short-lived token
that grants subscribe capability on the FocusHive channels only.
"""

import time

import jwt

from .constants import Channels


def generate_client_token(
    user_id: str, secret: str, ttl_seconds: int = 3600, algorithm: str = "HS256"
) -> str:
    """Mint a subscribe-only relay token for a user.

    Parameters
    ----------
    user_id : str
        Identity of the subscribing client
    secret : str
        Relay signing secret
    ttl_seconds : int
        Token lifetime

    Returns
    -------
    str
        Encoded JWT
    """
    now = int(time.time())
    payload = {
        "sub": user_id,
        "clientId": user_id,
        "nbf": now - 5,  # Not before (with 5s clock skew tolerance)
        "iat": now,
        "exp": now + ttl_seconds,
        "capability": Channels.subscribe_capability(),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_client_token(token: str, secret: str, algorithm: str = "HS256") -> dict:
    """Decode a relay token. Raises ``jwt.InvalidTokenError`` when invalid."""
    return jwt.decode(token, secret, algorithms=[algorithm])
