"""
CatalogSync Security Utilities

Bearer authentication for ERP/POS connectors: either a static API token
issued to the connector, or an HS256 JWT signed with the service secret.
"""

import hmac
from datetime import datetime, timedelta

from jose import JWTError, jwt

from core.config import get_settings


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token."""
    runtime_settings = get_settings()
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(hours=24))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, runtime_settings.jwt_secret, algorithm=runtime_settings.jwt_algorithm)


def _match_api_token(token: str) -> str | None:
    for index, candidate in enumerate(get_settings().api_tokens):
        if candidate and hmac.compare_digest(candidate.encode(), token.encode()):
            return f"api-token-{index}"
    return None


def decode_access_token(token: str) -> dict | None:
    """Validate a bearer token; returns the caller's claims or None."""
    runtime_settings = get_settings()

    token_name = _match_api_token(token)
    if token_name is not None:
        return {"sub": token_name, "auth": "api_token"}

    try:
        payload = jwt.decode(
            token,
            runtime_settings.jwt_secret,
            algorithms=[runtime_settings.jwt_algorithm],
        )
    except JWTError:
        return None
    payload.setdefault("auth", "jwt")
    return payload
