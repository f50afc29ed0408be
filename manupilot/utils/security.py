"""
Bearer token handling.

Sessions are issued by the external identity provider; this module
verifies the shared-secret JWTs it signs and resolves the user id.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from manupilot.config.settings import AuthSettings, settings


def create_access_token(
    subject: str,
    expires_delta: timedelta | None = None,
    extra_claims: dict[str, Any] | None = None,
    auth_settings: AuthSettings | None = None,
) -> str:
    """
    Create a signed access token for a user id.

    Used by local tooling and tests; production tokens come from the
    identity provider.
    """
    auth_settings = auth_settings or settings.auth
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=auth_settings.access_token_expire_minutes)
    )

    to_encode: dict[str, Any] = {**(extra_claims or {}), "sub": subject, "exp": expire}
    if auth_settings.audience:
        to_encode["aud"] = auth_settings.audience

    return jwt.encode(
        to_encode,
        auth_settings.secret_key.get_secret_value(),
        algorithm=auth_settings.algorithm,
    )


def decode_token(
    token: str,
    auth_settings: AuthSettings | None = None,
) -> dict[str, Any] | None:
    """
    Decode and validate a JWT token.

    Returns:
        Token payload, or None if the signature, expiry or audience is invalid
    """
    auth_settings = auth_settings or settings.auth
    options = {"verify_aud": auth_settings.audience is not None}

    try:
        return jwt.decode(
            token,
            auth_settings.secret_key.get_secret_value(),
            algorithms=[auth_settings.algorithm],
            audience=auth_settings.audience,
            options=options,
        )
    except JWTError:
        return None


def resolve_user_id(token: str, auth_settings: AuthSettings | None = None) -> str | None:
    """Return the ``sub`` claim of a valid token."""
    payload = decode_token(token, auth_settings)
    if not payload:
        return None
    subject = payload.get("sub")
    return str(subject) if subject else None
