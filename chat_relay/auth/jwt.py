"""Supabase access token verification."""

import jwt

from chat_relay.config.settings import get_settings

# Supabase signs user sessions with this audience; anon and service keys differ
SUPABASE_AUDIENCE = "authenticated"


def verify_token(token: str) -> dict:
    """Decode and validate a Supabase access token.

    Raises jwt.ExpiredSignatureError or jwt.InvalidTokenError.
    """
    settings = get_settings()
    return jwt.decode(
        token,
        settings.SUPABASE_JWT_SECRET,
        algorithms=["HS256"],
        audience=SUPABASE_AUDIENCE,
        options={"require": ["sub", "exp"]},
    )
