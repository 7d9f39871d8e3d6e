"""Auth dependencies for FastAPI route injection."""

import logging
from dataclasses import dataclass

from fastapi import HTTPException, Request

from chat_relay.auth.jwt import verify_token

logger = logging.getLogger(__name__)


@dataclass
class CurrentUser:
    id: str
    email: str
    full_name: str | None = None
    access_token: str = ""


def _extract_bearer_token(request: Request) -> str | None:
    auth = request.headers.get("Authorization")
    if auth and auth.startswith("Bearer "):
        return auth[7:]
    return None


def verify_caller(request: Request) -> CurrentUser | None:
    """Resolve the caller from the request, or None when no identity can be verified."""
    token = _extract_bearer_token(request)
    if not token:
        return None
    try:
        payload = verify_token(token)
    except Exception:
        logger.info("Rejected access token on %s", request.url.path)
        return None
    metadata = payload.get("user_metadata") or {}
    return CurrentUser(
        id=payload["sub"],
        email=payload.get("email", ""),
        full_name=metadata.get("full_name"),
        access_token=token,
    )


async def get_current_user(request: Request) -> CurrentUser:
    """FastAPI dependency: authenticate via a Supabase Bearer access token."""
    user = verify_caller(request)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user
