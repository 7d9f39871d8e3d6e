"""Auth endpoints: sign-in, sign-up and sign-out, delegated to Supabase Auth."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr, Field

from chat_relay.auth.dependencies import CurrentUser, get_current_user
from chat_relay.db.client import get_anon_supabase, get_supabase

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


# --- Request / Response schemas ---

class SignInRequest(BaseModel):
    email: EmailStr
    password: str

class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: str = ""

class SessionResponse(BaseModel):
    status: str = "success"
    data: dict


# --- Helpers ---

def _session_payload(auth_response) -> dict:
    session = auth_response.session
    user = auth_response.user
    data = {
        "user": {
            "id": user.id,
            "email": user.email,
            "full_name": (user.user_metadata or {}).get("full_name"),
        } if user else None,
        "access_token": None,
        "refresh_token": None,
        "token_type": "bearer",
        "expires_at": None,
    }
    if session:
        data.update(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_at=session.expires_at,
        )
    return data


# --- Endpoints ---

@router.post("/sign-in", response_model=SessionResponse, summary="Sign in", description="Authenticate with email and password, returns the Supabase session tokens.")
async def sign_in(body: SignInRequest):
    try:
        result = get_anon_supabase().auth.sign_in_with_password({"email": body.email, "password": body.password})
    except Exception:
        logger.info("Sign-in rejected")
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return SessionResponse(data=_session_payload(result))


@router.post("/sign-up", status_code=201, response_model=SessionResponse, summary="Sign up", description="Register a new account. The session is null until the email address is verified.")
async def sign_up(body: SignUpRequest):
    try:
        result = get_anon_supabase().auth.sign_up({
            "email": body.email,
            "password": body.password,
            "options": {"data": {"full_name": body.full_name}},
        })
    except Exception as e:
        logger.info("Sign-up rejected: %s", e)
        raise HTTPException(status_code=400, detail="Could not create account")
    return SessionResponse(data=_session_payload(result))


@router.post("/sign-out", summary="Sign out", description="Terminate the caller's session. Requires a valid access token.")
async def sign_out(user: CurrentUser = Depends(get_current_user)):
    get_supabase().auth.admin.sign_out(user.access_token)
    logger.info("User %s signed out", user.id)
    return {"status": "success", "data": {"message": "Signed out successfully"}}
