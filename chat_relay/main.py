"""Chat Relay API: FastAPI application entry point."""

import logging

from fastapi import FastAPI

from chat_relay.auth.routes import router as auth_router
from chat_relay.config.cors import SecurityHeadersMiddleware, configure_cors
from chat_relay.config.settings import get_settings
from chat_relay.conversations.routes import router as conversations_router
from chat_relay.messages.routes import router as messages_router
from chat_relay.middleware.error_handler import register_error_handlers
from chat_relay.middleware.request_id import RequestIDMiddleware

logging.basicConfig(
    level=get_settings().LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Chat Relay API",
    description=(
        "Backend for a streaming LLM chat client.\n\n"
        "## Features\n"
        "- Supabase Auth sessions (sign-in, sign-up, sign-out)\n"
        "- Conversations with ownership enforcement\n"
        "- Token-by-token completion streaming via SSE, with user and assistant turns persisted\n\n"
        "## Authentication\n"
        "All endpoints except `/health`, `/docs`, `/sign-in` and `/sign-up` require "
        "`Authorization: Bearer <supabase access token>`."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Health", "description": "Health check endpoints"},
        {"name": "Auth", "description": "Sign in, sign up and sign out through Supabase Auth"},
        {"name": "Conversations", "description": "Create, list and rename conversations; read their history"},
        {"name": "Messages", "description": "Streaming chat completions"},
    ],
)

# --- Middleware (the last one added runs outermost: CORS, then security headers, then request id) ---
app.add_middleware(RequestIDMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
configure_cors(app)

# --- Error handlers ---
register_error_handlers(app)

# --- Routes ---
app.include_router(auth_router)
app.include_router(conversations_router)
app.include_router(messages_router)


@app.get("/health", tags=["Health"], summary="Health check", description="Returns OK if the service is running.")
async def health_check():
    return {"status": "ok"}
