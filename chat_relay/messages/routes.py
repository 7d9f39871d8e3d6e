"""Chat completion endpoint: streams the model reply as Server-Sent Events."""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from starlette.background import BackgroundTask
from starlette.responses import StreamingResponse

from chat_relay.llm.client import LLMClient, get_configured_llm_client
from chat_relay.messages.relay import CompletionRelay
from chat_relay.messages.schemas import ChatCompletionRequest
from chat_relay.messages.streaming import SSE_HEADERS

router = APIRouter(tags=["Messages"])


async def read_completion_request(request: Request) -> ChatCompletionRequest:
    """Parse the body by hand so it is only read once the caller is authenticated."""
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=422, detail="Request body is not valid JSON")
    try:
        return ChatCompletionRequest.model_validate(payload)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors())


@router.post(
    "/chat-completion",
    summary="Stream a chat completion",
    description=(
        "Persist the new user message (when chatId is given), stream the model reply token by token "
        "and persist the assembled assistant message once the stream ends."
    ),
)
async def chat_completion(request: Request, llm: LLMClient = Depends(get_configured_llm_client)):
    relay = CompletionRelay(llm)
    relay.authenticate(request)
    body = await read_completion_request(request)

    relay.authorize(body.chat_id)
    relay.record_user_turn(body.message)
    first, stream = await relay.open(body.model_turns())
    # The background close covers a client that disconnects before the body is iterated
    return StreamingResponse(
        relay.events(first, stream),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
        background=BackgroundTask(relay.close, stream),
    )
