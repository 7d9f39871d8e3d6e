"""SSE event formatting for the completion relay."""

import json

MESSAGE_START = "message_start"
CONTENT_BLOCK_START = "content_block_start"
CONTENT_BLOCK_DELTA = "content_block_delta"
CONTENT_BLOCK_STOP = "content_block_stop"
MESSAGE_DELTA = "message_delta"
MESSAGE_STOP = "message_stop"
ERROR = "error"

SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"}


def _sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


def format_message_start(message_id: str, model: str, chat_id: str | None) -> str:
    return _sse(MESSAGE_START, {"type": MESSAGE_START, "message": {"id": message_id, "model": model, "chat_id": chat_id}})


def format_content_block_start(index: int = 0) -> str:
    return _sse(CONTENT_BLOCK_START, {"type": CONTENT_BLOCK_START, "index": index, "content_block": {"type": "text", "text": ""}})


def format_content_block_delta(text: str, index: int = 0) -> str:
    return _sse(CONTENT_BLOCK_DELTA, {"type": CONTENT_BLOCK_DELTA, "index": index, "delta": {"type": "text_delta", "text": text}})


def format_content_block_stop(index: int = 0) -> str:
    return _sse(CONTENT_BLOCK_STOP, {"type": CONTENT_BLOCK_STOP, "index": index})


def format_message_delta(stop_reason: str) -> str:
    return _sse(MESSAGE_DELTA, {"type": MESSAGE_DELTA, "delta": {"stop_reason": stop_reason}})


def format_message_stop() -> str:
    return _sse(MESSAGE_STOP, {"type": MESSAGE_STOP})


def format_error(error_type: str, message: str) -> str:
    return _sse(ERROR, {"type": ERROR, "error": {"type": error_type, "message": message}})
