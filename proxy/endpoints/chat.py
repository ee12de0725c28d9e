"""
Streaming chat endpoint.
"""
import json
import logging
import time
import uuid

import pydantic
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from errors import ValidationError
from ..dependencies import get_orchestrator
from ..handlers.chat_handler import CompletionOrchestrator
from ..models import ChatRequest

logger = logging.getLogger(__name__)
router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def parse_chat_request(raw_request: Request) -> ChatRequest:
    """Decode the JSON body; any shape problem is a ValidationError"""
    try:
        payload = json.loads(await raw_request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("invalid JSON body") from None
    try:
        return ChatRequest.model_validate(payload)
    except pydantic.ValidationError:
        raise ValidationError("invalid JSON body") from None


@router.post("/chat")
async def chat(
    raw_request: Request,
    orchestrator: CompletionOrchestrator = Depends(get_orchestrator),
):
    """
    Relay one user message and stream the assistant reply as SSE.

    Failures before the first byte (bad input, auth, storage) become plain
    JSON error responses through the app's exception handlers; failures
    after that are delivered as a terminal error frame.
    """
    request_id = str(uuid.uuid4())[:8]
    start_time = time.time()

    request = await parse_chat_request(raw_request)
    logger.info(f"[{request_id}] ===== NEW CHAT REQUEST =====")
    logger.debug(f"[{request_id}] Conversation: {request.conversation_id or '(default)'}")
    logger.debug(f"[{request_id}] Message length: {len(request.message)}")

    turn = await orchestrator.prepare(request.message, request.conversation_id, request_id=request_id)

    async def stream():
        try:
            async for frame in orchestrator.relay(turn):
                yield frame
        finally:
            elapsed = time.time() - start_time
            logger.info(f"[{request_id}] Stream closed after {elapsed:.2f}s")

    return StreamingResponse(stream(), media_type="text/event-stream", headers=SSE_HEADERS)
