"""
Completion orchestration: token, history, upstream stream, persistence.

One CompletionOrchestrator is built at startup and shared by every request.
A request is handled in two phases so that pre-stream failures can still be
answered with a plain HTTP status:

    turn = await orchestrator.prepare(message, conversation_id)
    async for frame in orchestrator.relay(turn):
        ...

Once ``relay`` starts, every outcome is expressed as SSE frames and the
stream always ends with either ``data: [DONE]`` or a single error frame.
"""
import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, List, Optional

import settings
from conversations import ConversationStore, Role
from errors import RelayError, ValidationError
from openai_oauth import CredentialStore
from providers import BaseProvider
from stream_debug import StreamTracer, maybe_create_stream_tracer

logger = logging.getLogger(__name__)

DONE_FRAME = "data: [DONE]\n\n"


def sse_frame(payload: Dict[str, str]) -> str:
    """Encode one downstream SSE frame (non-ASCII text is sent unescaped)"""
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


@dataclass
class PreparedTurn:
    """Everything the relay phase needs, gathered before streaming starts"""
    request_id: str
    conversation_id: str
    access_token: str
    account_id: str
    history: List[Dict[str, str]] = field(default_factory=list)


class CompletionOrchestrator:
    """Per-request lifecycle: fetch token, build prompt, stream, persist"""

    def __init__(
        self,
        credentials: CredentialStore,
        conversations: ConversationStore,
        provider: BaseProvider,
        model: str,
        system_prompt: str,
        default_conversation_id: str,
        persist_partial_replies: bool = False,
        trace_enabled: bool = False,
    ):
        self.credentials = credentials
        self.conversations = conversations
        self.provider = provider
        self.model = model
        self.system_prompt = system_prompt
        self.default_conversation_id = default_conversation_id
        self.persist_partial_replies = persist_partial_replies
        self.trace_enabled = trace_enabled

    def resolve_conversation_id(self, conversation_id: Optional[str]) -> str:
        if conversation_id and conversation_id.strip():
            return conversation_id
        return self.default_conversation_id

    async def prepare(
        self,
        message: Optional[str],
        conversation_id: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> PreparedTurn:
        """
        Validate the message, acquire a token, record the user turn and load
        the conversation history.

        Args:
            message: The user's message
            conversation_id: Target conversation; the default one when blank
            request_id: Request ID for logging

        Returns:
            PreparedTurn ready for relay()

        Raises:
            ValidationError: blank message (nothing else is touched)
            AuthError: no credential or the refresh was rejected
            TransportError: the token endpoint could not be reached
            StoreError: the user turn could not be written or history read
        """
        request_id = request_id or str(uuid.uuid4())[:8]
        if message is None or not message.strip():
            raise ValidationError("message is required")

        conversation_id = self.resolve_conversation_id(conversation_id)

        access_token = await self.credentials.access_token()
        account_id = self.credentials.account_id()

        await self.conversations.add_message(conversation_id, Role.USER, message)
        history = await self.conversations.messages(conversation_id)
        logger.debug(
            f"[{request_id}] Conversation '{conversation_id}' has {len(history)} messages"
        )

        return PreparedTurn(
            request_id=request_id,
            conversation_id=conversation_id,
            access_token=access_token,
            account_id=account_id,
            history=[m.to_upstream() for m in history],
        )

    async def relay(self, turn: PreparedTurn) -> AsyncIterator[str]:
        """
        Stream the completion for a prepared turn as downstream SSE frames.

        Content frames are emitted as deltas arrive. On the termination
        signal the accumulated reply is persisted once (if non-empty) and
        ``[DONE]`` is sent. An upstream failure ends the stream with an
        error frame instead. Cancellation propagates to the upstream request
        and nothing is written for the assistant.
        """
        request_id = turn.request_id
        tracer = maybe_create_stream_tracer(
            self.trace_enabled,
            request_id,
            "chat",
            settings.STREAM_TRACE_DIR,
            settings.STREAM_TRACE_MAX_BYTES,
        )
        if tracer:
            logger.info(f"[{request_id}] Stream tracing to {tracer.path}")

        parts: List[str] = []
        try:
            stream = self.provider.stream_completion(
                turn.access_token,
                turn.account_id,
                self.model,
                self.system_prompt,
                turn.history,
                request_id=request_id,
                tracer=tracer,
            )
            try:
                async for delta in stream:
                    if delta.done:
                        break
                    if not delta.content:
                        continue
                    parts.append(delta.content)
                    yield self._emit(sse_frame({"content": delta.content}), tracer)
            except RelayError as e:
                logger.error(f"[{request_id}] Upstream stream failed: {e}")
                if self.persist_partial_replies and parts:
                    await self._persist_partial(turn, "".join(parts))
                yield self._emit(sse_frame({"error": str(e)}), tracer)
                return
            finally:
                await stream.aclose()

            reply = "".join(parts)
            if reply:
                try:
                    await self.conversations.add_message(turn.conversation_id, Role.ASSISTANT, reply)
                except RelayError as e:
                    logger.error(f"[{request_id}] Failed to save assistant reply: {e}")
                    yield self._emit(sse_frame({"error": str(e)}), tracer)
                    return

            logger.info(f"[{request_id}] Stream completed ({len(reply)} chars)")
            yield self._emit(DONE_FRAME, tracer)
        finally:
            if tracer:
                tracer.close()

    async def _persist_partial(self, turn: PreparedTurn, text: str) -> None:
        try:
            await self.conversations.add_message(turn.conversation_id, Role.ASSISTANT, text)
        except RelayError as e:
            logger.error(f"[{turn.request_id}] Failed to save partial reply: {e}")

    @staticmethod
    def _emit(frame: str, tracer: Optional[StreamTracer]) -> str:
        if tracer:
            tracer.log_converted_chunk(frame)
        return frame
