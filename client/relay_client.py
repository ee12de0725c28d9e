"""
Async client for the relay's HTTP surface.
"""
import json
import logging
from typing import AsyncIterator, Optional

import httpx

from errors import AuthError, StoreError, TransportError, ValidationError
from providers.sse import iter_sse_data, load_frame
from settings import CONNECT_TIMEOUT, READ_TIMEOUT, STREAM_TIMEOUT

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


def _error_message(body: str) -> str:
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return body
    if isinstance(data, dict) and isinstance(data.get("error"), str):
        return data["error"]
    return body


class RelayClient:
    """Talks to a relay started with ``serve``

    Usage:
        async with RelayClient("http://raspberrypi:8080") as relay:
            async for text in relay.chat_stream("hello"):
                print(text, end="")
    """

    def __init__(self, base_url: str = "http://localhost:8080", client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(STREAM_TIMEOUT, connect=CONNECT_TIMEOUT, read=READ_TIMEOUT)
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RelayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def health(self) -> bool:
        """True when the relay answers ``/health`` with status ok"""
        try:
            response = await self._client.get(f"{self.base_url}/health")
        except httpx.HTTPError as e:
            logger.debug(f"Health check failed: {e!r}")
            return False
        if response.status_code != 200:
            return False
        try:
            return response.json().get("status") == "ok"
        except (ValueError, AttributeError):
            return False

    async def chat_stream(self, message: str, conversation_id: Optional[str] = None) -> AsyncIterator[str]:
        """
        Send a message and yield the reply text as it streams in.

        Args:
            message: The user's message
            conversation_id: Optional conversation; the relay's default otherwise

        Yields:
            Content fragments in arrival order

        Raises:
            ValidationError: blank message, or rejected by the relay
            AuthError: the relay has no usable credential
            TransportError: relay unreachable, upstream failure reported in
                an error frame, or the stream ended without ``[DONE]``
        """
        if not message or not message.strip():
            raise ValidationError("message is required")

        body = {"message": message}
        if conversation_id:
            body["conversation_id"] = conversation_id

        try:
            async with self._client.stream("POST", f"{self.base_url}/chat", json=body) as response:
                if response.status_code != 200:
                    text = (await response.aread()).decode("utf-8", "replace")
                    raise self._status_error(response.status_code, text)

                async for data in iter_sse_data(response.aiter_lines()):
                    if data.strip() == DONE_SENTINEL:
                        return
                    frame = load_frame(data)
                    if frame is None:
                        continue
                    if "error" in frame:
                        raise TransportError(str(frame["error"]))
                    content = frame.get("content")
                    if isinstance(content, str) and content:
                        yield content
        except httpx.HTTPError as e:
            raise TransportError(f"relay request failed: {e}") from e

        raise TransportError("relay stream ended without [DONE]")

    async def chat(self, message: str, conversation_id: Optional[str] = None) -> str:
        """Send a message and return the whole reply"""
        parts = []
        async for text in self.chat_stream(message, conversation_id):
            parts.append(text)
        return "".join(parts)

    @staticmethod
    def _status_error(status_code: int, body: str) -> Exception:
        message = _error_message(body)
        if status_code == 400:
            return ValidationError(message)
        if status_code == 401:
            return AuthError(message)
        if status_code == 500:
            return StoreError(message)
        return TransportError(message, status_code=status_code, body=body)
