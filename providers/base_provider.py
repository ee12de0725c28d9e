"""
Base provider interface for upstream streaming completion backends.
Defines the contract both wire schemas implement.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional, TYPE_CHECKING

import httpx

from errors import TransportError
from settings import STREAM_TIMEOUT, CONNECT_TIMEOUT, READ_TIMEOUT
from providers.sse import iter_sse_data

if TYPE_CHECKING:
    from stream_debug import StreamTracer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreamDelta:
    """One incremental fragment of a streamed completion"""
    content: str = ""
    done: bool = False


class BaseProvider(ABC):
    """Abstract base class for upstream completion providers

    Subclasses describe the request (endpoint, headers, payload) and how a
    single ``data:`` frame maps onto a StreamDelta. The streaming loop, the
    HTTP error handling and the transport error mapping are shared.
    """

    name = "base"

    def __init__(self, endpoint: str, client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            endpoint: Upstream completions URL
            client: Optional shared HTTP client (a per-call client is created otherwise)
        """
        self.endpoint = endpoint
        self._client = client

    def _get_headers(self, access_token: str, account_id: str) -> Dict[str, str]:
        """Build request headers"""
        return {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }

    @abstractmethod
    def build_payload(
        self,
        model: str,
        instructions: str,
        messages: List[Dict[str, str]],
    ) -> Dict[str, Any]:
        """Build the streaming request body"""

    @abstractmethod
    def parse_frame(self, data: str) -> Optional[StreamDelta]:
        """Map one ``data:`` payload to a delta; None to skip the frame"""

    async def stream_completion(
        self,
        access_token: str,
        account_id: str,
        model: str,
        instructions: str,
        messages: List[Dict[str, str]],
        request_id: str = "-",
        tracer: Optional["StreamTracer"] = None,
    ) -> AsyncIterator[StreamDelta]:
        """Stream a completion as an ordered sequence of StreamDelta

        The sequence ends right after the single ``done`` delta. Closing the
        generator (or cancelling the consuming task) closes the upstream
        response.

        Raises:
            TransportError: non-2xx status, connection failure, or the body
                ended before the termination signal
        """
        payload = self.build_payload(model, instructions, messages)
        headers = self._get_headers(access_token, account_id)

        logger.debug(f"[{request_id}] Streaming from {self.name}: {self.endpoint} model={model}")
        if tracer:
            tracer.log_note(f"starting {self.name} stream to {self.endpoint}")

        if self._client is not None:
            async for delta in self._stream(self._client, payload, headers, request_id, tracer):
                yield delta
            return

        timeout = httpx.Timeout(STREAM_TIMEOUT, connect=CONNECT_TIMEOUT, read=READ_TIMEOUT)
        async with httpx.AsyncClient(timeout=timeout) as client:
            async for delta in self._stream(client, payload, headers, request_id, tracer):
                yield delta

    async def _stream(
        self,
        client: httpx.AsyncClient,
        payload: Dict[str, Any],
        headers: Dict[str, str],
        request_id: str,
        tracer: Optional["StreamTracer"],
    ) -> AsyncIterator[StreamDelta]:
        try:
            async with client.stream("POST", self.endpoint, json=payload, headers=headers) as response:
                if tracer:
                    tracer.log_note(f"{self.name} responded with status={response.status_code}")

                if not response.is_success:
                    body = (await response.aread()).decode("utf-8", "replace")
                    logger.error(f"[{request_id}] {self.name} error {response.status_code}: {body}")
                    if tracer:
                        tracer.log_error(f"status={response.status_code} body={body}")
                    raise TransportError(
                        f"API error {response.status_code}: {body}",
                        status_code=response.status_code,
                        body=body,
                    )

                async for data in iter_sse_data(response.aiter_lines()):
                    if tracer:
                        tracer.log_source_chunk(data)
                    delta = self.parse_frame(data)
                    if delta is None:
                        continue
                    yield delta
                    if delta.done:
                        return

        except httpx.HTTPError as e:
            logger.error(f"[{request_id}] {self.name} stream failed: {e!r}")
            if tracer:
                tracer.log_error(f"stream failed: {e!r}")
            raise TransportError(f"reading stream: {e}") from e

        raise TransportError("reading stream: upstream closed before completion")
