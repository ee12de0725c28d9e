"""
Legacy chat-completions provider.
Handles streaming requests to OpenAI chat completions format endpoints.
"""
from typing import Any, Dict, List, Optional

from providers.base_provider import BaseProvider, StreamDelta
from providers.sse import load_frame

DONE_SENTINEL = "[DONE]"


class OpenAIProvider(BaseProvider):
    """Provider implementation for the chat completions schema

    Frames carry ``choices[0].delta.content``; a literal ``[DONE]`` payload
    is the only termination signal.
    """

    name = "chat_completions"

    def build_payload(
        self,
        model: str,
        instructions: str,
        messages: List[Dict[str, str]],
    ) -> Dict[str, Any]:
        if instructions and instructions.strip():
            messages = [{"role": "system", "content": instructions}] + list(messages)
        return {
            "model": model,
            "messages": messages,
            "stream": True,
        }

    def parse_frame(self, data: str) -> Optional[StreamDelta]:
        if data.strip() == DONE_SENTINEL:
            return StreamDelta(done=True)

        frame = load_frame(data)
        if frame is None:
            return None

        choices = frame.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return None
        delta = choices[0].get("delta")
        if not isinstance(delta, dict):
            return None
        content = delta.get("content")
        if not isinstance(content, str) or not content:
            return None
        return StreamDelta(content=content)
