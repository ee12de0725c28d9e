"""
ChatGPT provider implementation for the Responses API.
Handles requests to ChatGPT Plus/Pro subscription models via OAuth.
"""
from typing import Any, Dict, List, Optional

from providers.base_provider import BaseProvider, StreamDelta
from providers.sse import load_frame

DEFAULT_INSTRUCTIONS = "You are a helpful assistant."

OUTPUT_TEXT_DELTA = "response.output_text.delta"
RESPONSE_COMPLETED = "response.completed"


class ChatGPTProvider(BaseProvider):
    """Provider implementation for the typed Responses schema

    OAuth tokens from ChatGPT subscriptions are scoped to the ChatGPT
    backend, not api.openai.com. Frames are typed events:

        data: {"type":"response.output_text.delta","delta":"..."}
        data: {"type":"response.completed","response":{...}}

    Any other event type is ignored.
    """

    name = "responses"

    def _get_headers(self, access_token: str, account_id: str) -> Dict[str, str]:
        headers = super()._get_headers(access_token, account_id)
        if account_id:
            headers["ChatGPT-Account-Id"] = account_id
        return headers

    def build_payload(
        self,
        model: str,
        instructions: str,
        messages: List[Dict[str, str]],
    ) -> Dict[str, Any]:
        if not instructions or not instructions.strip():
            instructions = DEFAULT_INSTRUCTIONS
        return {
            "model": model,
            "store": False,
            "instructions": instructions,
            "input": list(messages),
            "stream": True,
        }

    def parse_frame(self, data: str) -> Optional[StreamDelta]:
        frame = load_frame(data)
        if frame is None:
            return None

        kind = frame.get("type")
        if kind == OUTPUT_TEXT_DELTA:
            delta = frame.get("delta")
            if isinstance(delta, str) and delta:
                return StreamDelta(content=delta)
            return None
        if kind == RESPONSE_COMPLETED:
            return StreamDelta(done=True)
        return None
