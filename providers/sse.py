"""
Line-oriented reader for upstream Server-Sent Events.
"""
import json
from typing import Any, AsyncIterator, Dict, Optional

DATA_PREFIX = "data: "


async def iter_sse_data(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    """Yield the payload of every ``data: `` line, in arrival order.

    Event names, comments, ids and blank separators are dropped; each data
    line is treated as one frame.
    """
    async for line in lines:
        if line.endswith("\r"):
            line = line[:-1]
        if line.startswith(DATA_PREFIX):
            yield line[len(DATA_PREFIX):]


def load_frame(data: str) -> Optional[Dict[str, Any]]:
    """Decode one JSON frame; None for malformed or non-object payloads"""
    try:
        frame = json.loads(data)
    except json.JSONDecodeError:
        return None
    return frame if isinstance(frame, dict) else None
