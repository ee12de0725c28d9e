"""
Request handlers for the relay server.
"""
from .chat_handler import CompletionOrchestrator, PreparedTurn, sse_frame, DONE_FRAME

__all__ = [
    'CompletionOrchestrator',
    'PreparedTurn',
    'sse_frame',
    'DONE_FRAME',
]
