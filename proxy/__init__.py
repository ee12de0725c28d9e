"""
Pi Agent relay - HTTP surface.

Exposes the streaming chat endpoint backed by the completion orchestrator,
plus health and auth status endpoints.
"""
from .app import create_app
from .handlers import CompletionOrchestrator, PreparedTurn
from .server import RelayServer

__version__ = "1.0.0"

__all__ = [
    'create_app',
    'CompletionOrchestrator',
    'PreparedTurn',
    'RelayServer',
]
