"""
Durable conversation log backed by SQLite.
"""
from .models import Message, Role
from .store import ConversationStore

__all__ = [
    "Message",
    "Role",
    "ConversationStore",
]
