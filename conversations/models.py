"""Conversation message models"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Optional


class Role(str, Enum):
    """Chat message role"""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    """A single stored message in a conversation

    Attributes:
        id: Store-assigned, strictly increasing sequence number
        conversation_id: Key shared by all messages in one conversation
        role: system, user or assistant
        content: Message text
        created_at: Insertion time (UTC), None if the stored value could not be parsed
    """
    id: int
    conversation_id: str
    role: Role
    content: str
    created_at: Optional[datetime]

    def to_upstream(self) -> Dict[str, str]:
        """Shape used by both upstream completion schemas"""
        return {"role": self.role.value, "content": self.content}
