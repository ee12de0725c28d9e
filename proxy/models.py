"""
Pydantic models for request validation.
"""
from typing import Optional

from pydantic import BaseModel


class ChatRequest(BaseModel):
    """Body of ``POST /chat``

    A missing message decodes to the empty string so that it is reported
    as a missing message rather than a malformed body.
    """
    message: str = ""
    conversation_id: Optional[str] = None
