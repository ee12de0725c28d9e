"""Data models for OpenAI OAuth authentication"""

import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .constants import REFRESH_MARGIN_SECONDS


@dataclass
class TokenResponse:
    """Raw payload returned by the OAuth token endpoint

    Attributes:
        access_token: Bearer token for API authentication
        refresh_token: Token for refreshing expired access tokens (may be empty on refresh)
        expires_in: Lifetime of the access token in seconds
        id_token: JWT ID token containing user identity
        token_type: Token type, normally "Bearer"
    """
    access_token: str
    refresh_token: str
    expires_in: int
    id_token: str = ""
    token_type: str = "Bearer"


@dataclass
class Credential:
    """Resolved OAuth credential persisted by the credential store

    Attributes:
        access_token: Current bearer token
        refresh_token: Token used to obtain a new access token
        expires_at: Absolute expiry, unix seconds
        account_id: ChatGPT account identifier ("" when unknown)
    """
    access_token: str
    refresh_token: str
    expires_at: int
    account_id: str = ""

    def is_expired(self, now: Optional[float] = None, margin: int = REFRESH_MARGIN_SECONDS) -> bool:
        """True when the token is expired or will expire within the margin"""
        if now is None:
            now = time.time()
        return now > self.expires_at - margin

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Credential":
        """Load from dictionary"""
        return cls(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            expires_at=int(data["expires_at"]),
            account_id=data.get("account_id") or "",
        )
