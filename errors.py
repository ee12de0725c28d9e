"""
Error taxonomy shared by the relay components.
"""
from typing import Optional


class RelayError(Exception):
    """Base class for all relay errors"""


class ValidationError(RelayError):
    """Bad or missing client input (never retried)"""


class AuthError(RelayError):
    """Missing credentials, rejected refresh, CSRF mismatch or provider rejection"""


class ReauthenticationRequired(AuthError):
    """Refresh token expired or revoked; the OAuth flow must be run again"""


class TransportError(RelayError):
    """Network failure or non-2xx response from the provider or upstream service"""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class DecodeError(RelayError):
    """Malformed JSON in a one-shot provider response"""


class StoreError(RelayError):
    """I/O failure reading or writing persisted state"""
