"""
OAuth token lifecycle management
"""
import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

from errors import AuthError
from .constants import REFRESH_MARGIN_SECONDS
from .models import Credential, TokenResponse
from .storage import CredentialFile
from .token_exchange import refresh_access_token

logger = logging.getLogger(__name__)


class CredentialStore:
    """Single-writer, many-reader access to the one stored credential

    ``access_token()`` serializes every caller on one lock, so requests that
    arrive while the token is inside the refresh margin collapse into a
    single refresh call.
    """

    def __init__(
        self,
        token_file: str,
        refresher: Callable[[str], Awaitable[TokenResponse]] = refresh_access_token,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the credential store and load any saved credential.

        Args:
            token_file: Path to the credential record
            refresher: Coroutine exchanging a refresh token for new tokens
            clock: Source of the current unix time
        """
        self.storage = CredentialFile(token_file)
        self._refresher = refresher
        self._clock = clock
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None
        self._credential: Optional[Credential] = self.storage.load()
        if self._credential:
            logger.info(f"Loaded credentials from {self.storage.token_path}")

    def _loop_lock(self) -> asyncio.Lock:
        """The lock for the running event loop

        The CLI logs in under one event loop and serves under another, so the
        lock is created on first use in each loop.
        """
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    @property
    def token_file(self):
        return self.storage.token_path

    def has_credentials(self) -> bool:
        """True once a credential has been loaded or saved"""
        return self._credential is not None

    async def save(self, credential: Credential) -> None:
        """
        Persist a new credential, replacing the current one.

        Raises:
            StoreError: the record could not be written
        """
        async with self._loop_lock():
            self.storage.save(credential)
            self._credential = credential

    async def access_token(self) -> str:
        """
        Return a valid access token, refreshing it first when it is within
        REFRESH_MARGIN_SECONDS of expiry.

        Raises:
            AuthError: no credential stored, or the refresh was rejected
                (ReauthenticationRequired when the refresh token is revoked)
            TransportError: the token endpoint could not be reached
            StoreError: the refreshed credential could not be saved
        """
        async with self._loop_lock():
            credential = self._credential
            if credential is None:
                raise AuthError("no credentials stored; authenticate first")

            now = self._clock()
            if not credential.is_expired(now):
                return credential.access_token

            logger.info("Access token expired or expiring soon, refreshing...")
            tokens = await self._refresher(credential.refresh_token)

            refreshed = Credential(
                access_token=tokens.access_token,
                refresh_token=tokens.refresh_token or credential.refresh_token,
                expires_at=int(self._clock()) + tokens.expires_in,
                account_id=credential.account_id,
            )
            self.storage.save(refreshed)
            self._credential = refreshed
            logger.info("Access token refreshed successfully")
            return refreshed.access_token

    def account_id(self) -> str:
        """Cached ChatGPT account ID, empty when unknown"""
        if self._credential is None:
            return ""
        return self._credential.account_id

    def status(self) -> Dict[str, Any]:
        """Token status without exposing secrets"""
        credential = self._credential
        if credential is None:
            return {
                "has_tokens": False,
                "is_expired": True,
                "needs_refresh": True,
                "expires_at": None,
                "time_until_expiry": "No tokens",
                "account_id": None,
            }

        now = int(self._clock())
        remaining = credential.expires_at - now
        if remaining <= 0:
            time_str = "expired"
        else:
            hours = remaining // 3600
            minutes = (remaining % 3600) // 60
            time_str = f"{hours}h {minutes}m" if hours > 0 else f"{minutes}m"

        return {
            "has_tokens": True,
            "is_expired": credential.is_expired(now, margin=0),
            "needs_refresh": credential.is_expired(now, margin=REFRESH_MARGIN_SECONDS),
            "expires_at": datetime.fromtimestamp(credential.expires_at).isoformat(),
            "time_until_expiry": time_str,
            "account_id": credential.account_id or None,
        }
