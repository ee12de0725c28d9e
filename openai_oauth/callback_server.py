"""
Local OAuth callback server (from openai/codex CLI)
"""
import asyncio
import logging
from typing import Optional

from aiohttp import web

from errors import AuthError
from .constants import OAUTH_CALLBACK_PORT, OAUTH_CALLBACK_PATH

logger = logging.getLogger(__name__)

SUCCESS_PAGE = """
<html>
    <body>
        <h1>Authentication successful!</h1>
        <p>You can close this window and return to the terminal.</p>
    </body>
</html>
"""


class OAuthCallbackServer:
    """Local HTTP server that receives exactly one OAuth callback

    The first callback settles ``result``: with the authorization code on
    success, or with an AuthError when the state does not match, the
    provider reports an error, or no code is present. Later callbacks are
    rejected without touching the result.
    """

    def __init__(
        self,
        expected_state: str,
        host: str = "localhost",
        port: int = OAUTH_CALLBACK_PORT,
    ):
        self.expected_state = expected_state
        self.host = host
        self.port = port
        self.result: "asyncio.Future[str]" = asyncio.get_running_loop().create_future()
        self.app = web.Application()
        self.runner: Optional[web.AppRunner] = None

        self.app.router.add_get(OAUTH_CALLBACK_PATH, self._handle_callback)

    def _settle(self, code: Optional[str] = None, error: Optional[Exception] = None) -> None:
        if self.result.done():
            return
        if error is not None:
            self.result.set_exception(error)
        else:
            self.result.set_result(code)

    async def _handle_callback(self, request: web.Request) -> web.Response:
        """Handle OAuth callback request"""
        if self.result.done():
            return web.Response(text="Callback already handled", status=400)

        state = request.query.get("state")
        error = request.query.get("error")
        error_description = request.query.get("error_description") or ""
        code = request.query.get("code")

        # Validate state (CSRF protection)
        if state != self.expected_state:
            logger.warning("OAuth callback state mismatch")
            self._settle(error=AuthError("state mismatch: possible CSRF attack"))
            return web.Response(text="Invalid state parameter", status=400)

        if error:
            logger.warning(f"OAuth provider returned error: {error}")
            self._settle(error=AuthError(f"oauth error: {error} - {error_description}"))
            return web.Response(text=error_description or error, status=400)

        if not code:
            self._settle(error=AuthError("no authorization code received"))
            return web.Response(text="No code received", status=400)

        self._settle(code=code)
        return web.Response(text=SUCCESS_PAGE, content_type="text/html")

    async def start(self) -> None:
        """Start the callback server"""
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        site = web.TCPSite(self.runner, host=self.host, port=self.port)
        try:
            await site.start()
        except OSError as e:
            await self.runner.cleanup()
            self.runner = None
            raise AuthError(f"starting callback server on port {self.port}: {e}") from e
        logger.info(f"OAuth callback server listening on port {self.port}")

    async def wait_for_code(self, timeout: float) -> str:
        """
        Wait for the OAuth callback.

        Args:
            timeout: Maximum time to wait in seconds

        Returns:
            The authorization code

        Raises:
            AuthError: on timeout or a rejected callback
        """
        try:
            return await asyncio.wait_for(asyncio.shield(self.result), timeout=timeout)
        except asyncio.TimeoutError:
            raise AuthError(f"authentication timed out after {int(timeout)} seconds") from None

    async def stop(self) -> None:
        """Stop the callback server"""
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
