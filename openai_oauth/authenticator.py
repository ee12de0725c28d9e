"""
Interactive browser PKCE flow.
"""
import logging
import webbrowser
from typing import Callable

from .authorization import create_authorization_flow
from .callback_server import OAuthCallbackServer
from .constants import OAUTH_CALLBACK_PORT, OAUTH_CALLBACK_TIMEOUT, REDIRECT_URI
from .models import Credential
from .token_exchange import credential_from_token_response, exchange_code_for_tokens

logger = logging.getLogger(__name__)


def _open_browser(url: str, opener: Callable[[str], bool], notify: Callable[[str], None]) -> None:
    """Open the authorization URL, printing it when no browser is available"""
    try:
        opened = opener(url)
    except webbrowser.Error as e:
        logger.debug(f"Browser launch failed: {e}")
        opened = False
    if not opened:
        notify(f"Could not open browser. Please visit this URL:\n{url}")


async def authenticate(
    notify: Callable[[str], None] = print,
    opener: Callable[[str], bool] = webbrowser.open,
    port: int = OAUTH_CALLBACK_PORT,
    timeout: float = OAUTH_CALLBACK_TIMEOUT,
) -> Credential:
    """
    Run the full OAuth PKCE flow: open the browser, wait for the callback
    and exchange the code for a Credential.

    The attempt ends at whichever comes first: a valid callback, a rejected
    callback (state mismatch or provider error), the timeout, or
    cancellation of the awaiting task. The callback listener is shut down in
    every case.

    Args:
        notify: Sink for operator-facing messages
        opener: Browser launcher; returns False when it could not open a browser
        port: Local callback port
        timeout: Seconds to wait for the callback

    Returns:
        Credential

    Raises:
        AuthError: timeout, CSRF mismatch, provider rejection or rejected exchange
        TransportError: token endpoint unreachable
        DecodeError: malformed token response
    """
    redirect_uri = REDIRECT_URI if port == OAUTH_CALLBACK_PORT else f"http://localhost:{port}/auth/callback"
    flow = create_authorization_flow(redirect_uri)

    server = OAuthCallbackServer(expected_state=flow.state, port=port)
    await server.start()
    try:
        notify("Opening browser for authentication...")
        _open_browser(flow.url, opener, notify)

        code = await server.wait_for_code(timeout)
    finally:
        await server.stop()

    tokens = await exchange_code_for_tokens(code, flow.pkce.verifier, redirect_uri)
    credential = credential_from_token_response(tokens)
    logger.info("Interactive authentication completed")
    return credential
