"""Authentication handlers for CLI"""

import asyncio
import logging

from errors import RelayError
from openai_oauth import CredentialStore, authenticate, authenticate_device

logger = logging.getLogger(__name__)


async def _login(credentials: CredentialStore, console, headless: bool) -> None:
    if headless:
        credential = await authenticate_device(notify=console.print)
    else:
        credential = await authenticate(notify=console.print)
    await credentials.save(credential)


def login(credentials: CredentialStore, console, headless: bool = False) -> bool:
    """
    Run the OAuth flow and store the resulting credential

    Args:
        credentials: CredentialStore to save into
        console: Rich console for output
        headless: Use the device code flow instead of the browser flow

    Returns:
        True when a credential was saved
    """
    flow = "device code" if headless else "browser"
    console.print(f"[bold]Starting OpenAI {flow} authentication...[/bold]")

    try:
        asyncio.run(_login(credentials, console, headless))
    except RelayError as e:
        logger.debug(f"Login failed: {e!r}")
        console.print(f"[red]Authentication failed:[/red] {e}")
        return False

    console.print(f"[green]Authenticated.[/green] Credentials saved to {credentials.token_file}")
    if credentials.account_id():
        console.print(f"Account: {credentials.account_id()}")
    return True


def ensure_credentials(credentials: CredentialStore, console, headless: bool = False) -> bool:
    """
    Make sure a credential exists, running the OAuth flow when none does

    Args:
        credentials: CredentialStore instance
        console: Rich console for output
        headless: Use the device code flow instead of the browser flow

    Returns:
        True when a credential is available
    """
    if credentials.has_credentials():
        return True

    console.print("[yellow]No credentials found.[/yellow]")
    return login(credentials, console, headless)
