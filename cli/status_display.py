"""Status display functionality for CLI"""

from typing import Any, Dict, Tuple

from rich.table import Table
from openai_oauth import CredentialStore


def get_auth_status(status: Dict[str, Any]) -> Tuple[str, str]:
    """
    Summarize a credential status dict

    Args:
        status: Output of CredentialStore.status()

    Returns:
        Tuple of (status, detail_message)
    """
    if not status["has_tokens"]:
        return "NO AUTH", "No tokens available"

    if status["is_expired"]:
        return "EXPIRED", "Token expired; it will be refreshed on the next request"

    if status.get("needs_refresh"):
        return "REFRESH DUE", f"Expires in {status['time_until_expiry']}"

    return "VALID", f"Expires in {status['time_until_expiry']}"


def show_token_status(credentials: CredentialStore, console):
    """
    Display detailed token status

    Args:
        credentials: CredentialStore instance
        console: Rich console for output
    """
    status = credentials.status()
    label, detail = get_auth_status(status)
    style = "green" if label == "VALID" else "yellow" if label == "REFRESH DUE" else "red"

    table = Table(title="Token Status Details")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Status", f"[{style}]{label}[/{style}]")
    table.add_row("Detail", detail)
    table.add_row("Has Tokens", "Yes" if status["has_tokens"] else "No")

    if status["expires_at"]:
        table.add_row("Expires At", status["expires_at"])
        table.add_row("Time Until Expiry", status["time_until_expiry"])
    if status["account_id"]:
        table.add_row("Account ID", status["account_id"])

    table.add_row("Token File", str(credentials.token_file))

    console.print(table)
