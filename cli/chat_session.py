"""Interactive chat against a running relay"""

import asyncio
from typing import Optional

from rich.prompt import Prompt

from client import RelayClient
from errors import RelayError

EXIT_COMMANDS = {"exit", "quit", "/exit", "/quit"}


async def _send(relay: RelayClient, console, message: str, conversation_id: Optional[str]) -> None:
    async for text in relay.chat_stream(message, conversation_id):
        console.print(text, end="", markup=False, highlight=False)
    console.print()


async def run_chat(
    console,
    base_url: str,
    conversation_id: Optional[str] = None,
    message: Optional[str] = None,
) -> int:
    """
    Chat with the relay at base_url

    Args:
        console: Rich console for output
        base_url: Relay URL
        conversation_id: Conversation to continue (relay default when None)
        message: Send this one message and exit instead of prompting

    Returns:
        Process exit code
    """
    async with RelayClient(base_url) as relay:
        if not await relay.health():
            console.print(f"[red]ERROR:[/red] relay at {base_url} is not reachable")
            return 1

        if message is not None:
            try:
                await _send(relay, console, message, conversation_id)
            except RelayError as e:
                console.print(f"\n[red]Error:[/red] {e}")
                return 1
            return 0

        console.print("[bold]Connected.[/bold] Type 'exit' to quit.\n")
        while True:
            text = await asyncio.to_thread(Prompt.ask, "[cyan]you[/cyan]", console=console)
            if text.strip().lower() in EXIT_COMMANDS:
                return 0
            if not text.strip():
                continue
            console.print("[magenta]assistant[/magenta]: ", end="")
            try:
                await _send(relay, console, text, conversation_id)
            except RelayError as e:
                console.print(f"\n[red]Error:[/red] {e}")
