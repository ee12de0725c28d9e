"""CLI entry point and argument parsing"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console

import settings
from openai_oauth import CredentialStore
from providers import PROVIDERS
from cli.auth_handlers import login
from cli.chat_session import run_chat
from cli.debug_setup import setup_logging
from cli.server_handlers import run_server
from cli.status_display import show_token_status

console = Console()
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pi-agent", description="Pi Agent - personal ChatGPT relay")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Directory for token.json and conversations.db (default: from config)",
    )

    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Start the relay server")
    serve.add_argument("--bind", "-b", default=settings.BIND_ADDRESS, help="Bind address")
    serve.add_argument("--port", "-p", type=int, default=settings.PORT, help="Listen port")
    serve.add_argument("--model", "-m", default=settings.MODEL, help="Upstream model name")
    serve.add_argument("--system-prompt", default=settings.SYSTEM_PROMPT, help="System instructions")
    serve.add_argument("--conversation", default=settings.CONVERSATION_ID, help="Default conversation id")
    serve.add_argument(
        "--backend",
        choices=sorted(PROVIDERS),
        default=settings.UPSTREAM_BACKEND,
        help="Upstream wire schema",
    )
    serve.add_argument(
        "--headless",
        action=argparse.BooleanOptionalAction,
        default=settings.HEADLESS,
        help="Use the device code flow when authentication is needed",
    )
    serve.add_argument(
        "--stream-trace",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable raw stream tracing log capture (implied by --debug unless explicitly disabled)",
    )

    login_parser = subparsers.add_parser("login", help="Authenticate and store credentials")
    login_parser.add_argument(
        "--headless",
        action=argparse.BooleanOptionalAction,
        default=settings.HEADLESS,
        help="Use the device code flow instead of opening a browser",
    )

    subparsers.add_parser("status", help="Show stored credential status")

    chat = subparsers.add_parser("chat", help="Chat with a running relay")
    chat.add_argument("--url", default=f"http://localhost:{settings.PORT}", help="Relay base URL")
    chat.add_argument("--conversation", default=None, help="Conversation id")
    chat.add_argument("--message", "-m", default=None, help="Send one message and exit")

    return parser


def resolve_options(args: argparse.Namespace) -> argparse.Namespace:
    """Fill in paths and flags derived from config plus CLI overrides"""
    data_dir = Path(args.data_dir).expanduser() if args.data_dir else Path(settings.DATA_DIR)
    if args.data_dir:
        args.token_file = str(data_dir / "token.json")
        args.database_file = str(data_dir / "conversations.db")
    else:
        args.token_file = settings.TOKEN_FILE
        args.database_file = settings.DATABASE_FILE
    args.log_level = settings.LOG_LEVEL

    if args.command == "serve":
        # Config default, then --debug, then an explicit flag
        if args.stream_trace is None:
            args.stream_trace = settings.STREAM_TRACE_ENABLED or args.debug
        settings.STREAM_TRACE_ENABLED = args.stream_trace
    return args


def main(argv=None) -> int:
    """Entry point for the CLI"""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 2
    options = resolve_options(args)

    setup_logging(options.debug, options.log_level)

    try:
        if options.command == "chat":
            return asyncio.run(run_chat(console, options.url, options.conversation, options.message))

        credentials = CredentialStore(options.token_file)
        if options.command == "login":
            return 0 if login(credentials, console, options.headless) else 1
        if options.command == "status":
            show_token_status(credentials, console)
            return 0
        return run_server(options, credentials, console)

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        console.print("Goodbye!")
        return 130
    except Exception as e:
        logger.debug("Fatal error", exc_info=True)
        console.print(f"\n[red]Fatal error:[/red] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
