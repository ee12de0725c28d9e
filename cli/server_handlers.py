"""Server start handler for CLI"""

import logging

import settings
from conversations import ConversationStore
from openai_oauth import CredentialStore
from providers import create_provider
from proxy import CompletionOrchestrator, RelayServer, create_app
from cli.auth_handlers import ensure_credentials

logger = logging.getLogger(__name__)


def build_app(options, credentials: CredentialStore):
    """
    Wire the provider, conversation store and orchestrator into an app

    Args:
        options: Parsed CLI options (see cli.main)
        credentials: CredentialStore instance
    """
    provider = create_provider(options.backend)
    conversations = ConversationStore(options.database_file)
    orchestrator = CompletionOrchestrator(
        credentials=credentials,
        conversations=conversations,
        provider=provider,
        model=options.model,
        system_prompt=options.system_prompt,
        default_conversation_id=options.conversation,
        persist_partial_replies=settings.PERSIST_PARTIAL_REPLIES,
        trace_enabled=options.stream_trace,
    )
    logger.debug(f"Upstream backend: {provider.name} ({provider.endpoint}), model: {options.model}")
    return create_app(orchestrator, credentials)


def run_server(options, credentials: CredentialStore, console) -> int:
    """
    Start the relay server, authenticating first when needed (blocking)

    Returns:
        Process exit code
    """
    if not ensure_credentials(credentials, console, options.headless):
        console.print("[red]ERROR:[/red] Cannot start without credentials")
        return 1

    app = build_app(options, credentials)
    console.print(f"[green]Relay listening on http://{options.bind}:{options.port}[/green]")
    server = RelayServer(
        app,
        bind_address=options.bind,
        port=options.port,
        log_level=options.log_level,
        stream_trace_enabled=options.stream_trace,
    )
    server.run()
    return 0
