"""
Upstream completion providers.

Two wire schemas sit behind one streaming interface; the backend is chosen
once at startup.
"""
from typing import Dict, Optional, Type

import httpx

import settings
from providers.base_provider import BaseProvider, StreamDelta
from providers.chatgpt_provider import ChatGPTProvider
from providers.openai_provider import OpenAIProvider

PROVIDERS: Dict[str, Type[BaseProvider]] = {
    ChatGPTProvider.name: ChatGPTProvider,
    OpenAIProvider.name: OpenAIProvider,
}

__all__ = [
    'BaseProvider',
    'StreamDelta',
    'ChatGPTProvider',
    'OpenAIProvider',
    'PROVIDERS',
    'create_provider',
]


def default_endpoint(backend: str) -> str:
    if backend == ChatGPTProvider.name:
        return settings.CHATGPT_RESPONSES_ENDPOINT
    return settings.OPENAI_CHAT_COMPLETIONS_ENDPOINT


def create_provider(
    backend: str,
    endpoint: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> BaseProvider:
    """Create the provider for a backend name

    Args:
        backend: "responses" or "chat_completions"
        endpoint: Override for the upstream URL
        client: Optional shared HTTP client

    Raises:
        ValueError: unknown backend name
    """
    try:
        provider_cls = PROVIDERS[backend]
    except KeyError:
        raise ValueError(
            f"Unknown upstream backend {backend!r}; expected one of {sorted(PROVIDERS)}"
        ) from None
    return provider_cls(endpoint or default_endpoint(backend), client=client)
