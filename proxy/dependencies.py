"""
FastAPI dependency getters for the shared application objects.
"""
from fastapi import Request

from openai_oauth import CredentialStore
from .handlers.chat_handler import CompletionOrchestrator


def get_orchestrator(request: Request) -> CompletionOrchestrator:
    return request.app.state.orchestrator


def get_credentials(request: Request) -> CredentialStore:
    return request.app.state.credentials
