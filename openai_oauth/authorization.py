"""
OpenAI OAuth authorization flow with PKCE (from openai/codex CLI)
"""
import base64
import hashlib
import secrets
from typing import NamedTuple
from urllib.parse import urlencode

from .constants import (
    CLIENT_ID,
    AUTHORIZE_URL,
    REDIRECT_URI,
    SCOPE,
    ORIGINATOR,
)


class PKCEPair(NamedTuple):
    """PKCE code verifier and challenge pair"""
    verifier: str
    challenge: str


class AuthorizationFlow(NamedTuple):
    """PKCE session state for one authentication attempt"""
    pkce: PKCEPair
    state: str
    url: str


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def generate_code_challenge(verifier: str) -> str:
    """SHA-256 of the verifier, base64url encoded without padding"""
    return _b64url(hashlib.sha256(verifier.encode("ascii")).digest())


def generate_pkce() -> PKCEPair:
    """
    Generate PKCE code verifier and challenge.

    RFC 7636 PKCE standard:
    - Verifier: 32 random bytes, base64url encoded without padding (43 chars)
    - Challenge: SHA-256 hash of verifier, base64url encoded

    Returns:
        PKCEPair: Tuple of (verifier, challenge)
    """
    verifier = _b64url(secrets.token_bytes(32))
    return PKCEPair(verifier=verifier, challenge=generate_code_challenge(verifier))


def create_state() -> str:
    """
    Generate random state parameter for CSRF protection.

    Returns:
        str: 16 random bytes, hex encoded
    """
    return secrets.token_hex(16)


def build_authorization_url(code_challenge: str, state: str, redirect_uri: str = REDIRECT_URI) -> str:
    """Build the authorization endpoint URL for a PKCE session"""
    params = {
        "response_type": "code",
        "client_id": CLIENT_ID,
        "redirect_uri": redirect_uri,
        "scope": SCOPE,
        "state": state,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
        # OpenAI Codex CLI parameters (required for token exchange)
        "id_token_add_organizations": "true",
        "codex_cli_simplified_flow": "true",
        "originator": ORIGINATOR,
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def create_authorization_flow(redirect_uri: str = REDIRECT_URI) -> AuthorizationFlow:
    """
    Create OpenAI OAuth authorization flow.

    Generates PKCE pair, state, and authorization URL with all required parameters.

    Returns:
        AuthorizationFlow: Tuple of (pkce, state, url)
    """
    pkce = generate_pkce()
    state = create_state()
    url = build_authorization_url(pkce.challenge, state, redirect_uri)
    return AuthorizationFlow(pkce=pkce, state=state, url=url)
