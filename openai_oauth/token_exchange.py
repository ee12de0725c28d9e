"""
OpenAI OAuth token exchange (from openai/codex CLI)
"""
import json
import logging
import time
from typing import Any, Dict, Optional

import httpx

from errors import AuthError, DecodeError, ReauthenticationRequired, TransportError
from settings import OAUTH_REQUEST_TIMEOUT
from .constants import TOKEN_URL, CLIENT_ID, REDIRECT_URI
from .jwt_utils import resolve_account_id
from .models import Credential, TokenResponse

logger = logging.getLogger(__name__)


def _provider_error(response: httpx.Response) -> Dict[str, str]:
    """Best-effort extraction of {error, error_description} from an error body"""
    try:
        payload = response.json()
    except ValueError:
        return {}
    if not isinstance(payload, dict):
        return {}
    return {
        "error": str(payload.get("error") or ""),
        "error_description": str(payload.get("error_description") or ""),
    }


def _parse_token_response(response: httpx.Response, fallback_refresh_token: str = "") -> TokenResponse:
    """Decode a successful token endpoint response"""
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError) as e:
        raise DecodeError(f"decoding token response: {e}") from e

    if not isinstance(data, dict) or not data.get("access_token"):
        raise DecodeError("decoding token response: missing access_token")

    try:
        expires_in = int(data.get("expires_in") or 0)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"decoding token response: invalid expires_in {data.get('expires_in')!r}") from e

    return TokenResponse(
        access_token=data["access_token"],
        # May not return new refresh token
        refresh_token=data.get("refresh_token") or fallback_refresh_token,
        expires_in=expires_in,
        id_token=data.get("id_token") or "",
        token_type=data.get("token_type") or "Bearer",
    )


async def _post_token_endpoint(form: Dict[str, Any], action: str) -> httpx.Response:
    try:
        async with httpx.AsyncClient(timeout=OAUTH_REQUEST_TIMEOUT) as client:
            return await client.post(
                TOKEN_URL,
                data=form,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                },
            )
    except httpx.HTTPError as e:
        raise TransportError(f"{action} request: {e}") from e


async def exchange_code_for_tokens(
    code: str,
    code_verifier: str,
    redirect_uri: str = REDIRECT_URI,
) -> TokenResponse:
    """
    Exchange authorization code for access and refresh tokens.

    Args:
        code: Authorization code from callback or device poll
        code_verifier: PKCE code verifier
        redirect_uri: OAuth redirect URI

    Returns:
        TokenResponse

    Raises:
        AuthError: the provider rejected the code
        TransportError: the token endpoint could not be reached
        DecodeError: the provider returned a malformed response
    """
    response = await _post_token_endpoint(
        {
            "grant_type": "authorization_code",
            "client_id": CLIENT_ID,
            "code": code,
            "code_verifier": code_verifier,
            "redirect_uri": redirect_uri,
        },
        "token exchange",
    )

    if response.status_code != 200:
        logger.error(f"Token exchange failed: {response.status_code}")
        err = _provider_error(response)
        if err.get("error_description"):
            raise AuthError(f"token exchange: {err['error']} - {err['error_description']}")
        raise AuthError(f"token exchange: HTTP {response.status_code}")

    tokens = _parse_token_response(response)
    logger.info("Exchanged authorization code for tokens")
    return tokens


async def refresh_access_token(refresh_token: str) -> TokenResponse:
    """
    Refresh access token using refresh token.

    The returned refresh_token falls back to the one supplied when the
    provider does not rotate it.

    Args:
        refresh_token: OAuth refresh token

    Returns:
        TokenResponse

    Raises:
        ReauthenticationRequired: refresh token expired or revoked
        AuthError: any other rejection
        TransportError: the token endpoint could not be reached
        DecodeError: the provider returned a malformed response
    """
    response = await _post_token_endpoint(
        {
            "grant_type": "refresh_token",
            "client_id": CLIENT_ID,
            "refresh_token": refresh_token,
        },
        "token refresh",
    )

    if response.status_code != 200:
        logger.error(f"Token refresh failed: {response.status_code}")
        err = _provider_error(response)
        if err.get("error") == "invalid_grant" or "revoked" in err.get("error_description", ""):
            raise ReauthenticationRequired("refresh token expired or revoked: please re-authenticate")
        if err.get("error_description"):
            raise AuthError(f"token refresh: {err['error']} - {err['error_description']}")
        raise AuthError(f"token refresh: HTTP {response.status_code}")

    return _parse_token_response(response, fallback_refresh_token=refresh_token)


def credential_from_token_response(tokens: TokenResponse, now: Optional[float] = None) -> Credential:
    """Build a Credential from a fresh code exchange"""
    if now is None:
        now = time.time()
    if not tokens.refresh_token:
        raise DecodeError("decoding token response: missing refresh_token")
    return Credential(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_at=int(now) + tokens.expires_in,
        account_id=resolve_account_id(tokens.id_token, tokens.access_token),
    )
