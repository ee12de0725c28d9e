"""
Device code authorization flow for headless environments.

The operator authorizes on another device using a displayed user code while
this process polls the provider until the authorization completes.
"""
import asyncio
import json
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

import httpx

from errors import AuthError, DecodeError, TransportError
from settings import OAUTH_REQUEST_TIMEOUT
from .constants import (
    CLIENT_ID,
    DEVICE_AUTH_URL,
    DEVICE_TOKEN_URL,
    DEVICE_VERIFY_URL,
    DEVICE_POLL_MARGIN,
)
from .models import Credential
from .token_exchange import credential_from_token_response, exchange_code_for_tokens

logger = logging.getLogger(__name__)


def parse_json_int(value: Any, field: str) -> int:
    """Accept an integer sent either as a JSON number or a numeric string"""
    if isinstance(value, bool) or value is None:
        raise DecodeError(f"invalid device auth {field}: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise DecodeError(f"invalid device auth {field}: {value!r}")


async def _post_json(client: httpx.AsyncClient, url: str, body: Dict[str, str], action: str) -> httpx.Response:
    try:
        return await client.post(url, json=body, headers={"Content-Type": "application/json"})
    except httpx.HTTPError as e:
        raise TransportError(f"{action} request: {e}") from e


def _decode(response: httpx.Response, action: str) -> Dict[str, Any]:
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError) as e:
        raise DecodeError(f"decoding {action} response: {e}") from e
    if not isinstance(data, dict):
        raise DecodeError(f"decoding {action} response: expected an object")
    return data


async def request_user_code(client: httpx.AsyncClient) -> Tuple[str, str, int, int]:
    """
    Request a device/user code.

    Returns:
        Tuple of (device_auth_id, user_code, interval, expires_in)
    """
    response = await _post_json(client, DEVICE_AUTH_URL, {"client_id": CLIENT_ID}, "device auth")

    if response.status_code != 200:
        message = ""
        try:
            error = response.json().get("error")
            if isinstance(error, dict):
                message = error.get("message") or ""
        except (ValueError, AttributeError):
            pass
        if message:
            raise AuthError(f"device auth request failed: HTTP {response.status_code} ({message})")
        raise AuthError(f"device auth request failed: HTTP {response.status_code}")

    data = _decode(response, "device auth")
    device_auth_id = data.get("device_auth_id")
    user_code = data.get("user_code")
    if not device_auth_id or not user_code:
        raise DecodeError("decoding device auth response: missing device_auth_id or user_code")

    return (
        device_auth_id,
        user_code,
        parse_json_int(data.get("interval"), "interval"),
        parse_json_int(data.get("expires_in"), "expires_in"),
    )


async def poll_device_token(client: httpx.AsyncClient, device_auth_id: str) -> Optional[Tuple[str, str]]:
    """
    Poll the device token endpoint once.

    Returns:
        (authorization_code, code_verifier) once authorized, None while pending

    Raises:
        AuthError: the provider reported an error other than pending
    """
    response = await _post_json(
        client,
        DEVICE_TOKEN_URL,
        {"client_id": CLIENT_ID, "device_auth_id": device_auth_id},
        "device token",
    )
    data = _decode(response, "device token")

    error = data.get("error")
    code = data.get("authorization_code")
    if error == "authorization_pending" or (not code and not error):
        return None
    if error:
        raise AuthError(f"device auth error: {error}")

    return code, data.get("code_verifier") or ""


async def authenticate_device(
    notify: Callable[[str], None] = print,
    poll_margin: float = DEVICE_POLL_MARGIN,
) -> Credential:
    """
    Run the device code authorization flow.

    Args:
        notify: Sink for operator-facing messages
        poll_margin: Seconds added to the provider's poll interval

    Returns:
        Credential

    Raises:
        AuthError: provider error or the device code expired
        TransportError: provider unreachable
        DecodeError: malformed provider response
    """
    async with httpx.AsyncClient(timeout=OAUTH_REQUEST_TIMEOUT) as client:
        device_auth_id, user_code, interval, expires_in = await request_user_code(client)

        notify("")
        notify("  To authenticate, visit:")
        notify(f"    {DEVICE_VERIFY_URL}")
        notify("")
        notify(f"  And enter code: {user_code}")
        notify("")
        notify("  Waiting for authentication...")

        poll_interval = interval + poll_margin
        deadline = time.monotonic() + expires_in

        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0 or poll_interval > remaining:
                raise AuthError("device authentication timed out")
            await asyncio.sleep(poll_interval)

            result = await poll_device_token(client, device_auth_id)
            if result is None:
                logger.debug("Device authorization pending")
                continue

            code, code_verifier = result
            break

    # Exchange with the server-provided code verifier
    tokens = await exchange_code_for_tokens(code, code_verifier)
    credential = credential_from_token_response(tokens)
    logger.info("Device authentication completed")
    return credential
