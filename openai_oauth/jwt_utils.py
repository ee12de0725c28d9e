"""
JWT token parsing and ChatGPT account ID extraction (from openai/codex CLI)
"""
import base64
import binascii
import json
import logging
from typing import Dict, Optional, Any

from .constants import JWT_CLAIM_PATH, CHATGPT_ACCOUNT_ID_CLAIM

logger = logging.getLogger(__name__)


def decode_jwt(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode JWT token without verification.

    Note: This only decodes the payload, does not verify signature.

    Args:
        token: JWT token

    Returns:
        Decoded JWT payload as dictionary, or None if invalid
    """
    if not token:
        return None

    # JWT structure: header.payload.signature
    parts = token.split(".")
    if len(parts) != 3:
        logger.debug(f"Invalid JWT format: expected 3 parts, got {len(parts)}")
        return None

    # JWT uses base64url without padding
    payload = parts[1] + "=" * (-len(parts[1]) % 4)

    try:
        claims = json.loads(base64.urlsafe_b64decode(payload).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        logger.debug(f"Error decoding JWT: {e}")
        return None

    return claims if isinstance(claims, dict) else None


def extract_chatgpt_account_id(token: str) -> str:
    """
    Extract ChatGPT account ID from a JWT.

    Takes the first of:
    - a top-level chatgpt_account_id claim
    - token[JWT_CLAIM_PATH][CHATGPT_ACCOUNT_ID_CLAIM]
    - the id of the first entry in the organizations claim

    Args:
        token: OAuth ID or access token (JWT format)

    Returns:
        ChatGPT account ID, or an empty string if none could be found
    """
    claims = decode_jwt(token)
    if not claims:
        return ""

    account_id = claims.get(CHATGPT_ACCOUNT_ID_CLAIM)
    if isinstance(account_id, str) and account_id:
        return account_id

    auth_claims = claims.get(JWT_CLAIM_PATH)
    if isinstance(auth_claims, dict):
        account_id = auth_claims.get(CHATGPT_ACCOUNT_ID_CLAIM)
        if isinstance(account_id, str) and account_id:
            return account_id

    organizations = claims.get("organizations")
    if isinstance(organizations, list) and organizations:
        first = organizations[0]
        if isinstance(first, dict) and isinstance(first.get("id"), str):
            return first["id"]

    return ""


def resolve_account_id(id_token: Optional[str], access_token: Optional[str]) -> str:
    """Account ID from the ID token, falling back to the access token"""
    account_id = extract_chatgpt_account_id(id_token) if id_token else ""
    if not account_id and access_token:
        account_id = extract_chatgpt_account_id(access_token)
    return account_id

