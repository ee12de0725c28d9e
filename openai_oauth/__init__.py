"""
OpenAI OAuth authentication module
"""
from .constants import (
    CLIENT_ID,
    AUTHORIZE_URL,
    TOKEN_URL,
    REDIRECT_URI,
    SCOPE,
    DEVICE_AUTH_URL,
    DEVICE_TOKEN_URL,
    DEVICE_VERIFY_URL,
    OAUTH_CALLBACK_PORT,
    OAUTH_CALLBACK_PATH,
    REFRESH_MARGIN_SECONDS,
)
from .models import Credential, TokenResponse
from .authorization import (
    PKCEPair,
    AuthorizationFlow,
    generate_pkce,
    generate_code_challenge,
    create_state,
    build_authorization_url,
    create_authorization_flow,
)
from .token_exchange import (
    exchange_code_for_tokens,
    refresh_access_token,
    credential_from_token_response,
)
from .jwt_utils import (
    decode_jwt,
    extract_chatgpt_account_id,
    resolve_account_id,
)
from .callback_server import OAuthCallbackServer
from .authenticator import authenticate
from .device_flow import authenticate_device
from .storage import CredentialFile
from .token_manager import CredentialStore

__all__ = [
    # Constants
    "CLIENT_ID",
    "AUTHORIZE_URL",
    "TOKEN_URL",
    "REDIRECT_URI",
    "SCOPE",
    "DEVICE_AUTH_URL",
    "DEVICE_TOKEN_URL",
    "DEVICE_VERIFY_URL",
    "OAUTH_CALLBACK_PORT",
    "OAUTH_CALLBACK_PATH",
    "REFRESH_MARGIN_SECONDS",
    # Models
    "Credential",
    "TokenResponse",
    # Authorization
    "PKCEPair",
    "AuthorizationFlow",
    "generate_pkce",
    "generate_code_challenge",
    "create_state",
    "build_authorization_url",
    "create_authorization_flow",
    # Token Exchange
    "exchange_code_for_tokens",
    "refresh_access_token",
    "credential_from_token_response",
    # JWT Utilities
    "decode_jwt",
    "extract_chatgpt_account_id",
    "resolve_account_id",
    # Flows
    "OAuthCallbackServer",
    "authenticate",
    "authenticate_device",
    # Credential Store
    "CredentialFile",
    "CredentialStore",
]
