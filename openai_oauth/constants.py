"""
OpenAI OAuth constants (from openai/codex CLI)
"""

# OAuth Configuration
CLIENT_ID = "app_EMoamEEZ73f0CkXaXp7hrann"
OAUTH_ISSUER = "https://auth.openai.com"
AUTHORIZE_URL = f"{OAUTH_ISSUER}/oauth/authorize"
TOKEN_URL = f"{OAUTH_ISSUER}/oauth/token"
REDIRECT_URI = "http://localhost:1455/auth/callback"
SCOPE = "openid profile email offline_access"
ORIGINATOR = "pi"

# Device-code flow (headless)
DEVICE_AUTH_URL = f"{OAUTH_ISSUER}/api/accounts/deviceauth/usercode"
DEVICE_TOKEN_URL = f"{OAUTH_ISSUER}/api/accounts/deviceauth/token"
DEVICE_VERIFY_URL = f"{OAUTH_ISSUER}/codex/device"
DEVICE_POLL_MARGIN = 3  # seconds added to the provider interval

# JWT claims carrying the ChatGPT account ID
JWT_CLAIM_PATH = "https://api.openai.com/auth"
CHATGPT_ACCOUNT_ID_CLAIM = "chatgpt_account_id"

# OAuth callback server
OAUTH_CALLBACK_PORT = 1455
OAUTH_CALLBACK_PATH = "/auth/callback"
OAUTH_CALLBACK_TIMEOUT = 300

# Access tokens are refreshed this many seconds before they expire
REFRESH_MARGIN_SECONDS = 300
