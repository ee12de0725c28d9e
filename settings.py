from pathlib import Path
from config.loader import get_config_loader

# Get the config loader instance
config = get_config_loader()

# Server configuration
PORT = config.get("PORT", 8080)
LOG_LEVEL = config.get("LOG_LEVEL", "info")
BIND_ADDRESS = config.get("BIND_ADDRESS", "0.0.0.0")

# Conversation defaults
MODEL = config.get("MODEL", "gpt-4o")
SYSTEM_PROMPT = config.get("SYSTEM_PROMPT", "You are a helpful assistant running on a Raspberry Pi.")
CONVERSATION_ID = config.get("CONVERSATION_ID", "default")

# Upstream backend: "responses" (ChatGPT OAuth scoped) or "chat_completions" (legacy)
UPSTREAM_BACKEND = config.get("UPSTREAM_BACKEND", "responses")
CHATGPT_RESPONSES_ENDPOINT = "https://chatgpt.com/backend-api/codex/responses"
OPENAI_CHAT_COMPLETIONS_ENDPOINT = config.get(
    "OPENAI_CHAT_COMPLETIONS_ENDPOINT", "https://api.openai.com/v1/chat/completions"
)

# Timeout configuration
# Connection timeout: Time to establish TCP connection
CONNECT_TIMEOUT = config.get("CONNECT_TIMEOUT", 10.0)
# Read timeout: Time between receiving data chunks, detects stalled streams
READ_TIMEOUT = config.get("READ_TIMEOUT", 60.0)
# Stream timeout: Total timeout for a streaming completion
STREAM_TIMEOUT = config.get("STREAM_TIMEOUT", 600.0)
# OAuth timeout: token endpoint and device-auth calls
OAUTH_REQUEST_TIMEOUT = config.get("OAUTH_REQUEST_TIMEOUT", 30.0)

# Persistent state
DATA_DIR = config.get("DATA_DIR", str(Path.home() / ".pi-agent"))
TOKEN_FILE = str(Path(DATA_DIR) / "token.json")
DATABASE_FILE = str(Path(DATA_DIR) / "conversations.db")

# Use the device-code flow instead of the browser flow when no display is available
HEADLESS = config.get("HEADLESS", False)

# Persist accumulated assistant text when the upstream stream fails midway
PERSIST_PARTIAL_REPLIES = config.get("PERSIST_PARTIAL_REPLIES", False)

# Stream tracing / debugging
STREAM_TRACE_ENABLED = config.get("STREAM_TRACE_ENABLED", False)
STREAM_TRACE_DIR = config.get("STREAM_TRACE_DIR", "stream_traces")
STREAM_TRACE_MAX_BYTES = config.get("STREAM_TRACE_MAX_BYTES", 262144)
