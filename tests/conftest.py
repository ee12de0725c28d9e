"""Shared fixtures and helpers for the relay tests."""

import base64
import json
import time

import httpx
import pytest
import pytest_asyncio
import respx

from conversations import ConversationStore
from openai_oauth import Credential, CredentialStore

NOW = 1_700_000_000


def b64url_json(obj) -> str:
    return base64.urlsafe_b64encode(json.dumps(obj).encode()).decode().rstrip("=")


def make_jwt(claims: dict) -> str:
    """Unsigned JWT carrying the given claims"""
    return f"{b64url_json({'alg': 'none', 'typ': 'JWT'})}.{b64url_json(claims)}.signature"


def sse_body(*payloads: str) -> str:
    """SSE body with one ``data:`` line per payload"""
    return "".join(f"data: {p}\n\n" for p in payloads)


def sse_response(*payloads: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        text=sse_body(*payloads),
        headers={"content-type": "text/event-stream"},
    )


class DroppedStream(httpx.AsyncByteStream):
    """Response body that sends some chunks and then loses the connection"""

    def __init__(self, *chunks: bytes):
        self.chunks = chunks

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        raise httpx.ReadError("connection reset by peer")


class FakeClock:
    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def upstream():
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def token_file(tmp_path):
    return str(tmp_path / "data" / "token.json")


@pytest.fixture
def valid_credential():
    return Credential(
        access_token="access-1",
        refresh_token="refresh-1",
        expires_at=int(time.time()) + 3600,
        account_id="acct-123",
    )


@pytest_asyncio.fixture
async def credentials(token_file, valid_credential):
    store = CredentialStore(token_file)
    await store.save(valid_credential)
    return store


@pytest_asyncio.fixture
async def conversation_store(tmp_path):
    store = ConversationStore(str(tmp_path / "data" / "conversations.db"))
    await store.open()
    yield store
    await store.close()


class FullDisk:
    """File stand-in whose writes fail as on a full disk"""

    def __init__(self):
        self.closed = False
        self.writes = 0

    def write(self, text):
        self.writes += 1
        raise OSError(28, "No space left on device")

    def flush(self):
        pass

    def close(self):
        self.closed = True
