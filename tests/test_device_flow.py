import json

import httpx
import pytest

from errors import AuthError, DecodeError
from openai_oauth import DEVICE_AUTH_URL, DEVICE_TOKEN_URL, TOKEN_URL, authenticate_device
from openai_oauth.device_flow import parse_json_int, request_user_code

from tests.conftest import make_jwt

def pending():
    return httpx.Response(403, json={"error": "authorization_pending"})


@pytest.fixture
def user_code_route(upstream):
    return upstream.post(DEVICE_AUTH_URL).mock(return_value=httpx.Response(200, json={
        "device_auth_id": "dev-1",
        "user_code": "ABCD-EFGH",
        "interval": "0",
        "expires_in": 60,
    }))


@pytest.fixture
def token_route(upstream):
    return upstream.post(TOKEN_URL).mock(return_value=httpx.Response(200, json={
        "access_token": "at",
        "refresh_token": "rt",
        "id_token": make_jwt({"chatgpt_account_id": "acct"}),
        "expires_in": 3600,
    }))


@pytest.mark.parametrize("value,expected", [(5, 5), ("5", 5), (" 12 ", 12)])
def test_parse_json_int_accepts_numbers_and_numeric_strings(value, expected):
    assert parse_json_int(value, "interval") == expected


@pytest.mark.parametrize("value", [None, True, "soon", 1.5, []])
def test_parse_json_int_rejects_other_values(value):
    with pytest.raises(DecodeError):
        parse_json_int(value, "interval")


async def test_pending_polls_are_retried_until_authorized(upstream, user_code_route, token_route):
    poll_route = upstream.post(DEVICE_TOKEN_URL).mock(side_effect=[
        pending(),
        httpx.Response(200, json={}),
        httpx.Response(200, json={"authorization_code": "dev-code", "code_verifier": "server-verifier"}),
    ])
    messages = []

    credential = await authenticate_device(notify=messages.append, poll_margin=0)

    assert credential.access_token == "at"
    assert credential.account_id == "acct"
    assert poll_route.call_count == 3
    assert json.loads(poll_route.calls.last.request.content) == {
        "client_id": "app_EMoamEEZ73f0CkXaXp7hrann",
        "device_auth_id": "dev-1",
    }
    exchange_form = token_route.calls.last.request.content.decode()
    assert "code=dev-code" in exchange_form
    assert "code_verifier=server-verifier" in exchange_form
    assert any("ABCD-EFGH" in m for m in messages)
    assert any("https://auth.openai.com/codex/device" in m for m in messages)


async def test_provider_error_stops_polling(upstream, user_code_route, token_route):
    upstream.post(DEVICE_TOKEN_URL).mock(return_value=httpx.Response(400, json={"error": "access_denied"}))

    with pytest.raises(AuthError, match="access_denied"):
        await authenticate_device(notify=lambda _: None, poll_margin=0)
    assert not token_route.called


async def test_expired_device_code_times_out(upstream, token_route):
    upstream.post(DEVICE_AUTH_URL).mock(return_value=httpx.Response(200, json={
        "device_auth_id": "dev-1",
        "user_code": "CODE",
        "interval": 5,
        "expires_in": 0,
    }))
    poll_route = upstream.post(DEVICE_TOKEN_URL).mock(side_effect=lambda request: pending())

    with pytest.raises(AuthError, match="timed out"):
        await authenticate_device(notify=lambda _: None)
    assert not poll_route.called


async def test_user_code_failure_includes_provider_message(upstream):
    upstream.post(DEVICE_AUTH_URL).mock(return_value=httpx.Response(
        400, json={"error": {"message": "device flow disabled"}}
    ))

    async with httpx.AsyncClient() as client:
        with pytest.raises(AuthError, match="device flow disabled"):
            await request_user_code(client)


async def test_user_code_bad_interval_is_decode_error(upstream):
    upstream.post(DEVICE_AUTH_URL).mock(return_value=httpx.Response(200, json={
        "device_auth_id": "dev-1",
        "user_code": "CODE",
        "interval": "fast",
        "expires_in": 60,
    }))

    async with httpx.AsyncClient() as client:
        with pytest.raises(DecodeError):
            await request_user_code(client)
