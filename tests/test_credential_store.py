import asyncio
import json
import os
import stat

import pytest

from errors import AuthError, ReauthenticationRequired, StoreError
from openai_oauth import Credential, CredentialFile, CredentialStore, TokenResponse

from tests.conftest import NOW


def expiring_credential(expires_at=NOW + 100):
    return Credential(access_token="old-at", refresh_token="old-rt", expires_at=expires_at, account_id="acct")


class CountingRefresher:
    def __init__(self, response=None, error=None):
        self.calls = []
        self.response = response or TokenResponse(access_token="new-at", refresh_token="", expires_in=3600)
        self.error = error

    async def __call__(self, refresh_token):
        self.calls.append(refresh_token)
        await asyncio.sleep(0.01)
        if self.error:
            raise self.error
        return self.response


async def make_store(token_file, clock, refresher, credential=None):
    store = CredentialStore(token_file, refresher=refresher, clock=clock)
    if credential is not None:
        await store.save(credential)
    return store


def test_is_expired_uses_five_minute_margin():
    credential = Credential("at", "rt", expires_at=NOW + 300)

    assert not credential.is_expired(NOW)
    assert credential.is_expired(NOW + 1)


async def test_fresh_token_is_returned_without_refresh(token_file, clock):
    refresher = CountingRefresher()
    store = await make_store(token_file, clock, refresher, expiring_credential(NOW + 301))

    assert await store.access_token() == "old-at"
    assert refresher.calls == []


async def test_concurrent_callers_share_one_refresh(token_file, clock):
    refresher = CountingRefresher()
    store = await make_store(token_file, clock, refresher, expiring_credential())

    tokens = await asyncio.gather(*(store.access_token() for _ in range(8)))

    assert tokens == ["new-at"] * 8
    assert refresher.calls == ["old-rt"]


def test_store_is_usable_from_successive_event_loops(token_file, clock):
    CredentialFile(token_file).save(expiring_credential())
    refresher = CountingRefresher()
    store = CredentialStore(token_file, refresher=refresher, clock=clock)

    async def burst():
        return await asyncio.gather(*(store.access_token() for _ in range(4)))

    assert asyncio.run(burst()) == ["new-at"] * 4
    clock.now += 3600
    assert asyncio.run(burst()) == ["new-at"] * 4
    assert refresher.calls == ["old-rt", "old-rt"]


async def test_refresh_keeps_refresh_token_and_account_when_not_rotated(token_file, clock):
    store = await make_store(token_file, clock, CountingRefresher(), expiring_credential())

    await store.access_token()

    saved = json.loads(open(token_file).read())
    assert saved == {
        "access_token": "new-at",
        "refresh_token": "old-rt",
        "expires_at": NOW + 3600,
        "account_id": "acct",
    }


async def test_refresh_stores_rotated_refresh_token(token_file, clock):
    refresher = CountingRefresher(TokenResponse(access_token="new-at", refresh_token="new-rt", expires_in=60))
    store = await make_store(token_file, clock, refresher, expiring_credential())

    await store.access_token()

    assert CredentialFile(token_file).load().refresh_token == "new-rt"


async def test_rejected_refresh_leaves_credential_untouched(token_file, clock):
    refresher = CountingRefresher(error=ReauthenticationRequired("revoked"))
    store = await make_store(token_file, clock, refresher, expiring_credential())

    with pytest.raises(ReauthenticationRequired):
        await store.access_token()

    assert CredentialFile(token_file).load() == expiring_credential()
    assert store.has_credentials()


async def test_no_credential_is_auth_error(token_file, clock):
    store = CredentialStore(token_file, refresher=CountingRefresher(), clock=clock)

    assert not store.has_credentials()
    assert store.account_id() == ""
    with pytest.raises(AuthError, match="no credentials"):
        await store.access_token()


async def test_saved_credential_survives_restart(token_file, clock, valid_credential):
    await make_store(token_file, clock, CountingRefresher(), valid_credential)

    reopened = CredentialStore(token_file)

    assert reopened.has_credentials()
    assert reopened.account_id() == "acct-123"
    assert await reopened.access_token() == "access-1"


@pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
async def test_credential_file_is_owner_only(token_file, valid_credential):
    await CredentialStore(token_file).save(valid_credential)

    assert stat.S_IMODE(os.stat(token_file).st_mode) == 0o600
    assert [p for p in os.listdir(os.path.dirname(token_file)) if p.endswith(".tmp")] == []


def test_corrupt_file_means_no_credentials(token_file):
    os.makedirs(os.path.dirname(token_file))
    with open(token_file, "w") as f:
        f.write("{not json")

    assert CredentialStore(token_file).has_credentials() is False


async def test_unwritable_location_is_store_error(tmp_path, valid_credential):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")
    store = CredentialStore(str(blocker / "token.json"))

    with pytest.raises(StoreError):
        await store.save(valid_credential)
    assert not store.has_credentials()


def test_status_never_exposes_secrets(token_file, clock):
    CredentialFile(token_file).save(expiring_credential(NOW + 7200))
    status = CredentialStore(token_file, clock=clock).status()

    assert status["has_tokens"] is True
    assert status["is_expired"] is False
    assert status["needs_refresh"] is False
    assert status["time_until_expiry"] == "2h 0m"
    assert status["account_id"] == "acct"
    assert "old-at" not in json.dumps(status)
    assert "old-rt" not in json.dumps(status)
