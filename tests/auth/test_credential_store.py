"""
Tests for the credential store.

Covers token reuse, the wallet exchange and forced re-authentication.
"""

import json

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from rampwatch.auth import AuthError, Credential, CredentialStore
from rampwatch.providers import RampApiProvider
from rampwatch.storage import AUTH_TOKEN_KEY, WALLET_ADDRESS_KEY, LocalStorage


# =============================================================================
# Fixtures
# =============================================================================

def make_provider(handler):
    return RampApiProvider(base_url="https://api.test/api", transport=httpx.MockTransport(handler))


class ExchangeRecorder:
    """MockTransport handler that issues numbered tokens."""

    def __init__(self, status_code=200):
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"success": False, "message": "nope"})
        return httpx.Response(200, json={"success": True, "data": {"token": f"tok-{len(self.requests)}"}})


# =============================================================================
# get_or_create
# =============================================================================

class TestGetOrCreate:

    @pytest.mark.asyncio
    async def test_reuses_stored_token_without_network(self):
        """A stored token is handed back as-is."""
        storage = LocalStorage()
        storage.update({AUTH_TOKEN_KEY: "stored", WALLET_ADDRESS_KEY: "0xabc"})
        provider = MagicMock()
        provider.direct_auth = AsyncMock()

        credential = await CredentialStore(storage, provider).get_or_create("0xother")

        assert credential == Credential(value="stored", wallet_address="0xabc")
        provider.direct_auth.assert_not_called()

    @pytest.mark.asyncio
    async def test_exchanges_wallet_once_and_persists(self):
        recorder = ExchangeRecorder()
        storage = LocalStorage()
        store = CredentialStore(storage, make_provider(recorder))

        first = await store.get_or_create("0xabc")
        second = await store.get_or_create("0xabc")

        assert first.value == "tok-1"
        assert second.value == "tok-1"
        assert len(recorder.requests) == 1
        request = recorder.requests[0]
        assert request.url.path == "/api/ramp/auth/direct-auth"
        assert json.loads(request.content) == {"walletAddress": "0xabc"}
        assert storage.get(AUTH_TOKEN_KEY) == "tok-1"
        assert storage.get(WALLET_ADDRESS_KEY) == "0xabc"

    @pytest.mark.asyncio
    async def test_missing_token_and_wallet_raises(self):
        provider = MagicMock()
        provider.direct_auth = AsyncMock()

        with pytest.raises(AuthError) as exc_info:
            await CredentialStore(LocalStorage(), provider).get_or_create()

        assert exc_info.value.context.recoverable is False
        provider.direct_auth.assert_not_called()

    @pytest.mark.asyncio
    async def test_rejected_exchange_raises_auth_error(self):
        storage = LocalStorage()
        store = CredentialStore(storage, make_provider(ExchangeRecorder(status_code=500)))

        with pytest.raises(AuthError) as exc_info:
            await store.get_or_create("0xabc")

        assert exc_info.value.wallet_address == "0xabc"
        assert storage.get(AUTH_TOKEN_KEY) is None

    @pytest.mark.asyncio
    async def test_unsuccessful_body_raises_auth_error(self):
        def handler(request):
            return httpx.Response(200, json={"success": False, "message": "Wallet blocked"})

        with pytest.raises(AuthError, match="Wallet blocked"):
            await CredentialStore(LocalStorage(), make_provider(handler)).get_or_create("0xabc")


# =============================================================================
# reauthenticate / clear
# =============================================================================

class TestReauthenticate:

    @pytest.mark.asyncio
    async def test_replaces_stored_token(self):
        recorder = ExchangeRecorder()
        storage = LocalStorage()
        storage.update({AUTH_TOKEN_KEY: "stale", WALLET_ADDRESS_KEY: "0xabc"})
        store = CredentialStore(storage, make_provider(recorder))

        credential = await store.reauthenticate()

        assert credential.value == "tok-1"
        assert storage.get(AUTH_TOKEN_KEY) == "tok-1"
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_without_wallet_raises(self):
        storage = LocalStorage()
        storage.set(AUTH_TOKEN_KEY, "stale")
        store = CredentialStore(storage, make_provider(ExchangeRecorder()))

        with pytest.raises(AuthError):
            await store.reauthenticate()

    def test_clear_forgets_token_and_wallet(self):
        storage = LocalStorage()
        storage.update({AUTH_TOKEN_KEY: "tok", WALLET_ADDRESS_KEY: "0xabc"})
        store = CredentialStore(storage, MagicMock())

        store.clear()

        assert store.get_cached() is None
        assert WALLET_ADDRESS_KEY not in storage

    def test_credential_repr_hides_token(self):
        credential = Credential(value="secret-token", wallet_address="0xabc")

        assert "secret-token" not in repr(credential)
        assert credential.authorization_header == "Bearer secret-token"
