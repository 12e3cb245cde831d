"""
Credential store: persists the bearer token tied to a wallet address.

Flow:
1. Look for a persisted token (``authToken`` / ``walletAddress``)
2. If none, exchange the wallet address via POST /ramp/auth/direct-auth
3. Persist the new token and wallet address
4. Hand out the same token until it is explicitly cleared
"""

import logging
from typing import Any, Optional

import httpx

from ..providers.ramp_api import RampApiProvider
from ..storage import AUTH_TOKEN_KEY, WALLET_ADDRESS_KEY, LocalStorage
from .models import AuthError, Credential


class CredentialStore:
    """
    Sole owner and writer of the persisted credential.

    A present token is trusted as-is; nothing here rotates it unless
    ``reauthenticate`` is called explicitly.
    """

    def __init__(
        self,
        storage: LocalStorage,
        provider: RampApiProvider,
        logger: Optional[logging.Logger] = None,
    ):
        self.storage = storage
        self.provider = provider
        self.logger = logger or logging.getLogger(__name__)

    def get_cached(self) -> Optional[Credential]:
        token = self.storage.get(AUTH_TOKEN_KEY)
        if not token:
            return None
        return Credential(value=token, wallet_address=self.storage.get(WALLET_ADDRESS_KEY))

    async def get_or_create(self, wallet_address: Optional[str] = None) -> Credential:
        """
        Return the persisted credential, or exchange ``wallet_address`` for one.

        Raises:
            AuthError: nothing cached and no wallet address, or the exchange failed
        """
        cached = self.get_cached()
        if cached is not None:
            self.logger.info("Using existing auth token from storage")
            return cached

        if not wallet_address:
            self.logger.warning("No auth token available and no wallet address to exchange")
            raise AuthError("Connect a wallet to check this payment")

        return await self._exchange(wallet_address)

    async def reauthenticate(self, wallet_address: Optional[str] = None) -> Credential:
        """Drop the stored token and exchange the wallet address again."""

        address = wallet_address or self.storage.get(WALLET_ADDRESS_KEY)
        if not address:
            raise AuthError("Session expired; reconnect your wallet")
        self.storage.remove(AUTH_TOKEN_KEY)
        return await self._exchange(address)

    def clear(self) -> None:
        self.storage.remove(AUTH_TOKEN_KEY)
        self.storage.remove(WALLET_ADDRESS_KEY)

    async def _exchange(self, wallet_address: str) -> Credential:
        self.logger.info("Creating auth token for wallet %s", wallet_address)
        try:
            body = await self.provider.direct_auth(wallet_address)
        except httpx.HTTPStatusError as exc:
            raise AuthError(
                f"Authentication failed with HTTP {exc.response.status_code}",
                wallet_address=wallet_address,
            ) from exc
        except httpx.RequestError as exc:
            raise AuthError(f"Authentication request failed: {exc}", wallet_address=wallet_address) from exc
        except ValueError as exc:
            raise AuthError("Authentication returned an unreadable response", wallet_address=wallet_address) from exc

        token = _extract_token(body)
        if not token:
            message = body.get("message") if isinstance(body, dict) else None
            raise AuthError(message or "Failed to create authentication token", wallet_address=wallet_address)

        self.storage.update({AUTH_TOKEN_KEY: token, WALLET_ADDRESS_KEY: wallet_address})
        self.logger.info("Stored new auth token for wallet %s", wallet_address)
        return Credential(value=token, wallet_address=wallet_address)


def _extract_token(body: Any) -> Optional[str]:
    if not isinstance(body, dict):
        return None
    if body.get("success") is False:
        return None
    data = body.get("data")
    if isinstance(data, dict) and data.get("token"):
        return str(data["token"])
    if body.get("token"):
        return str(body["token"])
    return None
