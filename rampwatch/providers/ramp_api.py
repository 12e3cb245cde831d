"""Async client for the ramp backend's REST API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import settings


class RampApiProvider:
    """Thin wrapper around the ``/ramp`` endpoints.

    Returns decoded JSON bodies and lets ``httpx`` exceptions propagate;
    callers decide how a failure is classified.
    """

    name = "ramp_api"

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout_s = timeout_s if timeout_s is not None else settings.request_timeout_seconds
        self._transport = transport
        self._logger = logger or logging.getLogger(__name__)

    def _headers(self, token: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "accept": "application/json",
            "content-type": "application/json",
            "user-agent": "rampwatch/0.1",
        }
        if token:
            headers["authorization"] = f"Bearer {token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout_s,
            transport=self._transport,
        ) as client:
            self._logger.debug("%s %s", method, path)
            response = await client.request(method, path, json=json, headers=self._headers(token))
            self._logger.debug("%s %s -> %s", method, path, response.status_code)
            response.raise_for_status()
            return response.json()

    async def direct_auth(self, wallet_address: str) -> Dict[str, Any]:
        """Exchange a wallet address for a bearer token."""

        return await self._request("POST", "/ramp/auth/direct-auth", json={"walletAddress": wallet_address})

    async def payment_status(self, payment_reference: str, token: str) -> Dict[str, Any]:
        """Secure status check; the authoritative reconciliation point."""

        return await self._request(
            "POST",
            "/ramp/payment/status",
            token=token,
            json={"paymentReference": payment_reference},
        )

    async def get_order(self, order_id: str, token: str) -> Dict[str, Any]:
        return await self._request("GET", f"/ramp/orders/{order_id}", token=token)

    async def create_onramp(self, payload: Dict[str, Any], token: str) -> Dict[str, Any]:
        """Create an on-ramp order and its payment checkout.

        `payload` carries ``amount``, ``targetCurrency`` and
        ``recipientWalletAddress``.
        """

        return await self._request("POST", "/ramp/onramp", token=token, json=payload)
