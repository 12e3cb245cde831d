"""
Tests for on-ramp order creation.
"""

import json
from decimal import Decimal

import httpx
import pytest

from rampwatch.auth import AuthError
from rampwatch.config import Settings
from rampwatch.core.payment import RampContext, start_onramp
from rampwatch.providers import RampApiProvider
from rampwatch.storage import (
    AUTH_TOKEN_KEY,
    CURRENT_ORDER_ID_KEY,
    ORDER_STATUS_KEY,
    LocalStorage,
)


# =============================================================================
# Fixtures
# =============================================================================

def make_context(handler, storage=None):
    provider = RampApiProvider(base_url="https://api.test/api", transport=httpx.MockTransport(handler))
    return RampContext.create(Settings(_env_file=None), storage=storage or LocalStorage(), provider=provider)


class OnrampBackend:

    def __init__(self):
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if request.url.path == "/api/ramp/auth/direct-auth":
            return httpx.Response(200, json={"success": True, "data": {"token": "tok"}})
        return httpx.Response(200, json={
            "success": True,
            "data": {
                "order": {"_id": "ord_9", "status": "pending", "sourceAmount": 5000},
                "checkout": {"checkoutUrl": "https://pay.test/x", "paymentReference": "pay_9"},
            },
        })


# =============================================================================
# start_onramp
# =============================================================================

class TestStartOnramp:

    @pytest.mark.asyncio
    async def test_creates_order_and_remembers_it(self):
        backend = OnrampBackend()
        context = make_context(backend)

        result = await start_onramp(context, Decimal("5000"), "usdc", "0xrecipient")

        assert result.order.id == "ord_9"
        assert result.checkout.payment_reference == "pay_9"
        assert context.storage.get(CURRENT_ORDER_ID_KEY) == "ord_9"
        assert context.storage.get(ORDER_STATUS_KEY) == "pending"
        assert context.storage.get(AUTH_TOKEN_KEY) == "tok"

        auth_request, create_request = backend.requests
        assert json.loads(auth_request.content) == {"walletAddress": "0xrecipient"}
        assert json.loads(create_request.content)["targetCurrency"] == "USDC"
        assert create_request.headers["authorization"] == "Bearer tok"

    @pytest.mark.asyncio
    async def test_rejects_non_positive_amount(self):
        backend = OnrampBackend()

        with pytest.raises(ValueError):
            await start_onramp(make_context(backend), Decimal("0"), "USDC", "0xrecipient")

        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_failed_auth_creates_nothing(self):
        def handler(request):
            return httpx.Response(500, json={"message": "down"})

        context = make_context(handler)

        with pytest.raises(AuthError):
            await start_onramp(context, Decimal("10"), "USDC", "0xrecipient")

        assert context.storage.get(CURRENT_ORDER_ID_KEY) is None
