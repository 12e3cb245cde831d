"""OrderStatusClient performs reconciliation calls and normalizes responses."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple

import httpx

from ...auth.models import Credential
from ...config import settings
from ...providers.ramp_api import RampApiProvider
from ..recovery.errors import (
    ErrorCategory,
    ErrorKind,
    OrderNotFoundError,
    StatusCheckError,
    classify_http_error,
)
from .models import Order, OrderStatus, PaymentCheckout, PaymentProviderStatus
from .status_mapper import is_paid

# Raised by pydantic (ValidationError is a ValueError) and by numeric/date coercion
MALFORMED = (ValueError, TypeError, OverflowError)


class OrderStatusClient:
    """Two reconciliation paths, tried in priority order by the polling session.

    ``check_by_payment_reference`` hits the secure status endpoint and is the
    authoritative source. ``fetch_by_order_id`` only exists for the case where
    no payment reference was captured.
    """

    def __init__(
        self,
        provider: RampApiProvider,
        *,
        default_source_currency: Optional[str] = None,
        default_target_currency: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._provider = provider
        self._default_source = default_source_currency or settings.default_source_currency
        self._default_target = default_target_currency or settings.default_target_currency
        self._logger = logger or logging.getLogger(__name__)

    async def check_by_payment_reference(
        self,
        reference: str,
        credential: Credential,
    ) -> Tuple[Order, PaymentProviderStatus]:
        try:
            body = await self._provider.payment_status(reference, credential.value)
        except (httpx.HTTPError, ValueError) as exc:
            error = classify_http_error(exc, operation="payment status check")
            self._logger.log(
                logging.INFO if error.is_transient else logging.WARNING,
                "Status check for %s failed (%s): %s",
                reference,
                error.kind.value,
                error.message,
            )
            raise error from exc

        try:
            order, provider_status = self._parse_status(body, reference)
        except MALFORMED as exc:
            raise self._malformed(exc, "payment status check", reference) from exc

        self._logger.info(
            "Reconciled %s: order=%s payment=%s",
            reference,
            order.status.value,
            provider_status.raw_status or "-",
        )
        return order, provider_status

    async def fetch_by_order_id(self, order_id: str, credential: Credential) -> Order:
        try:
            body = await self._provider.get_order(order_id, credential.value)
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                raise OrderNotFoundError(f"Order {order_id} was not found", order_id=order_id) from exc
            raise classify_http_error(exc, operation="order fetch") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise classify_http_error(exc, operation="order fetch") from exc

        try:
            order = self._parse_order(body, order_id)
        except MALFORMED as exc:
            raise self._malformed(exc, "order fetch", order_id) from exc

        self._logger.info("Fetched order %s: %s", order.id, order.status.value)
        return order

    async def create_onramp_order(
        self,
        amount: Decimal,
        target_currency: str,
        recipient_address: str,
        credential: Credential,
    ) -> Tuple[Order, PaymentCheckout]:
        payload = {
            "amount": float(amount),
            "targetCurrency": target_currency,
            "recipientWalletAddress": recipient_address,
        }
        try:
            body = await self._provider.create_onramp(payload, credential.value)
        except (httpx.HTTPError, ValueError) as exc:
            error = classify_http_error(exc, operation="on-ramp creation")
            if error.is_transient:
                # Nothing retries creation on a schedule
                error = StatusCheckError(
                    error.message,
                    kind=ErrorKind.PERMANENT,
                    category=error.category,
                    status_code=error.status_code,
                )
            raise error from exc

        try:
            return self._parse_onramp(body, target_currency)
        except MALFORMED as exc:
            raise self._malformed(exc, "on-ramp creation", recipient_address) from exc

    # ---------------------------
    # Response parsing
    # ---------------------------
    def _parse_status(self, body: Any, reference: str) -> Tuple[Order, PaymentProviderStatus]:
        payload = _unwrap(body, operation="payment status check")
        order_info = _first_dict(payload, "orderInfo", "order")
        payment_info = _first_dict(payload, "paymentInfo", "payment")

        order = normalize_order(
            order_info,
            status=payload.get("orderStatus") or order_info.get("status"),
            fallback_id=str(payload.get("orderId") or reference),
            default_source_currency=self._default_source,
            default_target_currency=self._default_target,
        )
        provider_status = normalize_provider_status(
            payload.get("paymentStatus") or payment_info.get("status"),
            payment_info,
        )
        return order, provider_status

    def _parse_order(self, body: Any, order_id: str) -> Order:
        payload = _unwrap(body, operation="order fetch")
        raw_order = _first_dict(payload, "order")
        if not raw_order and ("status" in payload or "_id" in payload):
            raw_order = payload
        if not raw_order:
            raise OrderNotFoundError(f"Order {order_id} was not found", order_id=order_id)

        return normalize_order(
            raw_order,
            fallback_id=order_id,
            default_source_currency=self._default_source,
            default_target_currency=self._default_target,
        )

    def _parse_onramp(self, body: Any, target_currency: str) -> Tuple[Order, PaymentCheckout]:
        data = _unwrap(body, operation="on-ramp creation")
        raw_order = _first_dict(data, "order")
        if not raw_order:
            raise StatusCheckError(
                "On-ramp response did not include an order",
                category=ErrorCategory.VALIDATION,
            )
        order = normalize_order(
            raw_order,
            fallback_id=str(data.get("orderId") or ""),
            default_source_currency=self._default_source,
            default_target_currency=target_currency or self._default_target,
        )
        checkout_raw = _first_dict(data, "checkout", "payment")
        checkout = PaymentCheckout(
            checkout_url=checkout_raw.get("checkoutUrl") or checkout_raw.get("url") or data.get("checkoutUrl"),
            payment_reference=checkout_raw.get("paymentReference") or data.get("paymentReference"),
        )
        return order, checkout

    def _malformed(self, exc: Exception, operation: str, identifier: str) -> StatusCheckError:
        error = classify_http_error(exc, operation=operation)
        self._logger.warning("Malformed %s response for %s: %s", operation, identifier, exc)
        return error


# ---------------------------
# Normalization
# ---------------------------
def normalize_order(
    raw: Dict[str, Any],
    *,
    status: Any = None,
    fallback_id: str = "",
    default_source_currency: str = "NGN",
    default_target_currency: str = "USDC",
) -> Order:
    """Build a fully-populated Order from a loosely-shaped response dict."""

    order_id = raw.get("_id") or raw.get("id") or raw.get("orderId") or fallback_id
    if not order_id:
        raise StatusCheckError("Response did not identify an order", category=ErrorCategory.VALIDATION)

    return Order(
        id=str(order_id),
        status=OrderStatus.normalize(status if status is not None else raw.get("status")),
        type=str(raw.get("type") or "onramp"),
        source_amount=_decimal(raw.get("sourceAmount")) or Decimal("0"),
        source_currency=str(raw.get("sourceCurrency") or default_source_currency).upper(),
        target_amount=_decimal(raw.get("targetAmount")) or Decimal("0"),
        target_currency=str(raw.get("targetCurrency") or default_target_currency).upper(),
        recipient_address=raw.get("recipientWalletAddress") or raw.get("recipientAddress"),
        transaction_hash=raw.get("transactionHash") or raw.get("txHash"),
        completed_at=_timestamp(raw.get("completedAt")),
        created_at=_timestamp(raw.get("createdAt")),
        notes=raw.get("notes"),
    )


def normalize_provider_status(raw_status: Any, info: Dict[str, Any]) -> PaymentProviderStatus:
    status = str(raw_status or "").strip()
    paid_flag = info.get("paid")
    return PaymentProviderStatus(
        raw_status=status.upper(),
        paid=bool(paid_flag) if paid_flag is not None else is_paid(status),
        paid_amount=_decimal(info.get("paidAmount") or info.get("amountPaid")),
        paid_at=_timestamp(info.get("paidOn") or info.get("paidAt")),
        payment_method=info.get("paymentMethod"),
    )


def _unwrap(body: Any, *, operation: str) -> Dict[str, Any]:
    if not isinstance(body, dict):
        raise StatusCheckError(
            f"{operation} returned an unexpected payload",
            category=ErrorCategory.VALIDATION,
        )
    if body.get("success") is False:
        raise StatusCheckError(body.get("message") or f"{operation} was rejected")
    data = body.get("data")
    if isinstance(data, dict):
        return data
    return body


def _first_dict(payload: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, dict):
            return value
    return {}


def _decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        # Epoch milliseconds; out-of-range values are dropped like unparseable strings
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
