import logging

import structlog

from rampwatch.logging_config import (
    bind_payment_context,
    clear_payment_context,
    redact_credentials,
    setup_logging,
)


def test_setup_logging_installs_single_handler():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging("WARNING")
        setup_logging("DEBUG", log_format="auto")

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)
        assert root.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_payment_context_binding():
    clear_payment_context()
    bind_payment_context(order_id="ord_1", payment_reference="")

    assert structlog.contextvars.get_contextvars() == {"order_id": "ord_1"}

    clear_payment_context()
    assert structlog.contextvars.get_contextvars() == {}


def test_bearer_tokens_are_redacted():
    event = redact_credentials(None, "info", {
        "event": "GET /ramp/orders/1 with Bearer abc.def-123",
        "token": "abc.def-123",
        "order_id": "ord_1",
    })

    assert event["event"] == "GET /ramp/orders/1 with Bearer ***"
    assert event["token"] == "***"
    assert event["order_id"] == "ord_1"
