"""
Structured logging configuration using structlog.

stdlib ``logging`` records from every module are rendered by structlog:
JSON lines unless ``log_format`` (or DEBUG level under ``auto``) asks for
the console renderer. Order identifiers bound with ``bind_payment_context``
ride along on every line.
"""

import logging
import re
import sys
from typing import Any, List, MutableMapping, Optional

import structlog

from .config import settings

_BEARER = re.compile(r"(?i)bearer\s+[A-Za-z0-9._~+/=-]+")
_SENSITIVE_KEYS = {"token", "auth_token", "authorization", "authtoken"}


def redact_credentials(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask bearer tokens before anything is rendered."""
    for key, value in list(event_dict.items()):
        if key.lower() in _SENSITIVE_KEYS and value:
            event_dict[key] = "***"
        elif isinstance(value, str) and _BEARER.search(value):
            event_dict[key] = _BEARER.sub("Bearer ***", value)
    return event_dict


def _use_console(level: int, log_format: str) -> bool:
    fmt = log_format.lower()
    if fmt == "console":
        return True
    if fmt == "json":
        return False
    return level == logging.DEBUG


def _processors(console: bool) -> List[structlog.types.Processor]:
    processors: List[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        redact_credentials,
    ]
    if not console:
        processors.append(structlog.processors.format_exc_info)
    return processors


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: Override log level (default: from settings.log_level)
        log_format: ``auto``, ``json`` or ``console`` (default: settings.log_format)
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    console = _use_console(level, log_format or settings.log_format)
    pre_chain = _processors(console)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = structlog.dev.ConsoleRenderer() if console else structlog.processors.JSONRenderer()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    # stdout stays free for the CLI's own output
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Request lines are logged by the provider itself
    for name in ("httpcore", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_payment_context(**values: str) -> None:
    """Attach identifiers (order id, payment reference) to every log line."""

    structlog.contextvars.bind_contextvars(**{k: v for k, v in values.items() if v})


def clear_payment_context() -> None:
    structlog.contextvars.clear_contextvars()
