"""
Error Recovery Module

Error taxonomy and classification for reconciliation calls.
"""

from .errors import (
    ErrorCategory,
    ErrorContext,
    ErrorKind,
    OrderNotFoundError,
    RampError,
    RecoveryAction,
    StatusCheckError,
    UnauthorizedError,
    classify_http_error,
)

__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "ErrorKind",
    "OrderNotFoundError",
    "RampError",
    "RecoveryAction",
    "StatusCheckError",
    "UnauthorizedError",
    "classify_http_error",
]
