"""
Authentication models and exceptions.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..core.recovery.errors import ErrorCategory, ErrorContext, RampError, RecoveryAction


class AuthError(RampError):
    """No credential obtainable; the user has to reconnect a wallet."""

    def __init__(self, message: str = "Authentication required", wallet_address: Optional[str] = None):
        super().__init__(
            message,
            category=ErrorCategory.AUTHENTICATION,
            context=ErrorContext(
                category=ErrorCategory.AUTHENTICATION,
                recoverable=False,
                suggested_action="Reconnect your wallet",
                recovery_actions=[RecoveryAction.RECONNECT_WALLET],
                details={"wallet_address": wallet_address} if wallet_address else {},
            ),
        )
        self.wallet_address = wallet_address


class Credential(BaseModel):
    """Bearer token tied to a wallet address."""

    model_config = ConfigDict(frozen=True)

    value: str
    wallet_address: Optional[str] = None

    @property
    def authorization_header(self) -> str:
        return f"Bearer {self.value}"

    def __repr__(self) -> str:
        # Keep tokens out of logs
        return f"Credential(wallet_address={self.wallet_address!r}, value='***')"

    __str__ = __repr__
