from .models import AuthError, Credential
from .store import CredentialStore

__all__ = [
    "AuthError",
    "Credential",
    "CredentialStore",
]
