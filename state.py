# state.py

from dataclasses import dataclass
from enum import Enum


class AuthStatus(str, Enum):
    """
    Authoritative calendar authorization states.
    The HTTP layer MUST branch on this, never on message text.
    """

    AUTHORIZED = "AUTHORIZED"

    # App identity (credentials.json) problems
    CREDENTIALS_MISSING = "CREDENTIALS_MISSING"
    CREDENTIALS_INVALID = "CREDENTIALS_INVALID"

    # Identity is fine, the operator must (re)log in
    AUTH_REQUIRED = "AUTH_REQUIRED"


@dataclass
class AuthResult:
    status: AuthStatus
    credentials: object | None = None   # google.oauth2.credentials.Credentials
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == AuthStatus.AUTHORIZED and self.credentials is not None


class CredentialsError(Exception):
    """Raised when the app identity file is absent or unusable."""

    def __init__(self, status: AuthStatus, message: str):
        super().__init__(message)
        self.status = status
