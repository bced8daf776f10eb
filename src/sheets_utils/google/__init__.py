"""Google OAuth authentication for the Sheets API."""

from sheets_utils.google.exceptions import (
    AuthorizationRequired,
    CredentialsFormatError,
    CredentialsNotFoundError,
    GoogleAuthError,
    ScopeMismatchError,
    TokenError,
)
from sheets_utils.google.oauth import GoogleOAuth, sheets_service

__all__ = [
    "GoogleOAuth",
    "sheets_service",
    "GoogleAuthError",
    "AuthorizationRequired",
    "CredentialsFormatError",
    "CredentialsNotFoundError",
    "TokenError",
    "ScopeMismatchError",
]
