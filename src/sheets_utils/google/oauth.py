"""Google OAuth management using Authlib.

This module provides OAuth 2.0 authentication for the Google Sheets API with:
- Client credentials loaded from a Google Cloud Console JSON file
- A token cache file, written with owner-only permissions
- Interactive authorization-code exchange on first use
- Automatic token refresh with scope preservation

Credentials are stored in the sheets-utils repo by default:
    google/credentials.json - OAuth client credentials
    google/token.json       - OAuth tokens
"""

import json
import logging
import os
import webbrowser
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import requests
from authlib.integrations.requests_client import OAuth2Session
from authlib.oauth2 import OAuth2Error
from google.oauth2.credentials import Credentials as GoogleCredentials
from googleapiclient.discovery import build

from sheets_utils.config import get_credentials_path, get_token_path
from sheets_utils.google.exceptions import (
    AuthorizationRequired,
    CredentialsFormatError,
    CredentialsNotFoundError,
    ScopeMismatchError,
    TokenError,
)

logger = logging.getLogger(__name__)


SCOPES = {
    "sheets": "https://www.googleapis.com/auth/spreadsheets",
    "sheets_readonly": "https://www.googleapis.com/auth/spreadsheets.readonly",
    "drive_file": "https://www.googleapis.com/auth/drive.file",
}

DEFAULT_REDIRECT_URI = "http://localhost"
TOKEN_FILE_MODE = 0o600


class GoogleOAuth:
    """Google OAuth management using Authlib.

    Handles the OAuth 2.0 authorization flow, token caching and
    Google API service creation.

    Example:
        >>> auth = GoogleOAuth(scopes=["sheets"])
        >>> if not auth.is_authorized():
        ...     auth.authorize()
        >>> service = auth.build_service("sheets", "v4")
    """

    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    REVOKE_URL = "https://oauth2.googleapis.com/revoke"

    def __init__(
        self,
        scopes: list[str] | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        token_path: str | Path | None = None,
        credentials_path: str | Path | None = None,
    ):
        """Initialize Google OAuth.

        Args:
            scopes: List of scope names (e.g., ["sheets"]) or full URLs.
                   If None, defaults to ["sheets"].
            client_id: OAuth client ID (loaded from credentials file if not provided).
            client_secret: OAuth client secret (loaded from credentials file if not provided).
            token_path: Path to store/load tokens. Defaults to GOOGLE_SHEETS_TOKEN
                or google/token.json.
            credentials_path: Path to OAuth credentials file. Defaults to
                GOOGLE_SHEETS_CREDENTIALS or google/credentials.json.

        Raises:
            ValueError: If a scope name is unknown.
            CredentialsNotFoundError: If the credentials file does not exist.
            CredentialsFormatError: If the credentials file cannot be parsed.
            TokenError: If the token file exists but cannot be read.
        """
        self.token_path = Path(token_path) if token_path else get_token_path()
        self.credentials_path = (
            Path(credentials_path) if credentials_path else get_credentials_path()
        )

        self.required_scopes = self._resolve_scopes(scopes or ["sheets"])
        self.redirect_uri = DEFAULT_REDIRECT_URI

        if not client_id or not client_secret:
            client_id, client_secret = self._load_client_credentials()

        self.client_id = client_id
        self.client_secret = client_secret

        token = self._load_token()
        # Scope last granted; refresh responses may omit it when unchanged
        self._granted_scope = token["scope"] if token else ""

        self.session = OAuth2Session(
            client_id=self.client_id,
            client_secret=self.client_secret,
            scope=" ".join(self.required_scopes),
            redirect_uri=self.redirect_uri,
            token=token,
            update_token=self._save_token,
            token_endpoint=self.TOKEN_URL,
            grant_type="refresh_token",
            token_endpoint_auth_method="client_secret_post",
        )

        self._state: str | None = None
        self.last_refresh: datetime | None = None
        self.refresh_count = 0

    def _resolve_scopes(self, scopes: list[str]) -> list[str]:
        """Resolve scope names to full URLs."""
        resolved = []
        for scope in scopes:
            if scope.startswith("https://"):
                resolved.append(scope)
            elif scope in SCOPES:
                resolved.append(SCOPES[scope])
            else:
                raise ValueError(
                    f"Unknown scope: {scope}. Use full URL or one of: {list(SCOPES.keys())}"
                )
        return resolved

    def _load_client_credentials(self) -> tuple[str, str]:
        """Load OAuth client credentials from file."""
        if not self.credentials_path.exists():
            raise CredentialsNotFoundError(str(self.credentials_path))

        try:
            with open(self.credentials_path) as f:
                creds = json.load(f)
        except json.JSONDecodeError as e:
            raise CredentialsFormatError(str(self.credentials_path), f"invalid JSON: {e}") from e

        # Handle both web and installed app credential formats
        if "installed" in creds:
            app_creds = creds["installed"]
        elif "web" in creds:
            app_creds = creds["web"]
        else:
            raise CredentialsFormatError(
                str(self.credentials_path), "expected 'installed' or 'web' key"
            )

        if "client_id" not in app_creds or "client_secret" not in app_creds:
            raise CredentialsFormatError(
                str(self.credentials_path), "missing client_id or client_secret"
            )

        redirect_uris = app_creds.get("redirect_uris") or []
        if redirect_uris:
            self.redirect_uri = redirect_uris[0]

        return app_creds["client_id"], app_creds["client_secret"]

    def _load_token(self) -> dict[str, Any] | None:
        """Load token from storage."""
        if not self.token_path.exists():
            logger.info("No existing token found")
            return None

        try:
            with open(self.token_path) as f:
                token_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise TokenError(f"Failed to load token from {self.token_path}: {e}") from e

        # Google writes ISO strings, older files may hold a timestamp
        expiry = token_data.get("expiry")
        if expiry and isinstance(expiry, str):
            dt = datetime.fromisoformat(expiry.replace("Z", "+00:00"))
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            expires_at = dt.timestamp()
        else:
            expires_at = expiry

        # Convert Google token format to Authlib format
        authlib_token = {
            "access_token": token_data.get("token"),
            "refresh_token": token_data.get("refresh_token"),
            "token_type": token_data.get("type", "Bearer"),
            "expires_at": expires_at,
            "scope": " ".join(token_data.get("scopes", [])),
        }

        current_scopes = set(token_data.get("scopes", []))
        required_scopes = set(self.required_scopes)

        if not required_scopes.issubset(current_scopes):
            missing = required_scopes - current_scopes
            logger.warning(f"Token missing required scopes: {missing}")
            return None

        logger.info(f"Loaded token with scopes: {current_scopes}")
        return authlib_token

    def _save_token(
        self,
        token: dict[str, Any],
        refresh_token: str | None = None,
        access_token: str | None = None,
    ):
        """Save token to storage (Authlib callback)."""
        if access_token:
            token["access_token"] = access_token
        if refresh_token and not token.get("refresh_token"):
            token["refresh_token"] = refresh_token

        if not token.get("scope"):
            token["scope"] = self._granted_scope

        token_scopes = set(token.get("scope", "").split())
        required_scopes = set(self.required_scopes)

        if not required_scopes.issubset(token_scopes):
            missing = required_scopes - token_scopes
            raise ScopeMismatchError(missing)

        expires_at = token.get("expires_at")
        expiry = (
            datetime.fromtimestamp(expires_at, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z")
            if expires_at
            else None
        )

        # Google authorized_user format, readable by google-auth
        google_token = {
            "token": token["access_token"],
            "refresh_token": token.get("refresh_token"),
            "token_uri": self.TOKEN_URL,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "scopes": sorted(token_scopes),
            "type": token.get("token_type", "Bearer"),
            "expiry": expiry,
        }

        logger.info(f"Saving token to {self.token_path}")
        self.token_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.token_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, TOKEN_FILE_MODE)
        with os.fdopen(fd, "w") as f:
            json.dump(google_token, f, indent=2)
        # os.open only applies the mode to newly created files
        os.chmod(self.token_path, TOKEN_FILE_MODE)

        self._granted_scope = token["scope"]
        self.last_refresh = datetime.now()
        self.refresh_count += 1

        logger.info(f"Token saved with scopes: {token_scopes}")

    def is_authorized(self) -> bool:
        """Check if we have a token with the required scopes.

        Returns:
            True if authorized with all required scopes, False otherwise.
        """
        if not self.session.token:
            return False

        token_scopes = set(self.session.token.get("scope", "").split())
        required_scopes = set(self.required_scopes)

        return required_scopes.issubset(token_scopes)

    def get_authorization_url(self) -> str:
        """Start OAuth authorization flow.

        Returns:
            Authorization URL for user to visit.
        """
        authorization_url, state = self.session.create_authorization_url(
            self.AUTHORIZE_URL,
            access_type="offline",
            prompt="consent",
            include_granted_scopes="true",
        )

        self._state = state
        return authorization_url

    def fetch_token(self, authorization_response: str) -> dict[str, Any]:
        """Complete authorization flow from the OAuth redirect URL.

        Args:
            authorization_response: The full redirect URL from OAuth callback.

        Returns:
            The fetched OAuth token dict.
        """
        token = self.session.fetch_token(
            self.TOKEN_URL,
            authorization_response=authorization_response,
            state=self._state,
            client_secret=self.client_secret,
        )

        self._save_token(token)
        return token

    def fetch_token_from_code(self, code: str) -> dict[str, Any]:
        """Complete authorization flow from a bare authorization code.

        Args:
            code: The authorization code shown or returned by Google.

        Returns:
            The fetched OAuth token dict.
        """
        token = self.session.fetch_token(
            self.TOKEN_URL,
            grant_type="authorization_code",
            code=code,
            client_secret=self.client_secret,
        )

        self._save_token(token)
        return token

    def authorize(
        self,
        prompt: Callable[[str], str] = input,
        open_browser: bool = False,
    ) -> dict[str, Any]:
        """Run the interactive authorization-code exchange.

        The user is shown the authorization URL and asked for either the
        authorization code or the full redirect URL the browser landed on.

        Args:
            prompt: Callable that displays a message and returns the user's reply.
            open_browser: Also open the authorization URL in a browser.

        Returns:
            The fetched OAuth token dict.

        Raises:
            TokenError: If no code is entered or the exchange fails.
        """
        url = self.get_authorization_url()
        logger.info(f"Requesting authorization for scopes: {self.required_scopes}")
        if open_browser:
            webbrowser.open(url)

        reply = prompt(
            "Go to the following link in your browser, then paste the "
            f"authorization code or redirect URL:\n{url}\n"
        ).strip()
        if not reply:
            raise TokenError("No authorization code entered")

        try:
            if reply.startswith(("http://", "https://")):
                return self.fetch_token(reply)
            return self.fetch_token_from_code(reply)
        except OAuth2Error as e:
            raise TokenError(f"Failed to exchange authorization code: {e}") from e

    def get_credentials(self) -> GoogleCredentials:
        """Get Google Credentials object for API client libraries.

        Returns:
            Google Credentials object with current token.

        Raises:
            TokenError: If not authorized or token refresh fails.
        """
        if not self.is_authorized():
            raise TokenError("Not authorized or missing required scopes")

        expires_at = self.session.token.get("expires_at", 0)
        if expires_at and expires_at < datetime.now().timestamp():
            logger.info("Token expired, refreshing...")
            try:
                self.session.refresh_token(
                    self.TOKEN_URL,
                    refresh_token=self.session.token.get("refresh_token"),
                )
            except (OAuth2Error, ScopeMismatchError) as e:
                raise TokenError(f"Failed to refresh token: {e}") from e

        return GoogleCredentials(
            token=self.session.token["access_token"],
            refresh_token=self.session.token.get("refresh_token"),
            token_uri=self.TOKEN_URL,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=self.required_scopes,
        )

    def build_service(self, service_name: str = "sheets", version: str = "v4"):
        """Build a Google API service with current credentials.

        Args:
            service_name: Name of the service.
            version: API version.

        Returns:
            Google API service object.
        """
        creds = self.get_credentials()
        return build(service_name, version, credentials=creds)

    def revoke_token(self):
        """Revoke the current token and clear local storage."""
        if not self.session.token:
            logger.warning("No token to revoke")
            return

        try:
            self.session.post(
                self.REVOKE_URL,
                params={"token": self.session.token["access_token"]},
            )
        except requests.RequestException as e:
            logger.warning(f"Failed to revoke token remotely: {e}")

        if self.token_path.exists():
            self.token_path.unlink()

        logger.info("Token revoked successfully")

    def get_token_info(self) -> dict[str, Any]:
        """Get information about the current token.

        Returns:
            Dictionary with token status, scopes, expiry, etc.
        """
        if not self.session.token:
            return {"status": "no_token"}

        token = self.session.token
        expires_at = token.get("expires_at", 0)

        if expires_at:
            expires_in = expires_at - datetime.now().timestamp()
            expires_str = str(timedelta(seconds=max(0, expires_in)))
            is_expired = expires_at < datetime.now().timestamp()
        else:
            expires_str = "unknown"
            is_expired = False

        return {
            "status": "valid" if not is_expired else "expired",
            "scopes": token.get("scope", "").split(),
            "expires_in": expires_str,
            "has_refresh_token": bool(token.get("refresh_token")),
            "refresh_count": self.refresh_count,
            "last_refresh": self.last_refresh.isoformat() if self.last_refresh else None,
        }


def sheets_service(
    credentials_file: str | Path | None = None,
    token_file: str | Path | None = None,
    prompt: Callable[[str], str] | None = input,
    scopes: list[str] | None = None,
):
    """Authenticate and return a Google Sheets v4 service.

    Prompts for interactive authorization when no usable token is cached.

    Raises:
        AuthorizationRequired: If no usable token is cached and `prompt` is None.
    """
    auth = GoogleOAuth(
        scopes=scopes,
        credentials_path=credentials_file,
        token_path=token_file,
    )
    if not auth.is_authorized():
        if prompt is None:
            raise AuthorizationRequired(
                auth.get_authorization_url(),
                "Sheets API requires OAuth authorization. "
                "Run 'sheets-utils google login' to authorize.",
            )
        auth.authorize(prompt=prompt)
    return auth.build_service("sheets", "v4")
