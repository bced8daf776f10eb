"""Tests for Google OAuth authentication."""

import json
import os
import stat
from unittest.mock import MagicMock, patch

import pytest
from authlib.oauth2 import OAuth2Error

from sheets_utils.google import (
    AuthorizationRequired,
    CredentialsFormatError,
    CredentialsNotFoundError,
    GoogleOAuth,
    TokenError,
    sheets_service,
)
from sheets_utils.google.oauth import SCOPES

SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"

FETCHED_TOKEN = {
    "access_token": "new-access-token",
    "refresh_token": "new-refresh-token",
    "token_type": "Bearer",
    "expires_at": 4102444800,
    "scope": SHEETS_SCOPE,
}

EXPIRED_TOKEN = {
    "token": "old",
    "refresh_token": "refresh",
    "scopes": [SHEETS_SCOPE],
    "expiry": "2000-01-01T00:00:00Z",
}


class TestGoogleOAuthBasics:
    """Test basic GoogleOAuth functionality."""

    def test_unknown_scope_raises(self):
        """Should raise error for unknown scope names."""
        with pytest.raises(ValueError, match="Unknown scope"):
            GoogleOAuth(scopes=["unknown_scope"])

    def test_full_url_scopes_accepted(self, tmp_path):
        """Should accept full scope URLs."""
        with pytest.raises(CredentialsNotFoundError):
            GoogleOAuth(
                scopes=["https://www.googleapis.com/auth/spreadsheets.readonly"],
                credentials_path=tmp_path / "missing.json",
            )

    def test_credentials_not_found(self, tmp_path):
        """Should raise error when credentials file is missing."""
        with pytest.raises(CredentialsNotFoundError) as exc_info:
            GoogleOAuth(credentials_path=tmp_path / "nonexistent.json")
        assert exc_info.value.path.endswith("nonexistent.json")

    def test_credentials_path_from_env(self, tmp_path):
        """Should read the credentials location from the environment."""
        missing = tmp_path / "env-credentials.json"
        with (
            patch.dict(os.environ, {"GOOGLE_SHEETS_CREDENTIALS": str(missing)}),
            pytest.raises(CredentialsNotFoundError, match="env-credentials.json"),
        ):
            GoogleOAuth()

    def test_available_scopes(self):
        """Should have the Sheets scopes defined."""
        assert SCOPES["sheets"] == SHEETS_SCOPE
        assert "sheets_readonly" in SCOPES


class TestCredentialsFile:
    """Tests for loading the OAuth client credentials."""

    def test_load_installed_credentials(self, mock_credentials, tmp_path):
        """Should load installed app credentials."""
        auth = GoogleOAuth(
            credentials_path=str(mock_credentials),
            token_path=str(tmp_path / "token.json"),
        )
        assert auth.client_id == "test-client-id.apps.googleusercontent.com"
        assert auth.client_secret == "test-client-secret"
        assert auth.redirect_uri == "http://localhost"

    def test_load_web_credentials(self, tmp_path):
        """Should load web app credentials."""
        creds = {
            "web": {
                "client_id": "web-client-id.apps.googleusercontent.com",
                "client_secret": "web-client-secret",
            }
        }
        creds_path = tmp_path / "credentials.json"
        with open(creds_path, "w") as f:
            json.dump(creds, f)

        auth = GoogleOAuth(
            credentials_path=str(creds_path),
            token_path=str(tmp_path / "token.json"),
        )
        assert auth.client_id == "web-client-id.apps.googleusercontent.com"

    def test_invalid_json(self, tmp_path):
        """Should reject a credentials file that isn't JSON."""
        creds_path = tmp_path / "credentials.json"
        creds_path.write_text("not json")
        with pytest.raises(CredentialsFormatError, match="invalid JSON"):
            GoogleOAuth(credentials_path=creds_path, token_path=tmp_path / "token.json")

    def test_missing_section(self, tmp_path):
        """Should reject credentials without an installed or web section."""
        creds_path = tmp_path / "credentials.json"
        creds_path.write_text(json.dumps({"other": {}}))
        with pytest.raises(CredentialsFormatError, match="'installed' or 'web'"):
            GoogleOAuth(credentials_path=creds_path, token_path=tmp_path / "token.json")

    def test_missing_client_secret(self, tmp_path):
        """Should reject credentials without a client secret."""
        creds_path = tmp_path / "credentials.json"
        creds_path.write_text(json.dumps({"installed": {"client_id": "abc"}}))
        with pytest.raises(CredentialsFormatError, match="client_secret"):
            GoogleOAuth(credentials_path=creds_path, token_path=tmp_path / "token.json")


class TestTokenCache:
    """Tests for loading and saving the token file."""

    def test_is_authorized_without_token(self, mock_credentials, tmp_path):
        """Should return False when no token exists."""
        auth = GoogleOAuth(
            credentials_path=str(mock_credentials),
            token_path=str(tmp_path / "token.json"),
        )
        assert auth.is_authorized() is False

    def test_is_authorized_with_valid_token(self, mock_credentials, mock_token):
        """Should return True when valid token exists."""
        auth = GoogleOAuth(
            credentials_path=str(mock_credentials),
            token_path=str(mock_token),
        )
        assert auth.is_authorized() is True

    def test_malformed_token_raises(self, mock_credentials, tmp_path):
        """Should fail loudly on a corrupt token file."""
        token_path = tmp_path / "token.json"
        token_path.write_text("{broken")
        with pytest.raises(TokenError, match="Failed to load token"):
            GoogleOAuth(credentials_path=mock_credentials, token_path=token_path)

    def test_scope_validation_on_token_load(self, mock_credentials, tmp_path):
        """Should ignore a token with missing scopes."""
        token = {
            "token": "test-access-token",
            "refresh_token": "test-refresh-token",
            "scopes": ["https://www.googleapis.com/auth/spreadsheets.readonly"],
            "expiry": "2099-01-01T00:00:00Z",
        }
        token_path = tmp_path / "token.json"
        with open(token_path, "w") as f:
            json.dump(token, f)

        auth = GoogleOAuth(
            credentials_path=str(mock_credentials),
            token_path=str(token_path),
            scopes=["sheets"],
        )
        assert auth.is_authorized() is False

    def test_get_token_info_no_token(self, mock_credentials, tmp_path):
        """Should return no_token status when no token exists."""
        auth = GoogleOAuth(
            credentials_path=str(mock_credentials),
            token_path=str(tmp_path / "token.json"),
        )
        assert auth.get_token_info()["status"] == "no_token"

    def test_get_token_info_with_token(self, mock_credentials, mock_token):
        """Should return token info when token exists."""
        auth = GoogleOAuth(
            credentials_path=str(mock_credentials),
            token_path=str(mock_token),
        )
        info = auth.get_token_info()
        assert info["status"] == "valid"
        assert info["has_refresh_token"] is True
        assert info["scopes"] == [SHEETS_SCOPE]

    def test_saved_token_is_owner_only(self, mock_credentials, tmp_path):
        """Should write the token file with 0600 permissions."""
        token_path = tmp_path / "nested" / "token.json"
        auth = GoogleOAuth(credentials_path=mock_credentials, token_path=token_path)

        auth._save_token(dict(FETCHED_TOKEN))

        assert stat.S_IMODE(os.stat(token_path).st_mode) == 0o600
        saved = json.loads(token_path.read_text())
        assert saved["token"] == "new-access-token"
        assert saved["refresh_token"] == "new-refresh-token"
        assert saved["scopes"] == [SHEETS_SCOPE]
        assert saved["expiry"] == "2100-01-01T00:00:00Z"

    def test_saved_token_reloads(self, mock_credentials, tmp_path):
        """A saved token should authorize a fresh instance."""
        token_path = tmp_path / "token.json"
        GoogleOAuth(credentials_path=mock_credentials, token_path=token_path)._save_token(
            dict(FETCHED_TOKEN)
        )

        auth = GoogleOAuth(credentials_path=mock_credentials, token_path=token_path)
        assert auth.is_authorized() is True
        assert auth.session.token["expires_at"] == FETCHED_TOKEN["expires_at"]

    def test_existing_token_file_permissions_tightened(self, mock_credentials, mock_token):
        """Should reset permissions when overwriting an existing token file."""
        os.chmod(mock_token, 0o644)
        auth = GoogleOAuth(credentials_path=mock_credentials, token_path=mock_token)

        auth._save_token(dict(FETCHED_TOKEN))

        assert stat.S_IMODE(os.stat(mock_token).st_mode) == 0o600


class TestAuthorizationFlow:
    """Tests for the interactive code exchange and refresh."""

    @pytest.fixture
    def auth(self, mock_credentials, tmp_path):
        return GoogleOAuth(
            credentials_path=mock_credentials,
            token_path=tmp_path / "token.json",
        )

    def test_get_authorization_url(self, auth):
        """Should generate an offline authorization URL."""
        url = auth.get_authorization_url()
        assert "accounts.google.com" in url
        assert "client_id=" in url
        assert "access_type=offline" in url

    def test_authorize_with_code(self, auth):
        """Should exchange a pasted code and save the token."""
        messages = []

        def prompt(message):
            messages.append(message)
            return "  4/auth-code \n"

        with patch.object(auth.session, "fetch_token", return_value=dict(FETCHED_TOKEN)) as fetch:
            auth.authorize(prompt=prompt)

        assert "accounts.google.com" in messages[0]
        assert fetch.call_args.kwargs["code"] == "4/auth-code"
        assert fetch.call_args.kwargs["grant_type"] == "authorization_code"
        assert auth.token_path.exists()

    def test_authorize_with_redirect_url(self, auth):
        """Should accept the full redirect URL instead of a code."""
        redirect = "http://localhost/?code=4/auth-code&state=xyz"
        with patch.object(auth.session, "fetch_token", return_value=dict(FETCHED_TOKEN)) as fetch:
            auth.authorize(prompt=lambda _: redirect)

        assert fetch.call_args.kwargs["authorization_response"] == redirect

    def test_authorize_empty_reply(self, auth):
        """Should fail when no code is entered."""
        with pytest.raises(TokenError, match="No authorization code"):
            auth.authorize(prompt=lambda _: "   ")

    def test_authorize_exchange_failure(self, auth):
        """Should wrap OAuth errors from the exchange."""
        with (
            patch.object(auth.session, "fetch_token", side_effect=OAuth2Error("invalid_grant")),
            pytest.raises(TokenError, match="exchange"),
        ):
            auth.authorize(prompt=lambda _: "bad-code")
        assert not auth.token_path.exists()

    def test_get_credentials_requires_token(self, auth):
        """Should refuse to build credentials without a token."""
        with pytest.raises(TokenError, match="Not authorized"):
            auth.get_credentials()

    def test_expired_token_refresh_failure(self, mock_credentials, tmp_path):
        """Should raise TokenError when refreshing an expired token fails."""
        token_path = tmp_path / "token.json"
        token_path.write_text(json.dumps(EXPIRED_TOKEN))
        auth = GoogleOAuth(credentials_path=mock_credentials, token_path=token_path)
        assert auth.get_token_info()["status"] == "expired"

        with (
            patch.object(auth.session, "refresh_token", side_effect=OAuth2Error("invalid_grant")),
            pytest.raises(TokenError, match="refresh"),
        ):
            auth.get_credentials()

    def test_expired_token_refresh_persists(self, mock_credentials, tmp_path):
        """Should save a refreshed token even when the response omits its scope."""
        token_path = tmp_path / "token.json"
        token_path.write_text(json.dumps(EXPIRED_TOKEN))
        auth = GoogleOAuth(credentials_path=mock_credentials, token_path=token_path)

        response = MagicMock(status_code=200)
        response.json.return_value = {
            "access_token": "refreshed-access-token",
            "expires_in": 3600,
            "token_type": "Bearer",
        }
        with patch.object(auth.session, "request", return_value=response):
            creds = auth.get_credentials()

        assert creds.token == "refreshed-access-token"
        saved = json.loads(token_path.read_text())
        assert saved["token"] == "refreshed-access-token"
        assert saved["refresh_token"] == "refresh"
        assert saved["scopes"] == [SHEETS_SCOPE]
        assert auth.is_authorized() is True
        assert auth.get_token_info()["status"] == "valid"


class TestSheetsService:
    """Tests for the one-call service bootstrap."""

    def test_uses_cached_token(self, mock_credentials, mock_token):
        """Should build the service without prompting when a token exists."""

        def prompt(_):
            raise AssertionError("should not prompt")

        with patch("sheets_utils.google.oauth.build", return_value="service") as build:
            service = sheets_service(mock_credentials, mock_token, prompt=prompt)

        assert service == "service"
        assert build.call_args.args == ("sheets", "v4")

    def test_prompts_without_token(self, mock_credentials, tmp_path):
        """Should run the authorization flow when no token is cached."""
        with (
            patch.object(
                GoogleOAuth, "authorize", autospec=True, side_effect=lambda self, prompt: None
            ) as authorize,
            patch.object(GoogleOAuth, "build_service", return_value="service"),
        ):
            service = sheets_service(mock_credentials, tmp_path / "token.json", prompt=input)

        assert service == "service"
        assert authorize.called

    def test_non_interactive_raises_authorization_required(self, mock_credentials, tmp_path):
        """Should raise AuthorizationRequired instead of prompting when prompt is None."""
        with pytest.raises(AuthorizationRequired, match="sheets-utils google login") as exc_info:
            sheets_service(mock_credentials, tmp_path / "token.json", prompt=None)

        assert "accounts.google.com" in exc_info.value.authorization_url
        assert not (tmp_path / "token.json").exists()
