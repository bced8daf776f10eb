"""Centralized credential and output configuration.

Credentials are stored in the sheets-utils repo root by default:
    .env                      - environment overrides
    google/credentials.json   - Google OAuth client credentials
    google/token.json         - Google OAuth tokens

Either location can be overridden with GOOGLE_SHEETS_CREDENTIALS and
GOOGLE_SHEETS_TOKEN. CSV exports go to SHEETS_OUTPUT_DIR, or the system
temp directory when unset.

This module auto-loads the .env file on import.
"""

import os
import tempfile
from pathlib import Path

# __file__ is src/sheets_utils/config.py, so 3 levels up
REPO_ROOT = Path(__file__).parent.parent.parent
GOOGLE_DIR = REPO_ROOT / "google"

ENV_FILE = REPO_ROOT / ".env"
GOOGLE_CREDENTIALS = GOOGLE_DIR / "credentials.json"
GOOGLE_TOKEN = GOOGLE_DIR / "token.json"

CREDENTIALS_ENV = "GOOGLE_SHEETS_CREDENTIALS"
TOKEN_ENV = "GOOGLE_SHEETS_TOKEN"
OUTPUT_DIR_ENV = "SHEETS_OUTPUT_DIR"


def _load_env_file(env_path: Path) -> dict[str, str]:
    """Load environment variables from a file.

    Args:
        env_path: Path to .env file.

    Returns:
        Dictionary of loaded variables.
    """
    loaded = {}
    if not env_path.exists():
        return loaded

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()

            if (value.startswith('"') and value.endswith('"')) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]

            # Env vars already set take precedence
            if key and key not in os.environ:
                os.environ[key] = value
                loaded[key] = value

    return loaded


def get_credentials_path() -> Path:
    """Return the OAuth client credentials path."""
    override = os.environ.get(CREDENTIALS_ENV)
    return Path(override).expanduser() if override else GOOGLE_CREDENTIALS


def get_token_path() -> Path:
    """Return the OAuth token cache path."""
    override = os.environ.get(TOKEN_ENV)
    return Path(override).expanduser() if override else GOOGLE_TOKEN


def get_output_dir() -> Path:
    """Return the directory CSV exports are written to."""
    override = os.environ.get(OUTPUT_DIR_ENV)
    return Path(override).expanduser() if override else Path(tempfile.gettempdir())


def ensure_google_dir() -> Path:
    """Create google credentials directory if it doesn't exist.

    Returns:
        Path to google directory.
    """
    GOOGLE_DIR.mkdir(parents=True, exist_ok=True)
    return GOOGLE_DIR


def get_credential_status() -> dict:
    """Get status of the configured credentials.

    Returns:
        Dictionary with credential status.
    """
    credentials = get_credentials_path()
    token = get_token_path()
    return {
        "repo_root": str(REPO_ROOT),
        "env_file": ENV_FILE.exists(),
        "google": {
            "credentials_path": str(credentials),
            "credentials": credentials.exists(),
            "token_path": str(token),
            "token": token.exists(),
        },
        "output_dir": str(get_output_dir()),
    }


# Auto-load .env from repo root on import
_loaded = _load_env_file(ENV_FILE)
