"""CLI for sheets-utils - credentials and spreadsheet access.

Usage:
    sheets-utils init                          # Create directories, show setup instructions
    sheets-utils status                        # Show credential status
    sheets-utils google login                  # Interactive OAuth login
    sheets-utils google status                 # Show OAuth token status
    sheets-utils google refresh                # Refresh OAuth token
    sheets-utils google revoke                 # Revoke OAuth token
    sheets-utils google import <path>          # Import OAuth credentials
    sheets-utils sheets id <url>               # Print the spreadsheet ID of a URL
    sheets-utils sheets read [url] [range]     # Print the rows of a range
    sheets-utils sheets upload <url> <csv>...  # Write CSV files into new sheets
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import shutil
import sys
from pathlib import Path

# Names and majors of students in Google's public sample spreadsheet
EXAMPLE_SPREADSHEET_ID = "1BxiMVs0XRA5nFMdKvBdBZjgmUUqptlbs74OgvE2upms"
EXAMPLE_READ_RANGE = "Class Data!A2:E"


def cmd_init() -> int:
    """Initialize sheets-utils credential directory structure."""
    from sheets_utils.config import (
        ENV_FILE,
        GOOGLE_DIR,
        REPO_ROOT,
        ensure_google_dir,
        get_credentials_path,
        get_token_path,
    )

    print("=" * 60)
    print("SHEETS-UTILS SETUP")
    print("=" * 60)
    print()
    print(f"Repository: {REPO_ROOT}")
    print()

    ensure_google_dir()
    print(f"Created: {GOOGLE_DIR}/")
    print()

    print("Credential locations:")
    print()
    print(f"  {ENV_FILE}")
    print("    GOOGLE_SHEETS_CREDENTIALS, GOOGLE_SHEETS_TOKEN, SHEETS_OUTPUT_DIR")
    print()
    print(f"  {get_credentials_path()}")
    print("    OAuth client credentials from Google Cloud Console")
    print()
    print(f"  {get_token_path()}")
    print("    OAuth tokens (created by 'sheets-utils google login')")
    print()
    print("-" * 60)
    print()

    status = _check_status()

    if status["google"]["credentials"]:
        print("Google credentials.json exists")
    else:
        print("For Google OAuth, download credentials from:")
        print("  https://console.cloud.google.com/apis/credentials")
        print(f"  Save as: {status['google']['credentials_path']}")
        print()

    return 0


def cmd_status() -> int:
    """Show status of the configured credentials."""
    status = _check_status()

    print("=" * 60)
    print("SHEETS-UTILS CREDENTIAL STATUS")
    print("=" * 60)
    print()
    print(f"Repository: {status['repo_root']}")
    print(f".env:       {'[x]' if status['env_file'] else '[ ]'}")
    print()

    google = status["google"]
    print("Google:")
    print(f"  credentials.json: {'[x]' if google['credentials'] else '[ ]'} {google['credentials_path']}")
    print(f"  token.json:       {'[x]' if google['token'] else '[ ]'} {google['token_path']}")
    print()
    print(f"CSV output: {status['output_dir']}")
    return 0


def _check_status() -> dict:
    """Get credential status."""
    from sheets_utils.config import get_credential_status

    return get_credential_status()


def google_login(scopes: list[str], no_browser: bool = False) -> int:
    """Interactive Google OAuth login."""
    from sheets_utils.google import GoogleAuthError, GoogleOAuth

    print("=" * 60)
    print("SHEETS-UTILS GOOGLE LOGIN")
    print("=" * 60)

    try:
        auth = GoogleOAuth(scopes=scopes)
    except GoogleAuthError as e:
        print(f"\nError: {e}")
        print("Run 'sheets-utils init' for setup instructions")
        return 1

    info = auth.get_token_info()
    if auth.is_authorized() and info["status"] == "valid":
        print("\nAlready authorized with valid token")
        return google_status(scopes)

    if auth.is_authorized() and info["status"] == "expired":
        print("\nToken expired, attempting refresh...")
        try:
            auth.get_credentials()
            print("Token refreshed successfully!")
            return google_status(scopes)
        except GoogleAuthError as e:
            print(f"Refresh failed: {e}")
            print("Starting new authorization flow...")

    print(f"\nScopes: {', '.join(scopes)}")
    if not no_browser:
        print("\nA browser window will open for Google consent.")
    print()

    try:
        auth.authorize(open_browser=not no_browser)
    except GoogleAuthError as e:
        print(f"\nError: {e}")
        return 1

    print("\nToken saved successfully!")
    return google_status(scopes)


def google_status(scopes: list[str]) -> int:
    """Show Google OAuth token status."""
    from sheets_utils.google import GoogleAuthError, GoogleOAuth

    try:
        auth = GoogleOAuth(scopes=scopes)
    except GoogleAuthError as e:
        print(f"Error: {e}")
        print("Run 'sheets-utils init' for setup instructions")
        return 1

    info = auth.get_token_info()

    if info["status"] == "no_token":
        print("No token found - run 'sheets-utils google login'")
        return 1

    print(f"Status     : {info['status']}")
    print(f"Scopes     : {', '.join(info.get('scopes', []))}")
    print(f"Expires in : {info.get('expires_in', 'unknown')}")
    print(f"Refreshed  : {info.get('last_refresh') or 'never'}")
    return 0


def google_refresh(scopes: list[str]) -> int:
    """Refresh Google OAuth token."""
    from sheets_utils.google import GoogleAuthError, GoogleOAuth

    print("=" * 60)
    print("REFRESHING OAUTH TOKEN")
    print("=" * 60)

    try:
        auth = GoogleOAuth(scopes=scopes)
    except GoogleAuthError as e:
        print(f"Error: {e}")
        print("Run 'sheets-utils init' for setup instructions")
        return 1

    if not auth.is_authorized():
        print("No valid token - run 'sheets-utils google login'")
        return 1

    try:
        auth.get_credentials()
        print("\nToken refreshed successfully!")
        return google_status(scopes)
    except GoogleAuthError as e:
        print(f"\nRefresh failed: {e}")
        print("You may need to re-authenticate: sheets-utils google login")
        return 1


def google_revoke(scopes: list[str]) -> int:
    """Revoke Google OAuth token."""
    from sheets_utils.google import CredentialsNotFoundError, GoogleAuthError, GoogleOAuth

    try:
        auth = GoogleOAuth(scopes=scopes)
    except CredentialsNotFoundError:
        print("No credentials to revoke")
        return 0
    except GoogleAuthError as e:
        print(f"Error: {e}")
        return 1

    auth.revoke_token()
    print("Token revoked and local cache cleared")
    return 0


def google_import(source_path: str) -> int:
    """Import OAuth credentials from a file."""
    from sheets_utils.config import get_credentials_path

    source = Path(source_path).expanduser()

    if not source.exists():
        print(f"Error: File not found: {source}")
        return 1

    try:
        with open(source) as f:
            data = json.load(f)

        if "installed" not in data and "web" not in data:
            print("Error: Invalid OAuth credentials format")
            print("Expected 'installed' or 'web' key in JSON")
            return 1

        key = "installed" if "installed" in data else "web"
        client_id = data[key].get("client_id", "unknown")

    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON: {e}")
        return 1

    destination = get_credentials_path()
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, destination)
    os.chmod(destination, 0o600)

    print("Imported OAuth credentials")
    print(f"  From: {source}")
    print(f"  To:   {destination}")
    print(f"  Client ID: {client_id[:40]}...")
    print()
    print("Next: Run 'sheets-utils google login' to authorize")
    return 0


def sheets_id(url: str) -> int:
    """Print the spreadsheet ID contained in a URL."""
    from sheets_utils.sheets import InvalidSpreadsheetURLError, get_spreadsheet_id

    try:
        print(get_spreadsheet_id(url))
    except InvalidSpreadsheetURLError as e:
        print(f"Error: {e}")
        return 1
    return 0


def sheets_read(spreadsheet: str, range_notation: str, scopes: list[str]) -> int:
    """Print each row of a spreadsheet range."""
    from sheets_utils.google import GoogleAuthError
    from sheets_utils.sheets import SheetsClient, SheetsError
    from sheets_utils.sheets.urls import resolve_spreadsheet_id

    try:
        client = SheetsClient(scopes=scopes)
        sheet = client.open(resolve_spreadsheet_id(spreadsheet))
        values = sheet.get_values(range_notation)
    except (GoogleAuthError, SheetsError) as e:
        print(f"Error: {e}")
        return 1

    for row in values:
        print(row)
    return 0


def sheets_upload(
    spreadsheet: str,
    csv_paths: list[str],
    output_dir: str | None,
    scopes: list[str],
) -> int:
    """Write CSV files into new sheets named after each file."""
    from sheets_utils.google import GoogleAuthError
    from sheets_utils.sheets import SheetsClient, SheetsError, load_csv
    from sheets_utils.sheets.urls import resolve_spreadsheet_id

    data = {}
    for csv_path in csv_paths:
        path = Path(csv_path).expanduser()
        if not path.exists():
            print(f"Error: File not found: {path}")
            return 1
        data[path.stem] = load_csv(path)

    try:
        client = SheetsClient(scopes=scopes)
        sheet = client.open(resolve_spreadsheet_id(spreadsheet))
        paths = sheet.write(data, output_dir=output_dir)
    except (GoogleAuthError, SheetsError) as e:
        print(f"Error: {e}")
        return 1

    print(f"Wrote {len(paths)} sheet(s) to {sheet.url}")
    for path in paths:
        print(f"  CSV: {path}")
    return 0


def parse_scopes(scope_str: str | None) -> list[str]:
    """Parse comma-separated scopes."""
    if not scope_str:
        return ["sheets"]
    return [s.strip() for s in scope_str.split(",")]


def _add_scopes_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--scopes",
        type=str,
        default="sheets",
        help="Comma-separated scopes (default: sheets)",
    )


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="sheets-utils",
        description="Read and write Google Sheets with OAuth credentials",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command")

    subparsers.add_parser("init", help="Initialize credential directories")
    subparsers.add_parser("status", help="Show credential status")

    # Google subcommand
    google_parser = subparsers.add_parser("google", help="Google OAuth management")
    google_subparsers = google_parser.add_subparsers(dest="google_command", help="Command")

    login_parser = google_subparsers.add_parser("login", help="Interactive OAuth login")
    _add_scopes_argument(login_parser)
    login_parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Don't open browser automatically",
    )

    for name, help_text in (
        ("status", "Show token status"),
        ("refresh", "Refresh token"),
        ("revoke", "Revoke token"),
    ):
        _add_scopes_argument(google_subparsers.add_parser(name, help=help_text))

    import_parser = google_subparsers.add_parser("import", help="Import OAuth credentials")
    import_parser.add_argument("path", help="Path to credentials.json file")

    # Sheets subcommand
    sheets_parser = subparsers.add_parser("sheets", help="Spreadsheet access")
    sheets_subparsers = sheets_parser.add_subparsers(dest="sheets_command", help="Command")

    id_parser = sheets_subparsers.add_parser("id", help="Print the spreadsheet ID of a URL")
    id_parser.add_argument("url", help="Google Sheets URL")

    read_parser = sheets_subparsers.add_parser("read", help="Print the rows of a range")
    read_parser.add_argument(
        "spreadsheet",
        nargs="?",
        default=EXAMPLE_SPREADSHEET_ID,
        help="Spreadsheet URL or ID (default: Google's sample spreadsheet)",
    )
    read_parser.add_argument(
        "range",
        nargs="?",
        default=EXAMPLE_READ_RANGE,
        help=f"A1 range to read (default: {EXAMPLE_READ_RANGE})",
    )
    _add_scopes_argument(read_parser)

    upload_parser = sheets_subparsers.add_parser("upload", help="Write CSV files into new sheets")
    upload_parser.add_argument("spreadsheet", help="Spreadsheet URL or ID")
    upload_parser.add_argument("csv", nargs="+", help="CSV files; each becomes a sheet")
    upload_parser.add_argument(
        "--output-dir",
        default=None,
        help="Where to write the CSV copies (default: SHEETS_OUTPUT_DIR or temp dir)",
    )
    _add_scopes_argument(upload_parser)

    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "init":
        return cmd_init()

    if args.command == "status":
        return cmd_status()

    if args.command == "google":
        scopes = parse_scopes(getattr(args, "scopes", None))

        if args.google_command == "login":
            return google_login(scopes, args.no_browser)
        elif args.google_command == "status":
            return google_status(scopes)
        elif args.google_command == "refresh":
            return google_refresh(scopes)
        elif args.google_command == "revoke":
            return google_revoke(scopes)
        elif args.google_command == "import":
            return google_import(args.path)
        else:
            google_parser.print_help()
            return 0

    if args.command == "sheets":
        scopes = parse_scopes(getattr(args, "scopes", None))

        if args.sheets_command == "id":
            return sheets_id(args.url)
        elif args.sheets_command == "read":
            return sheets_read(args.spreadsheet, args.range, scopes)
        elif args.sheets_command == "upload":
            return sheets_upload(args.spreadsheet, args.csv, args.output_dir, scopes)
        else:
            sheets_parser.print_help()
            return 0

    return 0


if __name__ == "__main__":
    sys.exit(main())
