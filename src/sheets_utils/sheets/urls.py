"""Spreadsheet URL parsing."""

import re

from sheets_utils.sheets.exceptions import InvalidSpreadsheetURLError

SHEETS_HOST = "https://docs.google.com"
DEFAULT_FRAGMENT = "edit#gid=0"

# https://developers.google.com/sheets/api/guides/concepts
SPREADSHEET_ID_PATTERN = re.compile(r"/spreadsheets/d/(?P<id>[a-zA-Z0-9-_]+)")


def get_spreadsheet_id(url: str) -> str:
    """Return the spreadsheet ID for a Google Sheets URL.

    Args:
        url: URL such as https://docs.google.com/spreadsheets/d/<ID>/edit#gid=0

    Returns:
        The spreadsheet ID.

    Raises:
        InvalidSpreadsheetURLError: If the URL has no /spreadsheets/d/<ID> segment.
    """
    trimmed = url.strip().removeprefix(SHEETS_HOST).removesuffix(DEFAULT_FRAGMENT)
    match = SPREADSHEET_ID_PATTERN.search(trimmed)
    if not match:
        raise InvalidSpreadsheetURLError(url)
    return match.group("id")


def spreadsheet_url(spreadsheet_id: str) -> str:
    """Return the browser URL for a spreadsheet ID."""
    return f"{SHEETS_HOST}/spreadsheets/d/{spreadsheet_id}/edit"


def resolve_spreadsheet_id(url_or_id: str) -> str:
    """Accept either a full URL or a bare spreadsheet ID."""
    if "/" in url_or_id:
        return get_spreadsheet_id(url_or_id)
    return url_or_id
