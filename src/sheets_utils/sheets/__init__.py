"""Google Sheets client with OAuth authentication.

Read ranges from a spreadsheet and write styled rows into new sheets.

Usage:
    from sheets_utils.sheets import Cell, Color, Row, SheetsClient

    client = SheetsClient()
    sheet = client.open_url("https://docs.google.com/spreadsheets/d/<ID>/edit")

    # Read values
    values = sheet.get_values("Class Data!A2:E")

    # Write rows into a new sheet, with a CSV copy
    sheet.write({
        "Summary": [
            Row([Cell("Name"), Cell("Link")], bold_text=True, color=Color(230, 230, 230)),
            Row([Cell("Go"), Cell("docs", hyperlink="https://go.dev/doc")]),
        ]
    })

OAuth Setup:
    1. Download OAuth credentials from Google Cloud Console
    2. Import: sheets-utils google import ~/Downloads/credentials.json
    3. Authorize: sheets-utils google login
"""

from __future__ import annotations

from sheets_utils.sheets.client import Sheet, SheetsClient, Spreadsheet
from sheets_utils.sheets.exceptions import (
    InvalidSpreadsheetURLError,
    SheetsAPIError,
    SheetsError,
)
from sheets_utils.sheets.export import export_csv, load_csv
from sheets_utils.sheets.models import Cell, Color, Row
from sheets_utils.sheets.urls import get_spreadsheet_id

__all__ = [
    "SheetsClient",
    "Spreadsheet",
    "Sheet",
    "Row",
    "Cell",
    "Color",
    "get_spreadsheet_id",
    "export_csv",
    "load_csv",
    "SheetsError",
    "SheetsAPIError",
    "InvalidSpreadsheetURLError",
]
