"""Google Sheets exceptions."""


class SheetsError(Exception):
    """Base exception for spreadsheet operations."""

    pass


class InvalidSpreadsheetURLError(SheetsError, ValueError):
    """Raised when a URL does not contain a spreadsheet ID."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"No spreadsheet ID found in URL: {url}")


class SheetsAPIError(SheetsError):
    """Raised when the Sheets API returns an error."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
