"""Google Sheets API client implementation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from googleapiclient.errors import HttpError

from sheets_utils.config import get_output_dir
from sheets_utils.google import sheets_service
from sheets_utils.sheets.convert import (
    add_sheet_request,
    append_cells_request,
    auto_resize_request,
    new_sheet,
    to_row_data,
)
from sheets_utils.sheets.exceptions import SheetsAPIError
from sheets_utils.sheets.export import export_csv
from sheets_utils.sheets.models import Row
from sheets_utils.sheets.urls import get_spreadsheet_id, spreadsheet_url

logger = logging.getLogger(__name__)


@dataclass
class Sheet:
    """Represents a sheet within a spreadsheet."""

    id: int
    title: str
    index: int
    row_count: int = 1000
    column_count: int = 26


def _execute(request: Any, action: str) -> dict[str, Any]:
    """Execute an API request, converting HTTP failures to SheetsAPIError."""
    try:
        return request.execute()
    except HttpError as e:
        raise SheetsAPIError(f"Unable to {action}: {e}", status_code=e.resp.status) from e


class Spreadsheet:
    """A Google Spreadsheet, which can contain multiple sheets.

    A Spreadsheet is identified by the ID found in its URL. It holds the
    Sheets service used to reach it and the last spreadsheet resource the
    API returned, if any.

    See https://developers.google.com/sheets/api/guides/concepts.
    """

    def __init__(
        self,
        service: Any,
        spreadsheet_id: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self.service = service
        self.id = spreadsheet_id
        self.metadata = metadata

    def __repr__(self) -> str:
        return f"Spreadsheet(id={self.id!r})"

    @property
    def title(self) -> str | None:
        if self.metadata is None:
            return None
        return self.metadata.get("properties", {}).get("title")

    @property
    def url(self) -> str:
        if self.metadata and self.metadata.get("spreadsheetUrl"):
            return self.metadata["spreadsheetUrl"]
        return spreadsheet_url(self.id)

    @property
    def sheets(self) -> list[Sheet]:
        """Sheets in the cached metadata."""
        if self.metadata is None:
            return []
        sheets = []
        for sheet_data in self.metadata.get("sheets", []):
            props = sheet_data.get("properties", {})
            grid_props = props.get("gridProperties", {})
            sheets.append(
                Sheet(
                    id=props.get("sheetId", 0),
                    title=props.get("title", ""),
                    index=props.get("index", 0),
                    row_count=grid_props.get("rowCount", 1000),
                    column_count=grid_props.get("columnCount", 26),
                )
            )
        return sheets

    @property
    def sheet_titles(self) -> list[str]:
        return [sheet.title for sheet in self.sheets]

    # =========================================================================
    # Reading Data
    # =========================================================================

    def refresh(self) -> dict[str, Any]:
        """Fetch and cache the spreadsheet metadata."""
        self.metadata = _execute(
            self.service.spreadsheets().get(spreadsheetId=self.id),
            f"get spreadsheet {self.id}",
        )
        return self.metadata

    def get_values(
        self,
        range_notation: str,
        value_render_option: str = "FORMATTED_VALUE",
    ) -> list[list[Any]]:
        """Read values from a range.

        Args:
            range_notation: A1 notation (e.g., "Sheet1!A1:C10").
            value_render_option: How to render values ("FORMATTED_VALUE",
                "UNFORMATTED_VALUE", "FORMULA").

        Returns:
            2D list of cell values. Trailing empty rows and cells are omitted
            by the API.

        Raises:
            SheetsAPIError: If the range cannot be read.
        """
        result = _execute(
            self.service.spreadsheets()
            .values()
            .get(
                spreadsheetId=self.id,
                range=range_notation,
                valueRenderOption=value_render_option,
            ),
            f"retrieve data from sheet range {range_notation}",
        )
        return result.get("values", [])

    # =========================================================================
    # Writing Data
    # =========================================================================

    def _batch_update(
        self,
        requests: list[dict[str, Any]],
        include_spreadsheet: bool = False,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"requests": requests}
        if include_spreadsheet:
            body["includeSpreadsheetInResponse"] = True
        return _execute(
            self.service.spreadsheets().batchUpdate(spreadsheetId=self.id, body=body),
            f"update spreadsheet {self.id}",
        )

    def append(self, data: Mapping[str, Sequence[Row]]) -> dict[str, Any] | None:
        """Write rows into new sheets, one per title.

        The sheets are created in one batch update, then the rows are
        appended to them in a second one.

        Args:
            data: Sheet title -> rows. Titles with no rows are skipped.

        Returns:
            The updated spreadsheet metadata.

        Raises:
            SheetsAPIError: If either batch update fails, e.g. because a
                sheet with one of the titles already exists.
        """
        row_data = to_row_data(data)
        if not row_data:
            logger.info(f"Nothing to append to {self.id}")
            return self.metadata

        response = self._batch_update(
            [add_sheet_request(title) for title in row_data],
            include_spreadsheet=True,
        )
        logger.info(f"Added sheets {list(row_data)} to {self.id}")

        data_requests = []
        for sheet in response["updatedSpreadsheet"].get("sheets", []):
            props = sheet["properties"]
            if props["title"] in row_data:
                data_requests.append(
                    append_cells_request(props["sheetId"], row_data[props["title"]])
                )

        response = self._batch_update(data_requests, include_spreadsheet=True)
        self.metadata = response["updatedSpreadsheet"]
        return self.metadata

    def resize_columns(self) -> None:
        """Auto-resize the columns of every sheet to fit their contents."""
        if self.metadata is None:
            self.refresh()

        requests = [auto_resize_request(sheet.id) for sheet in self.sheets]
        if not requests:
            return
        self._batch_update(requests)

    def write(
        self,
        data: Mapping[str, Sequence[Row]],
        output_dir: str | Path | None = None,
        prefix: str = "",
    ) -> list[Path]:
        """Export rows to CSV, append them as new sheets and resize columns.

        Args:
            data: Sheet title -> rows.
            output_dir: CSV directory. Defaults to SHEETS_OUTPUT_DIR or the temp dir.
            prefix: Prepended to every CSV file name.

        Returns:
            Paths of the CSV files written.
        """
        paths = export_csv(output_dir or get_output_dir(), data, prefix=prefix)
        if paths:
            self.append(data)
            self.resize_columns()
        return paths


class SheetsClient:
    """Google Sheets API client with OAuth authentication.

    Opens and creates spreadsheets with a lazily authenticated service.

    Usage:
        client = SheetsClient()

        sheet = client.open_url("https://docs.google.com/spreadsheets/d/<ID>/edit")
        values = sheet.get_values("Class Data!A2:E")

        sheet = client.create("Report", {"Summary": [Row.from_values(["a", "b"])]})

    Note:
        The first use prompts for OAuth authorization unless a token is cached.
    """

    def __init__(
        self,
        credentials_file: str | Path | None = None,
        token_file: str | Path | None = None,
        prompt: Callable[[str], str] | None = input,
        scopes: list[str] | None = None,
        service: Any = None,
    ) -> None:
        """Initialize Sheets client.

        Args:
            credentials_file: OAuth client credentials path.
            token_file: OAuth token cache path.
            prompt: Used to ask for an authorization code on first use. With None,
                a missing token raises AuthorizationRequired instead.
            scopes: OAuth scopes. Defaults to ["sheets"].
            service: Pre-built Sheets service, skipping authentication.
        """
        self._credentials_file = credentials_file
        self._token_file = token_file
        self._prompt = prompt
        self._scopes = scopes
        self._service = service

    def _get_service(self) -> Any:
        """Get or create Sheets API service."""
        if self._service is None:
            self._service = sheets_service(
                self._credentials_file,
                self._token_file,
                prompt=self._prompt,
                scopes=self._scopes,
            )
        return self._service

    def open(self, spreadsheet_id: str) -> Spreadsheet:
        """Open an existing spreadsheet by ID."""
        return Spreadsheet(self._get_service(), spreadsheet_id)

    def open_url(self, url: str) -> Spreadsheet:
        """Open an existing spreadsheet by its URL."""
        return self.open(get_spreadsheet_id(url))

    def create(
        self,
        title: str,
        data: Mapping[str, Sequence[Row]] | None = None,
    ) -> Spreadsheet:
        """Create a new spreadsheet.

        Args:
            title: Spreadsheet title.
            data: Optional sheet title -> rows for the initial sheets.
                Titles with no rows are skipped.

        Returns:
            The created Spreadsheet with its metadata cached.
        """
        service = self._get_service()

        body: dict[str, Any] = {"properties": {"title": title}}
        row_data = to_row_data(data or {})
        if row_data:
            body["sheets"] = [new_sheet(name, rows) for name, rows in row_data.items()]

        result = _execute(
            service.spreadsheets().create(body=body),
            f"create spreadsheet {title!r}",
        )
        logger.info(f"Created spreadsheet {result['spreadsheetId']}")
        return Spreadsheet(service, result["spreadsheetId"], metadata=result)
