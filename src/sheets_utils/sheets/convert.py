"""Conversion of rows and cells into Sheets API request structures.

All builders return plain dicts in the shape `spreadsheets.batchUpdate`
and `spreadsheets.create` expect.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from sheets_utils.sheets.models import Cell, Row

FROZEN_ROW_COUNT = 1


def cell_data(row: Row, cell: Cell) -> dict[str, Any]:
    """Build the CellData for one cell, styled by its row."""
    cell_format: dict[str, Any] = {"textFormat": {"bold": row.bold_text}}
    if row.color is not None:
        cell_format["backgroundColor"] = row.color.to_api()

    if cell.hyperlink:
        value = {"formulaValue": cell.hyperlink_formula()}
    else:
        value = {"stringValue": cell.text}

    return {"userEnteredFormat": cell_format, "userEnteredValue": value}


def row_data(row: Row) -> dict[str, Any]:
    """Build the RowData for a row."""
    return {"values": [cell_data(row, cell) for cell in row.cells]}


def to_row_data(data: Mapping[str, Sequence[Row]]) -> dict[str, list[dict[str, Any]]]:
    """Convert sheet title -> rows into sheet title -> RowData list.

    Titles with no rows are dropped.
    """
    return {title: [row_data(row) for row in rows] for title, rows in data.items() if rows}


def sheet_properties(title: str) -> dict[str, Any]:
    return {
        "title": title,
        "gridProperties": {"frozenRowCount": FROZEN_ROW_COUNT},
    }


def new_sheet(title: str, rows: list[dict[str, Any]]) -> dict[str, Any]:
    """Build a Sheet resource carrying initial data, for spreadsheets.create."""
    return {
        "properties": sheet_properties(title),
        "data": [{"rowData": rows}],
    }


def add_sheet_request(title: str) -> dict[str, Any]:
    return {"addSheet": {"properties": sheet_properties(title)}}


def append_cells_request(sheet_id: int, rows: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "appendCells": {
            "sheetId": sheet_id,
            "rows": rows,
            "fields": "*",
        }
    }


def auto_resize_request(sheet_id: int) -> dict[str, Any]:
    return {
        "autoResizeDimensions": {
            "dimensions": {
                "sheetId": sheet_id,
                "dimension": "COLUMNS",
            }
        }
    }
