"""In-memory rows and cells written to a spreadsheet."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Color:
    """An RGB color with 0-255 channels."""

    red: int = 0
    green: int = 0
    blue: int = 0

    def __post_init__(self) -> None:
        for name in ("red", "green", "blue"):
            value = getattr(self, name)
            if not 0 <= value <= 255:
                raise ValueError(f"{name} must be between 0 and 255, got {value}")

    @classmethod
    def from_hex(cls, value: str) -> Color:
        """Build a color from a "#rrggbb" string."""
        digits = value.lstrip("#")
        if len(digits) != 6:
            raise ValueError(f"Expected a #rrggbb color, got {value!r}")
        return cls(int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))

    def to_api(self) -> dict[str, float]:
        """Return the color as Sheets API float channels."""
        return {
            "red": self.red / 255.0,
            "green": self.green / 255.0,
            "blue": self.blue / 255.0,
        }


@dataclass
class Cell:
    """A cell's text, optionally linking to a URL."""

    text: str = ""
    hyperlink: str | None = None

    def hyperlink_formula(self) -> str:
        """Return the HYPERLINK formula for this cell."""
        url = _quote(self.hyperlink or "")
        return f'=HYPERLINK("{url}","{_quote(self.text)}")'


@dataclass
class Row:
    """A row of cells sharing bold and background formatting."""

    cells: list[Cell] = field(default_factory=list)
    bold_text: bool = False
    color: Color | None = None

    @classmethod
    def from_values(cls, values, bold_text: bool = False, color: Color | None = None) -> Row:
        """Build a row of plain cells from arbitrary values."""
        return cls(
            cells=[Cell(text="" if v is None else str(v)) for v in values],
            bold_text=bold_text,
            color=color,
        )

    def to_cells(self) -> list[str]:
        """Return the text of each cell."""
        return [cell.text for cell in self.cells]


def _quote(value: str) -> str:
    # Sheets formula strings escape quotes by doubling them
    return value.replace('"', '""')
