import gspread
from gspread.utils import rowcol_to_a1, convert_hex_to_colors_dict
from finplan.utils.logger import logger


class SheetSurface:
    """Cell-level read/write primitives on one worksheet.

    Rows and columns are 1-based, as in the Sheets UI. Allowed-value lists are
    written as soft data validation: the dropdown is shown but values outside
    the list are still accepted.

    Writes are queued and sent as a single ``batch_update`` by ``flush()``.
    Values written through the surface are visible to later ``get_value``
    calls before the flush. ``load()`` reads a block of cells in one call so
    the per-cell reads that follow need no API call.
    """

    def __init__(self, worksheet: gspread.Worksheet):
        self.worksheet = worksheet
        self._values: dict[tuple[int, int], object] = {}
        self._pending: list[dict] = []

    @property
    def name(self) -> str:
        return self.worksheet.title

    def load(self, first_row: int, last_row: int, first_col: int, last_col: int) -> None:
        """Read a rectangle of values with one request"""
        a1 = f"{rowcol_to_a1(first_row, first_col)}:{rowcol_to_a1(last_row, last_col)}"
        block = self.worksheet.get(a1)
        for r in range(last_row - first_row + 1):
            row_values = block[r] if r < len(block) else []
            for c in range(last_col - first_col + 1):
                value = row_values[c] if c < len(row_values) else ""
                self._values[(first_row + r, first_col + c)] = value

    def get_value(self, row: int, col: int):
        if (row, col) not in self._values:
            self._values[(row, col)] = self.worksheet.cell(row, col).value
        value = self._values[(row, col)]
        return "" if value is None else value

    def set_value(self, row: int, col: int, value) -> None:
        self._values[(row, col)] = value
        self._queue(
            {
                "updateCells": {
                    "range": self._grid_range(row, col),
                    "rows": [{"values": [{"userEnteredValue": _extended_value(value)}]}],
                    "fields": "userEnteredValue",
                }
            }
        )

    def clear_content(self, row: int, col: int) -> None:
        # A field mask with no data clears the field
        self._values[(row, col)] = ""
        self._queue(
            {"updateCells": {"range": self._grid_range(row, col), "fields": "userEnteredValue"}}
        )

    def set_allowed_values(self, row: int, col: int, values: list[str]) -> None:
        """Replace the cell's validation with a soft one-of-list rule"""
        rule = {
            "condition": {
                "type": "ONE_OF_LIST",
                "values": [{"userEnteredValue": str(v)} for v in values],
            },
            "strict": False,
            "showCustomUi": True,
        }
        self._queue({"setDataValidation": {"range": self._grid_range(row, col), "rule": rule}})

    def clear_allowed_values(self, row: int, col: int) -> None:
        self._queue({"setDataValidation": {"range": self._grid_range(row, col)}})

    def set_background(self, row: int, col: int, color: str) -> None:
        self._repeat_background(
            row, col, {"backgroundColor": convert_hex_to_colors_dict(color)}
        )

    def clear_background(self, row: int, col: int) -> None:
        # An empty format with the field mask resets the color to default
        self._repeat_background(row, col, {})

    def flush(self) -> int:
        """Send every queued write in one batch_update; returns the request count

        Cached values are dropped so the next event reads fresh state.
        """
        if not self._pending:
            self._values = {}
            return 0
        requests, self._pending = self._pending, []
        self._values = {}
        self.worksheet.spreadsheet.batch_update({"requests": requests})
        logger.debug(f"Sent {len(requests)} update(s) to {self.name}")
        return len(requests)

    def discard(self) -> None:
        """Drop queued writes and cached values without sending anything"""
        self._pending = []
        self._values = {}

    def _repeat_background(self, row: int, col: int, cell_format: dict) -> None:
        self._queue(
            {
                "repeatCell": {
                    "range": self._grid_range(row, col),
                    "cell": {"userEnteredFormat": cell_format},
                    "fields": "userEnteredFormat.backgroundColor",
                }
            }
        )

    def _grid_range(self, row: int, col: int) -> dict:
        return {
            "sheetId": self.worksheet.id,
            "startRowIndex": row - 1,
            "endRowIndex": row,
            "startColumnIndex": col - 1,
            "endColumnIndex": col,
        }

    def _queue(self, request: dict) -> None:
        self._pending.append(request)


def _extended_value(value) -> dict:
    if isinstance(value, bool):
        return {"boolValue": value}
    if isinstance(value, (int, float)):
        return {"numberValue": value}
    return {"stringValue": "" if value is None else str(value)}
