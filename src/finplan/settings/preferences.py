import gspread
from gspread.utils import ValueRenderOption, rowcol_to_a1
from finplan.utils.logger import logger
from finplan.utils.error import ErrorService
from finplan.utils.notify import Notifier
from finplan.utils.sheet.client import get_or_create_worksheet
import finplan.const as const

_TRUE_VALUES = ("true", 1, "1")
_FALSE_VALUES = ("false", 0, "0")


def to_boolean(value, default=False) -> bool:
    """Coerce a stored preference to bool, falling back to bool(default)"""
    if isinstance(value, bool):
        return value
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return bool(default)


def to_number(value, default=0):
    """Coerce a stored preference to a number, falling back to the default"""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    try:
        if isinstance(value, bool):
            raise TypeError("booleans are not numbers")
        return float(value)
    except (TypeError, ValueError):
        if isinstance(default, (int, float)) and not isinstance(default, bool):
            return default
        if isinstance(default, str):
            try:
                return float(default)
            except ValueError:
                pass
        return 0


class PreferenceStore:
    """
    Key/value preferences stored on a hidden "Settings" sheet.

    Column A holds the key and column B the value, below a fixed
    "Preference | Value" header. Reads and writes never raise: failures are
    reported through the error service and reads return the caller's default.
    """

    def __init__(
        self,
        spreadsheet: gspread.Spreadsheet,
        error_service: ErrorService,
        notifier: Notifier | None = None,
        sheet_name: str = const.SETTINGS_SHEET,
    ):
        self.spreadsheet = spreadsheet
        self.error_service = error_service
        self.notifier = notifier
        self.sheet_name = sheet_name

    def _get_settings_sheet(self) -> gspread.Worksheet:
        return get_or_create_worksheet(
            self.spreadsheet,
            self.sheet_name,
            headers=const.SETTINGS_HEADERS,
            hidden=True,
        )

    def _read_rows(self, sheet: gspread.Worksheet) -> list[list]:
        return sheet.get_all_values(value_render_option=ValueRenderOption.unformatted)

    def _find_preference(self, sheet: gspread.Worksheet, key: str):
        """Return (row_number, value) of the first row holding key, else None"""
        rows = self._read_rows(sheet)
        for i, row in enumerate(rows[1:], start=2):
            if row and row[0] == key:
                return i, (row[1] if len(row) > 1 else "")
        return None

    def get_value(self, key: str, default=None):
        try:
            preference = self._find_preference(self._get_settings_sheet(), key)
            return preference[1] if preference else default
        except Exception as e:
            self.error_service.handle(
                self.error_service.create(
                    f"Error getting setting value for key: {key}",
                    original_error=str(e),
                    severity="medium",
                ),
                f"Failed to get setting: {key}",
            )
            return default

    def set_value(self, key: str, value) -> None:
        try:
            sheet = self._get_settings_sheet()
            rows = self._read_rows(sheet)
            for i, row in enumerate(rows[1:], start=2):
                if row and row[0] == key:
                    sheet.update_cell(i, 2, value)
                    logger.debug(f"Updated preference {key} at row {i}")
                    return

            next_row = max(1, len(rows)) + 1
            sheet.update(
                values=[[key, value]],
                range_name=f"A{next_row}:B{next_row}",
                raw=True,
            )
            logger.debug(f"Added preference {key} at row {next_row}")
        except Exception as e:
            self.error_service.handle(
                self.error_service.create(
                    f"Error setting setting value for key: {key}",
                    original_error=str(e),
                    value_to_set=value,
                    severity="high",
                ),
                f"Failed to set setting: {key}",
            )

    def get_boolean_value(self, key: str, default: bool = False) -> bool:
        return to_boolean(self.get_value(key, default), default)

    def get_numeric_value(self, key: str, default=0):
        return to_number(self.get_value(key, default), default)

    def toggle_boolean_value(self, key: str, default: bool = False) -> bool:
        """Flip a boolean preference, store it as a native bool and return it"""
        new_value = not self.get_boolean_value(key, default)
        self.set_value(key, new_value)
        return new_value

    def get_show_sub_categories(self) -> bool:
        return self.get_boolean_value(const.SHOW_SUB_CATEGORIES, True)

    def set_show_sub_categories(self, value) -> None:
        self.set_value(
            const.SHOW_SUB_CATEGORIES, value if isinstance(value, bool) else True
        )

    def toggle_show_sub_categories(self) -> bool:
        return self.toggle_boolean_value(const.SHOW_SUB_CATEGORIES, True)

    def get_all_preferences(self) -> dict:
        try:
            rows = self._read_rows(self._get_settings_sheet())
            preferences = {}
            for row in rows[1:]:
                if row and row[0] is not None and row[0] != "":
                    preferences[row[0]] = row[1] if len(row) > 1 else ""
            return preferences
        except Exception as e:
            self.error_service.handle(
                self.error_service.create(
                    "Error getting all preferences",
                    original_error=str(e),
                    severity="medium",
                ),
                "Failed to retrieve all settings.",
            )
            return {}

    def reset_all_preferences(self) -> None:
        """Clear every preference row, keeping the header and the sheet"""
        try:
            sheet = self._get_settings_sheet()
            last_row = len(self._read_rows(sheet))
            if last_row > 1:
                last_col = max(sheet.col_count, len(const.SETTINGS_HEADERS))
                sheet.batch_clear([f"A2:{rowcol_to_a1(last_row, last_col)}"])
            if self.notifier is not None:
                self.notifier.success("All preferences have been reset.")
        except Exception as e:
            self.error_service.handle(
                self.error_service.create(
                    "Error resetting all preferences",
                    original_error=str(e),
                    severity="high",
                ),
                "Failed to reset settings.",
            )
