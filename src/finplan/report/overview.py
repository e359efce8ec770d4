import gspread
from finplan.utils.logger import logger
from finplan.utils.error import ErrorService, PlannerError
from finplan.utils.sheet.cache import CacheLayer
from finplan.utils.util import cell_text
from finplan.settings.preferences import PreferenceStore
import finplan.const as const


def category_combinations(
    values: list[list],
    show_sub_categories: bool,
    type_order: list[str] = const.TYPE_ORDER,
) -> list[list[str]]:
    """Unique [type, category, sub-category] rows of the Transactions sheet.

    Sub-categories are blanked when hidden. Rows are ordered by the configured
    type order (unknown types last), then category and sub-category.
    """
    if not values:
        return []
    headers = [cell_text(h) for h in values[0]]
    names = const.TRANSACTION_HEADERS
    if names["type"] not in headers or names["category"] not in headers:
        raise PlannerError(
            "Could not find Type/Category columns in Transaction sheet",
            {"severity": "high"},
        )
    type_col = headers.index(names["type"])
    category_col = headers.index(names["category"])
    sub_col = headers.index(names["sub_category"]) if names["sub_category"] in headers else -1

    seen = {}
    for row in values[1:]:
        type_name = cell_text(row[type_col]) if type_col < len(row) else ""
        category = cell_text(row[category_col]) if category_col < len(row) else ""
        if not type_name or not category:
            continue
        sub_category = ""
        if show_sub_categories and 0 <= sub_col < len(row):
            sub_category = cell_text(row[sub_col])
        seen[(type_name, category, sub_category)] = None

    def sort_key(combo):
        type_name, category, sub_category = combo
        rank = type_order.index(type_name) if type_name in type_order else len(type_order)
        return rank, type_name, category, sub_category

    return [list(combo) for combo in sorted(seen, key=sort_key)]


class OverviewCategories:
    """Category combinations for the overview, honoring the ShowSubCategories preference"""

    def __init__(
        self,
        spreadsheet: gspread.Spreadsheet,
        cache: CacheLayer,
        preferences: PreferenceStore,
        error_service: ErrorService,
        sheet_name: str = const.TRANSACTIONS_SHEET,
    ):
        self.spreadsheet = spreadsheet
        self.cache = cache
        self.preferences = preferences
        self.error_service = error_service
        self.sheet_name = sheet_name

    def _load(self) -> dict:
        try:
            worksheet = self.spreadsheet.worksheet(self.sheet_name)
        except gspread.WorksheetNotFound:
            raise PlannerError(
                f"Could not find '{self.sheet_name}' sheet", {"severity": "high"}
            )
        logger.info(f"Collecting category combinations from {self.sheet_name}")
        values = worksheet.get_all_values()
        # Both variants share one cache entry so toggling needs no re-read
        return {
            "sub": category_combinations(values, True),
            "flat": category_combinations(values, False),
        }

    def get(self) -> list[list[str]]:
        show_sub_categories = self.preferences.get_show_sub_categories()
        try:
            combinations = self.cache.get_or_build(
                const.CATEGORY_COMBINATIONS_CACHE_KEY, self._load
            )
            return combinations["sub" if show_sub_categories else "flat"]
        except Exception as e:
            self.error_service.handle(e, "Failed to collect overview categories")
            return []

    def invalidate(self) -> None:
        self.cache.invalidate(const.CATEGORY_COMBINATIONS_CACHE_KEY)
