from dataclasses import dataclass, field
from typing import Iterable, NamedTuple, Sequence
import gspread
from finplan.utils.logger import logger
from finplan.utils.error import ErrorService, PlannerError
from finplan.utils.sheet.cache import CacheLayer
from finplan.utils.util import cell_text
import finplan.const as const


class MappingRow(NamedTuple):
    type: str
    category: str
    sub_category: str = ""


@dataclass
class MappingIndex:
    """Lookup tables derived from the Dropdowns sheet.

    Sub-category keys are (type, category) tuples, so no separator can ever
    collide with real data.
    """

    type_to_categories: dict[str, list[str]] = field(default_factory=dict)
    type_category_to_subcategories: dict[tuple[str, str], list[str]] = field(
        default_factory=dict
    )

    def categories_for(self, type_name) -> list[str]:
        return list(self.type_to_categories.get(cell_text(type_name), []))

    def subcategories_for(self, type_name, category) -> list[str]:
        key = (cell_text(type_name), cell_text(category))
        return list(self.type_category_to_subcategories.get(key, []))

    def is_empty(self) -> bool:
        return not self.type_to_categories

    def to_payload(self) -> dict:
        """JSON-safe form for the shared cache"""
        return {
            "typeToCategories": {t: list(c) for t, c in self.type_to_categories.items()},
            "typeCategoryToSubCategories": [
                [t, c, list(subs)]
                for (t, c), subs in self.type_category_to_subcategories.items()
            ],
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "MappingIndex":
        """Rebuild an index from to_payload() output; raises ValueError if malformed"""
        try:
            type_to_categories = {
                str(t): [str(c) for c in categories]
                for t, categories in payload["typeToCategories"].items()
            }
            sub_index = {}
            for type_name, category, subs in payload["typeCategoryToSubCategories"]:
                sub_index[(str(type_name), str(category))] = [str(s) for s in subs]
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise ValueError(f"Malformed dropdown payload: {e}") from e
        return cls(type_to_categories, sub_index)


def _has_header(rows: list[Sequence]) -> bool:
    if not rows or not rows[0]:
        return False
    first = rows[0][0]
    return isinstance(first, str) and first.strip().lower() == "type"


def build(rows: Iterable[Sequence]) -> MappingIndex:
    """
    Build the Type -> Category and (Type, Category) -> Sub-Category indices.

    Args:
        rows: raw sheet rows or MappingRow tuples, in sheet order. A leading
            row whose first cell reads "type" (any case) is treated as a header.

    Returns:
        MappingIndex with de-duplicated values in first-seen order.

    Rows missing a type or category are skipped. A row with an empty
    sub-category still contributes its category.
    """
    rows = list(rows)
    start = 1 if _has_header(rows) else 0

    type_to_categories: dict[str, dict[str, None]] = {}
    sub_index: dict[tuple[str, str], dict[str, None]] = {}

    for row in rows[start:]:
        type_name = cell_text(row[0]) if len(row) > 0 else ""
        category = cell_text(row[1]) if len(row) > 1 else ""
        sub_category = cell_text(row[2]) if len(row) > 2 else ""
        if not type_name or not category:
            continue

        # dict keys keep first-seen order and drop duplicates
        type_to_categories.setdefault(type_name, {})[category] = None
        if sub_category:
            sub_index.setdefault((type_name, category), {})[sub_category] = None

    return MappingIndex(
        {t: list(c) for t, c in type_to_categories.items()},
        {k: list(s) for k, s in sub_index.items()},
    )


class MappingStore:
    """Serves the dropdown indices, rebuilt from the Dropdowns sheet through the cache."""

    def __init__(
        self,
        spreadsheet: gspread.Spreadsheet,
        cache: CacheLayer,
        error_service: ErrorService,
        sheet_name: str = const.DROPDOWNS_SHEET,
        ttl_seconds: float = const.DROPDOWN_CACHE_EXPIRY_SECONDS,
        cache_key: str = const.DROPDOWN_CACHE_KEY,
    ):
        self.spreadsheet = spreadsheet
        self.cache = cache
        self.error_service = error_service
        self.sheet_name = sheet_name
        self.ttl_seconds = ttl_seconds
        self.cache_key = cache_key
        self._index: MappingIndex | None = None

    def load_rows(self) -> list[list]:
        try:
            worksheet = self.spreadsheet.worksheet(self.sheet_name)
        except gspread.WorksheetNotFound:
            raise PlannerError(
                f'Sheet "{self.sheet_name}" not found', {"severity": "high"}
            )
        logger.info(f"Building dropdown cache from sheet {self.sheet_name}")
        return worksheet.get_all_values()

    def _build_payload(self) -> dict:
        return build(self.load_rows()).to_payload()

    def get_index(self) -> MappingIndex:
        if self._index is not None:
            return self._index

        try:
            payload = self.cache.get_or_build(
                self.cache_key, self._build_payload, self.ttl_seconds
            )
            try:
                index = MappingIndex.from_payload(payload)
            except ValueError as e:
                logger.warning(f"Discarding cached dropdown data: {e}")
                self.cache.invalidate(self.cache_key)
                index = build(self.load_rows())
                self.cache.put(self.cache_key, index.to_payload(), self.ttl_seconds)
        except Exception as e:
            self.error_service.log(
                self.error_service.create(
                    "Error building dropdown cache", original_error=str(e)
                )
            )
            return MappingIndex()

        self._index = index
        return index

    def refresh(self) -> MappingIndex:
        """Drop the cached indices and rebuild them from the sheet"""
        self.cache.invalidate(self.cache_key)
        self._index = None
        return self.get_index()

    def categories_for(self, type_name) -> list[str]:
        return self.get_index().categories_for(type_name)

    def subcategories_for(self, type_name, category) -> list[str]:
        return self.get_index().subcategories_for(type_name, category)
