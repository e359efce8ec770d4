from dataclasses import dataclass
from typing import Iterator
from finplan.utils.logger import logger
from finplan.utils.error import ErrorService, PlannerError
from finplan.utils.util import cell_text
from finplan.dropdown.mapping import MappingIndex, MappingStore
import finplan.const as const


@dataclass(frozen=True)
class EditEvent:
    """The edited rectangle reported by the workbook trigger (1-based)."""

    sheet_name: str
    row: int
    column: int
    num_rows: int = 1
    num_columns: int = 1

    @classmethod
    def from_payload(cls, payload: dict) -> "EditEvent":
        if not isinstance(payload, dict):
            raise PlannerError("Edit event must be a JSON object", {"severity": "low"})

        sheet_name = payload.get("sheetName") or payload.get("sheet_name")
        if not isinstance(sheet_name, str) or not sheet_name:
            raise PlannerError("Edit event is missing sheetName", {"payload": payload})

        values = {}
        for name, keys, default in (
            ("row", ("row",), None),
            ("column", ("column", "col"), None),
            ("num_rows", ("numRows", "num_rows"), 1),
            ("num_columns", ("numColumns", "num_columns"), 1),
        ):
            raw = next((payload[k] for k in keys if k in payload), default)
            if isinstance(raw, bool) or not isinstance(raw, int) or raw < 1:
                raise PlannerError(
                    f"Edit event has an invalid {name}: {raw!r}", {"payload": payload}
                )
            values[name] = raw

        return cls(sheet_name=sheet_name, **values)

    def cells(self) -> Iterator[tuple[int, int]]:
        """Every (row, column) in the rectangle, row-major"""
        for row in range(self.row, self.row + self.num_rows):
            for col in range(self.column, self.column + self.num_columns):
                yield row, col


class CascadeController:
    """
    Keeps the Type -> Category -> Sub-Category dropdowns of the Transactions
    sheet consistent after each edit.

    A row's state is read from its cells at event time. Editing an upper
    column recomputes the allowed values of the column below it and clears
    any downstream value that is no longer valid, marking the cell as
    pending. Allowed-value lists are soft: other values can still be typed.
    """

    def __init__(
        self,
        surface,
        mapping_store: MappingStore,
        error_service: ErrorService,
        sheet_name: str = const.TRANSACTIONS_SHEET,
        header_rows: int = const.HEADER_ROWS,
        type_column: int = const.TYPE_COLUMN,
        category_column: int = const.CATEGORY_COLUMN,
        sub_category_column: int = const.SUB_CATEGORY_COLUMN,
        placeholder: str = const.PLACEHOLDER_TEXT,
        pending_background: str = const.PENDING_BACKGROUND,
    ):
        self.surface = surface
        self.mapping_store = mapping_store
        self.error_service = error_service
        self.sheet_name = sheet_name
        self.header_rows = header_rows
        self.type_column = type_column
        self.category_column = category_column
        self.sub_category_column = sub_category_column
        self.placeholder = placeholder
        self.pending_background = pending_background

    def handle_edit(self, event: EditEvent) -> int:
        """Apply the cascade to every tracked cell of the edit; returns cells processed.

        Never raises: failures are logged and reported to the user.
        """
        try:
            if event.sheet_name != self.sheet_name:
                logger.debug(f"Ignoring edit on sheet {event.sheet_name}")
                return 0

            targets = list(self._targets(event))
            if not targets:
                return 0

            index = self.mapping_store.get_index()
            rows = [row for row, _ in targets]
            columns = self._tracked_columns
            self.surface.load(min(rows), max(rows), min(columns), max(columns))
            for row, col in targets:
                if col == self.type_column:
                    self._handle_type_edit(row, index)
                elif col == self.category_column:
                    self._handle_category_edit(row, index)
                elif col == self.sub_category_column:
                    self._handle_sub_category_edit(row)
            self.surface.flush()

            logger.info(
                f"Updated dropdowns for {len(targets)} cell(s) starting at "
                f"R{event.row}C{event.column} on {event.sheet_name}"
            )
            return len(targets)
        except Exception as e:
            # Nothing is written for an event that fails part way
            self.surface.discard()
            logger.error(f"Error in dropdown edit handler: {e}", exc_info=True)
            self.error_service.handle(
                self.error_service.create(
                    "Error in dropdown edit handler", original_error=str(e)
                ),
                const.DROPDOWN_ERROR_MSG,
            )
            return 0

    @property
    def _tracked_columns(self) -> tuple[int, int, int]:
        return (self.type_column, self.category_column, self.sub_category_column)

    def _targets(self, event: EditEvent) -> Iterator[tuple[int, int]]:
        for row, col in event.cells():
            if row <= self.header_rows:
                continue
            if col in self._tracked_columns:
                yield row, col

    def _handle_type_edit(self, row: int, index: MappingIndex) -> None:
        type_value = self._value(row, self.type_column)
        old_category = self._value(row, self.category_column)
        categories = index.categories_for(type_value)

        self._apply_allowed_values(row, self.category_column, categories)

        if old_category and old_category not in categories:
            self.surface.clear_content(row, self.category_column)
            self.surface.clear_content(row, self.sub_category_column)
            self.surface.clear_allowed_values(row, self.sub_category_column)
            self._mark_pending(row, self.category_column)
            old_category = ""
        elif categories and not old_category:
            self._mark_pending(row, self.category_column)

        self._clear_placeholder(row, self.type_column, type_value)
        if old_category and old_category != self.placeholder:
            self.surface.clear_background(row, self.category_column)

    def _handle_category_edit(self, row: int, index: MappingIndex) -> None:
        type_value = self._value(row, self.type_column)
        category = self._value(row, self.category_column)
        old_sub_category = self._value(row, self.sub_category_column)

        if type_value and category and category != self.placeholder:
            sub_categories = index.subcategories_for(type_value, category)
            self._apply_allowed_values(row, self.sub_category_column, sub_categories)

            if old_sub_category and old_sub_category not in sub_categories:
                self.surface.clear_content(row, self.sub_category_column)
                self._mark_pending(row, self.sub_category_column)
                old_sub_category = ""
            elif sub_categories and not old_sub_category:
                self._mark_pending(row, self.sub_category_column)
        else:
            # Nothing valid above: the sub-category cannot be valid either
            self.surface.clear_content(row, self.sub_category_column)
            self.surface.clear_allowed_values(row, self.sub_category_column)
            old_sub_category = ""

        self._clear_placeholder(row, self.category_column, category)
        if old_sub_category and old_sub_category != self.placeholder:
            self.surface.clear_background(row, self.sub_category_column)

    def _handle_sub_category_edit(self, row: int) -> None:
        sub_category = self._value(row, self.sub_category_column)
        self._clear_placeholder(row, self.sub_category_column, sub_category)
        self.surface.clear_background(row, self.sub_category_column)

    def _apply_allowed_values(self, row: int, col: int, options: list[str]) -> None:
        """Replace the cell's dropdown; an empty list leaves the cell free text"""
        if not options:
            self.surface.clear_allowed_values(row, col)
            return
        self.surface.set_allowed_values(row, col, [self.placeholder, *options])

    def _clear_placeholder(self, row: int, col: int, value: str) -> None:
        if value == self.placeholder:
            self.surface.clear_content(row, col)

    def _mark_pending(self, row: int, col: int) -> None:
        self.surface.set_background(row, col, self.pending_background)

    def _value(self, row: int, col: int) -> str:
        return cell_text(self.surface.get_value(row, col))
