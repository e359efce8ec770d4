from dataclasses import dataclass
from pathlib import Path
import gspread
from finplan.config import PROJECT_ROOT
from finplan.utils.error import ErrorService
from finplan.utils.notify import Notifier
from finplan.utils.sheet.cache import CacheLayer, FileCacheStore
from finplan.utils.sheet.client import connect, get_or_create_worksheet
from finplan.utils.sheet.surface import SheetSurface
from finplan.dropdown.mapping import MappingStore
from finplan.dropdown.cascade import CascadeController
from finplan.settings.preferences import PreferenceStore
from finplan.report.monthly import MonthlySpendingReport
from finplan.report.overview import OverviewCategories
import finplan.const as const

# The shared tier outlives requests; everything else is built per request
_shared_store = None


def get_shared_store() -> FileCacheStore:
    global _shared_store
    if _shared_store is None:
        path = Path(const.CACHE_STORE_FILE)
        if not path.is_absolute():
            path = PROJECT_ROOT / path
        _shared_store = FileCacheStore(path)
    return _shared_store


@dataclass
class Services:
    spreadsheet: gspread.Spreadsheet
    notifier: Notifier
    errors: ErrorService
    cache: CacheLayer
    mapping: MappingStore
    preferences: PreferenceStore
    monthly_report: MonthlySpendingReport
    overview: OverviewCategories

    def cascade(self) -> CascadeController:
        """Controller bound to the Transactions sheet (opened on demand)"""
        worksheet = self.spreadsheet.worksheet(const.TRANSACTIONS_SHEET)
        return CascadeController(SheetSurface(worksheet), self.mapping, self.errors)


def build_services(spreadsheet: gspread.Spreadsheet | None = None, shared=None) -> Services:
    """Wire one set of services for a single request, command or job run"""
    spreadsheet = spreadsheet or connect()
    notifier = Notifier()
    errors = ErrorService(
        notifier,
        error_sheet=lambda: get_or_create_worksheet(
            spreadsheet, const.ERROR_LOG_SHEET, headers=const.ERROR_LOG_HEADERS
        ),
    )
    cache = CacheLayer(
        shared=shared if shared is not None else get_shared_store(),
        error_service=errors,
    )
    preferences = PreferenceStore(spreadsheet, errors, notifier)
    return Services(
        spreadsheet=spreadsheet,
        notifier=notifier,
        errors=errors,
        cache=cache,
        mapping=MappingStore(spreadsheet, cache, errors),
        preferences=preferences,
        monthly_report=MonthlySpendingReport(spreadsheet, errors, notifier),
        overview=OverviewCategories(spreadsheet, cache, preferences, errors),
    )
