import datetime
import re
from collections import defaultdict
from dataclasses import dataclass, field
import gspread
from gspread.utils import DateTimeOption, ValueRenderOption
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta
from finplan.utils.logger import logger
from finplan.utils.error import ErrorService, PlannerError
from finplan.utils.notify import Notifier
from finplan.utils.timezone import month_with_offset
from finplan.utils.util import cell_text, parse_amount, get_month_display
import finplan.const as const


@dataclass
class Transaction:
    date: datetime.date
    type: str
    category: str
    sub_category: str
    amount: float


@dataclass
class SpendingLine:
    category: str
    sub_category: str
    amount: float
    share: float
    average: float
    trend: str


@dataclass
class CategorySpending:
    category: str
    total: float
    share: float
    lines: list[SpendingLine] = field(default_factory=list)


@dataclass
class MonthlySummary:
    year: int
    month: int
    total: float = 0.0
    categories: list[CategorySpending] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "month": self.month,
            "total": self.total,
            "categories": [
                {
                    "category": c.category,
                    "total": c.total,
                    "share": c.share,
                    "subCategories": [
                        {
                            "subCategory": line.sub_category,
                            "amount": line.amount,
                            "share": line.share,
                            "average": line.average,
                            "trend": line.trend,
                        }
                        for line in c.lines
                    ],
                }
                for c in self.categories
            ],
        }


# Day zero of Sheets date serial numbers
SHEETS_EPOCH = datetime.date(1899, 12, 30)
_DOTTED_DATE = re.compile(r"\d{1,2}\.\d{1,2}\.\d{2,4}\b")


def _parse_date(value) -> datetime.date | None:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return SHEETS_EPOCH + datetime.timedelta(days=int(value))
    text = cell_text(value)
    if not text:
        return None
    try:
        # "03.02.2024" is the day-first European style
        dayfirst = _DOTTED_DATE.match(text) is not None
        return date_parser.parse(text, dayfirst=dayfirst).date()
    except (ValueError, OverflowError):
        logger.debug(f"Skipping row with unparseable date '{text}'")
        return None


def parse_transactions(values: list[list]) -> list[Transaction]:
    """Convert raw Transactions sheet values (header row first) into records"""
    if not values:
        raise PlannerError("Transactions sheet is empty", {"severity": "high"})

    headers = [cell_text(h) for h in values[0]]
    names = const.TRANSACTION_HEADERS
    indices = {key: headers.index(name) if name in headers else -1 for key, name in names.items()}
    missing = [names[k] for k in ("date", "type", "category", "amount") if indices[k] < 0]
    if missing:
        raise PlannerError(
            "Could not find required columns in Transaction sheet",
            {"severity": "high", "missing": missing},
        )

    def get(row, key):
        i = indices[key]
        return row[i] if 0 <= i < len(row) else ""

    transactions = []
    for row in values[1:]:
        date = _parse_date(get(row, "date"))
        if date is None:
            continue
        transactions.append(
            Transaction(
                date=date,
                type=cell_text(get(row, "type")),
                category=cell_text(get(row, "category")),
                sub_category=cell_text(get(row, "sub_category")),
                amount=parse_amount(get(row, "amount")),
            )
        )
    return transactions


def _group_expenses(transactions, year, month, expense_types) -> dict:
    grouped = defaultdict(lambda: defaultdict(float))
    for t in transactions:
        if t.date.year != year or t.date.month != month or t.type not in expense_types:
            continue
        grouped[t.category][t.sub_category or const.NO_SUB_CATEGORY] += abs(t.amount)
    return grouped


def previous_months_average(
    transactions: list[Transaction],
    category: str,
    sub_category: str,
    year: int,
    month: int,
    months_to_look_back: int,
) -> float:
    """Average monthly spend on (category, sub-category) over the months that had any"""
    total = 0.0
    months_found = 0
    current = datetime.date(year, month, 1)
    for i in range(1, months_to_look_back + 1):
        target = current - relativedelta(months=i)
        matches = [
            t
            for t in transactions
            if t.date.year == target.year
            and t.date.month == target.month
            and t.category == category
            and (t.sub_category or const.NO_SUB_CATEGORY) == sub_category
        ]
        if matches:
            total += sum(abs(t.amount) for t in matches)
            months_found += 1
    return total / months_found if months_found else 0.0


def describe_trend(amount: float, average: float) -> str:
    if average <= 0:
        return ""
    change = (amount - average) / average
    if change > const.TREND_THRESHOLD:
        return f"↑ {change * 100:.0f}%"
    if change < -const.TREND_THRESHOLD:
        return f"↓ {abs(change) * 100:.0f}%"
    return "→ Stable"


def summarize_month(
    transactions: list[Transaction],
    year: int,
    month: int,
    expense_types: list[str] = const.EXPENSE_TYPES,
    months_to_look_back: int = const.MONTHS_TO_LOOK_BACK,
) -> MonthlySummary:
    """Expense totals for one month grouped by category and sub-category"""
    grouped = _group_expenses(transactions, year, month, expense_types)
    total = sum(sum(subs.values()) for subs in grouped.values())
    summary = MonthlySummary(year=year, month=month, total=total)

    for category in sorted(grouped):
        subs = grouped[category]
        category_total = sum(subs.values())
        spending = CategorySpending(
            category=category,
            total=category_total,
            share=category_total / total if total > 0 else 0.0,
        )
        for sub_category in sorted(subs):
            amount = subs[sub_category]
            average = previous_months_average(
                transactions, category, sub_category, year, month, months_to_look_back
            )
            spending.lines.append(
                SpendingLine(
                    category=category,
                    sub_category=sub_category,
                    amount=amount,
                    share=amount / total if total > 0 else 0.0,
                    average=average,
                    trend=describe_trend(amount, average),
                )
            )
        summary.categories.append(spending)

    return summary


def format_summary(summary: MonthlySummary) -> str:
    lines = [f"Monthly Spending Report - {get_month_display(summary.month, summary.year)}"]
    if not summary.categories:
        lines.append("No expenses recorded.")
        return "\n".join(lines)

    for c in summary.categories:
        lines.append(f"\n{c.category}: {c.total:,.2f} ({c.share:.1%})")
        for line in c.lines:
            avg = f" | avg {line.average:,.2f}" if line.average else ""
            trend = f" | {line.trend}" if line.trend else ""
            lines.append(
                f"  • {line.sub_category}: {line.amount:,.2f} ({line.share:.1%}){avg}{trend}"
            )
    lines.append(f"\nTOTAL EXPENSES: {summary.total:,.2f}")
    return "\n".join(lines)


class MonthlySpendingReport:
    def __init__(
        self,
        spreadsheet: gspread.Spreadsheet,
        error_service: ErrorService,
        notifier: Notifier | None = None,
        sheet_name: str = const.TRANSACTIONS_SHEET,
    ):
        self.spreadsheet = spreadsheet
        self.error_service = error_service
        self.notifier = notifier
        self.sheet_name = sheet_name

    def generate(self, offset: int = 0) -> MonthlySummary | None:
        """Summarize the current month minus ``offset`` months; None on failure"""
        try:
            year, month = month_with_offset(offset)
            try:
                worksheet = self.spreadsheet.worksheet(self.sheet_name)
            except gspread.WorksheetNotFound:
                raise PlannerError(
                    f"Could not find '{self.sheet_name}' sheet", {"severity": "high"}
                )
            # Native numbers; dates as the sheet displays them
            values = worksheet.get_all_values(
                value_render_option=ValueRenderOption.unformatted,
                date_time_render_option=DateTimeOption.formatted_string,
            )
            transactions = parse_transactions(values)
            summary = summarize_month(transactions, year, month)
            if self.notifier is not None:
                self.notifier.success("Monthly spending report generated!")
            return summary
        except Exception as e:
            self.error_service.handle(e, "Failed to generate monthly spending report")
            return None
