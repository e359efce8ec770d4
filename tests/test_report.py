"""Tests for the monthly spending report and overview category combinations."""

import datetime
from unittest.mock import patch

import pytest
from gspread.utils import DateTimeOption, ValueRenderOption

from finplan.report.monthly import (
    MonthlySpendingReport,
    describe_trend,
    format_summary,
    parse_transactions,
    previous_months_average,
    summarize_month,
)
from finplan.report.overview import OverviewCategories, category_combinations
from finplan.settings.preferences import PreferenceStore
from finplan.utils.error import PlannerError

from tests.fakes import FakeSpreadsheet

HEADER = ["Date", "Description", "Type", "Category", "Sub-Category", "Amount"]
EXPENSES = ["Essentials", "Wants/Pleasure"]


@pytest.fixture
def transaction_values():
    return [
        HEADER,
        ["2024-03-02", "Rent", "Essentials", "Housing", "Rent", "1000"],
        ["2024-03-05", "Shop", "Essentials", "Food", "Groceries", "-150.50"],
        ["2024-03-09", "Dinner", "Wants/Pleasure", "Food", "Dining", 49.5],
        ["2024-03-10", "Misc", "Essentials", "Food", "", "20"],
        ["2024-03-25", "Pay", "Income", "Salary", "", "3000"],
        ["2024-02-05", "Shop", "Essentials", "Food", "Groceries", "100"],
        ["2024-01-05", "Shop", "Essentials", "Food", "Groceries", "200"],
        ["", "No date", "Essentials", "Food", "Groceries", "999"],
        ["not a date", "Bad", "Essentials", "Food", "Groceries", "999"],
    ]


class TestParseTransactions:
    def test_rows_without_dates_are_skipped(self, transaction_values):
        transactions = parse_transactions(transaction_values)
        assert len(transactions) == 7
        assert transactions[1].date == datetime.date(2024, 3, 5)
        assert transactions[1].amount == -150.5
        assert transactions[2].amount == 49.5

    def test_european_formatted_row(self):
        transactions = parse_transactions(
            [
                ["Date", "Type", "Category", "Sub-Category", "Amount"],
                ["03.02.2024", "Essentials", "Food", "Groceries", "1.234,56 €"],
                ["2024-02-04", "Essentials", "Food", "Groceries", "-12,5"],
            ]
        )
        assert transactions[0].date == datetime.date(2024, 2, 3)
        assert transactions[0].amount == pytest.approx(1234.56)
        assert transactions[1].date == datetime.date(2024, 2, 4)
        assert transactions[1].amount == pytest.approx(-12.5)

    def test_native_values(self):
        transactions = parse_transactions(
            [
                ["Date", "Type", "Category", "Sub-Category", "Amount"],
                [45325, "Essentials", "Food", "", 1234.56],
            ]
        )
        assert transactions[0].date == datetime.date(2024, 2, 3)
        assert transactions[0].amount == 1234.56

    def test_missing_columns(self):
        with pytest.raises(PlannerError) as exc_info:
            parse_transactions([["Date", "Type", "Amount"]])
        assert exc_info.value.details["missing"] == ["Category"]

    def test_empty_sheet(self):
        with pytest.raises(PlannerError):
            parse_transactions([])


class TestSummary:
    def test_groups_current_month_expenses(self, transaction_values):
        summary = summarize_month(parse_transactions(transaction_values), 2024, 3, EXPENSES, 3)

        assert summary.total == pytest.approx(1220.0)
        assert [c.category for c in summary.categories] == ["Food", "Housing"]
        food = summary.categories[0]
        assert food.total == pytest.approx(220.0)
        assert [line.sub_category for line in food.lines] == ["(None)", "Dining", "Groceries"]

    def test_average_and_trend(self, transaction_values):
        transactions = parse_transactions(transaction_values)
        assert previous_months_average(transactions, "Food", "Groceries", 2024, 3, 3) == 150.0

        summary = summarize_month(transactions, 2024, 3, EXPENSES, 3)
        groceries = summary.categories[0].lines[2]
        assert groceries.average == 150.0
        assert groceries.trend == "→ Stable"

    @pytest.mark.parametrize(
        "amount,average,expected",
        [(150, 100, "↑ 50%"), (50, 100, "↓ 50%"), (105, 100, "→ Stable"), (10, 0, "")],
    )
    def test_describe_trend(self, amount, average, expected):
        assert describe_trend(amount, average) == expected

    def test_format_summary(self, transaction_values):
        summary = summarize_month(parse_transactions(transaction_values), 2024, 3, EXPENSES, 3)
        text = format_summary(summary)
        assert text.startswith("Monthly Spending Report - March 2024")
        assert "TOTAL EXPENSES: 1,220.00" in text

    def test_format_empty_summary(self):
        text = format_summary(summarize_month([], 2024, 3, EXPENSES, 3))
        assert "No expenses recorded." in text

    def test_to_dict(self, transaction_values):
        data = summarize_month(parse_transactions(transaction_values), 2024, 3, EXPENSES, 3).to_dict()
        assert data["categories"][1]["subCategories"][0]["subCategory"] == "Rent"


class TestMonthlySpendingReport:
    def test_generate(self, transaction_values, errors, notifier):
        spreadsheet = FakeSpreadsheet({"Transactions": transaction_values})
        report = MonthlySpendingReport(spreadsheet, errors, notifier, sheet_name="Transactions")
        with patch(
            "finplan.utils.timezone.get_current_time",
            return_value=datetime.datetime(2024, 4, 15),
        ):
            summary = report.generate(offset=1)
        assert (summary.year, summary.month) == (2024, 3)
        assert spreadsheet.sheets["Transactions"].read_options == {
            "value_render_option": ValueRenderOption.unformatted,
            "date_time_render_option": DateTimeOption.formatted_string,
        }
        assert notifier.notifications[0].level == "success"

    def test_missing_sheet_is_reported(self, errors, notifier):
        report = MonthlySpendingReport(FakeSpreadsheet(), errors, notifier, sheet_name="Transactions")
        assert report.generate() is None
        assert errors.handled[0][1] == "Failed to generate monthly spending report"


class TestCategoryCombinations:
    def test_with_sub_categories(self, transaction_values):
        combos = category_combinations(
            transaction_values, True, ["Income", "Essentials", "Wants/Pleasure"]
        )
        assert combos == [
            ["Income", "Salary", ""],
            ["Essentials", "Food", ""],
            ["Essentials", "Food", "Groceries"],
            ["Essentials", "Housing", "Rent"],
            ["Wants/Pleasure", "Food", "Dining"],
        ]

    def test_without_sub_categories(self, transaction_values):
        combos = category_combinations(transaction_values, False, ["Essentials"])
        assert combos == [
            ["Essentials", "Food", ""],
            ["Essentials", "Housing", ""],
            ["Income", "Salary", ""],
            ["Wants/Pleasure", "Food", ""],
        ]

    def test_missing_columns(self):
        with pytest.raises(PlannerError):
            category_combinations([["Date", "Amount"]], True)

    def test_empty_values(self):
        assert category_combinations([], True) == []


class TestOverviewCategories:
    @pytest.fixture
    def overview(self, transaction_values, cache, errors):
        spreadsheet = FakeSpreadsheet(
            {"Transactions": transaction_values, "Settings": [["Preference", "Value"]]}
        )
        preferences = PreferenceStore(spreadsheet, errors, sheet_name="Settings")
        return OverviewCategories(
            spreadsheet, cache, preferences, errors, sheet_name="Transactions"
        ), spreadsheet, preferences

    def test_follows_preference_from_one_cache_entry(self, overview):
        categories, spreadsheet, preferences = overview

        with_subs = categories.get()
        assert ["Essentials", "Food", "Groceries"] in with_subs

        spreadsheet.sheets["Transactions"].fail_reads = True
        preferences.set_show_sub_categories(False)
        flat = categories.get()
        assert ["Essentials", "Food", ""] in flat
        assert all(sub == "" for _, _, sub in flat)

    def test_invalidate_rereads(self, overview):
        categories, spreadsheet, _ = overview
        categories.get()
        spreadsheet.sheets["Transactions"].rows.append(
            ["2024-03-30", "Gift", "Extra", "Gifts", "Birthday", "30"]
        )
        assert ["Extra", "Gifts", "Birthday"] not in categories.get()

        categories.invalidate()
        assert ["Extra", "Gifts", "Birthday"] in categories.get()

    def test_read_failure_returns_empty(self, overview, errors):
        categories, spreadsheet, _ = overview
        spreadsheet.sheets["Transactions"].fail_reads = True
        assert categories.get() == []
        assert errors.handled[-1][1] == "Failed to collect overview categories"


def test_month_with_offset_crosses_year_boundary():
    from finplan.utils.timezone import month_with_offset

    with patch(
        "finplan.utils.timezone.get_current_time",
        return_value=datetime.datetime(2024, 2, 10),
    ):
        assert month_with_offset(0) == (2024, 2)
        assert month_with_offset(3) == (2023, 11)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("1,234.56", 1234.56),
        ("1.234,56 €", 1234.56),
        ("€ -1.234,56", -1234.56),
        ("12,50", 12.5),
        ("1,234", 1234.0),
        ("1.234.567", 1234567.0),
        ("(45.10)", -45.1),
        ("$ 99", 99.0),
        ("abc", 0.0),
        (True, 0.0),
        (7, 7.0),
    ],
)
def test_parse_amount_separator_styles(value, expected):
    from finplan.utils.util import parse_amount

    assert parse_amount(value) == pytest.approx(expected)
