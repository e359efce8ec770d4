"""Tests for error reporting to the console, the Error Log sheet and the user."""

import logging

import pytest

from finplan.utils.error import ErrorService, PlannerError
from finplan.utils.notify import Notifier

from tests.fakes import FakeWorksheet


@pytest.fixture
def error_sheet():
    return FakeWorksheet("Error Log", [["Timestamp", "Error Type", "Message", "Details"]])


class TestPlannerError:
    def test_details_and_severity(self):
        error = PlannerError("boom", {"severity": "high", "key": "X"})
        assert str(error) == "boom"
        assert error.severity == "high"
        assert error.details["key"] == "X"
        assert error.timestamp is not None

    def test_default_severity(self):
        assert PlannerError("boom").severity == "low"


class TestErrorService:
    def test_create(self):
        error = ErrorService().create("Something failed", severity="medium", original_error="x")
        assert isinstance(error, PlannerError)
        assert error.details == {"severity": "medium", "original_error": "x"}

    def test_log_appends_to_error_sheet(self, error_sheet):
        service = ErrorService(error_sheet=lambda: error_sheet)
        service.log(service.create("Sheet missing", severity="high"))

        row = error_sheet.rows[1]
        assert row[1] == "PlannerError"
        assert row[2] == "Sheet missing"
        assert '"severity": "high"' in row[3]
        range_name, cell_format = error_sheet.formats[-1]
        assert range_name == "A2:D2"
        assert cell_format["backgroundColor"]["red"] == pytest.approx(0xF9 / 255)

    def test_log_plain_exception(self, error_sheet):
        service = ErrorService(error_sheet=lambda: error_sheet)
        service.log(ValueError("bad value"))
        assert error_sheet.rows[1][1:3] == ["ValueError", "bad value"]

    def test_sheet_failure_does_not_raise(self, error_sheet):
        error_sheet.fail_writes = True
        service = ErrorService(error_sheet=lambda: error_sheet)
        service.log(service.create("boom"))
        assert len(error_sheet.rows) == 1

    def test_handle_notifies_user(self):
        notifier = Notifier()
        service = ErrorService(notifier=notifier)
        service.handle(service.create("internal detail"), "Failed to refresh.")
        service.handle(service.create("internal detail"))

        messages = notifier.drain()
        assert messages[0] == {"title": "Error", "message": "Failed to refresh.", "level": "error"}
        assert messages[1]["message"] == "internal detail"

    def test_wrap_reports_then_reraises(self):
        notifier = Notifier()
        service = ErrorService(notifier=notifier)

        def explode(value):
            raise KeyError(value)

        wrapped = service.wrap(explode, "Could not do it.")
        with pytest.raises(KeyError):
            wrapped("x")
        assert notifier.notifications[0].message == "Could not do it."

    def test_wrap_passes_results_through(self):
        service = ErrorService()
        assert service.wrap(lambda a, b: a + b)(2, 3) == 5

    @pytest.mark.parametrize("severity,level", [("warning", logging.WARNING), ("info", logging.INFO)])
    def test_routine_severities_stay_off_the_sheet(self, error_sheet, caplog, severity, level):
        service = ErrorService(error_sheet=lambda: error_sheet)
        with caplog.at_level(logging.INFO, logger="finplan"):
            service.log(service.create("Shared cache read failed", severity=severity))

        assert len(error_sheet.rows) == 1
        assert caplog.records[-1].levelno == level

    def test_default_severity_logs_as_error(self, error_sheet, caplog):
        service = ErrorService(error_sheet=lambda: error_sheet)
        with caplog.at_level(logging.INFO, logger="finplan"):
            service.log(service.create("Sheet missing"))

        assert len(error_sheet.rows) == 2
        assert caplog.records[-1].levelno == logging.ERROR
