import datetime
import pytz
from dateutil.relativedelta import relativedelta
from finplan.config import config

timezone = pytz.timezone(config["settings"]["timezone"])


def get_current_time() -> datetime.datetime:
    """Get current time in the configured timezone"""
    return datetime.datetime.now(timezone)


def month_with_offset(offset: int = 0) -> tuple[int, int]:
    """(year, month) of the current month minus ``offset`` months"""
    target = get_current_time() - relativedelta(months=offset)
    return target.year, target.month


def format_timestamp(value: datetime.datetime | None = None) -> str:
    return (value or get_current_time()).strftime("%Y-%m-%d %H:%M:%S")
