import re
import json
from datetime import date, datetime
from decimal import Decimal
from finplan.const import MONTH_NAMES


def get_month_display(month: int, year: int) -> str:
    return f"{MONTH_NAMES[month - 1]} {year}"


def to_json(data, indent=None):
    """Safely convert any object to a JSON string."""

    def default(o):
        if isinstance(o, (datetime, date, Decimal)):
            return str(o)
        if isinstance(o, BaseException):
            return f"{type(o).__name__}: {o}"
        return f"<<non-serializable: {type(o).__name__}>>"

    try:
        return json.dumps(data, indent=indent, ensure_ascii=False, default=default)
    except Exception as e:
        return f"<<JSON encode error: {e}>>"


def parse_amount(value) -> float:
    """
    Convert an amount from int/float/str into a float.
    Handles currency symbols, a leading minus or parentheses, and both
    "1,234.56" and "1.234,56" separator styles.
    Returns 0.0 if parsing fails.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)

    if isinstance(value, str):
        text = value.strip()
        negative = bool(re.match(r"^[^\d]*-", text)) or (
            text.startswith("(") and text.endswith(")")
        )
        # Keep digits and separators only
        cleaned = re.sub(r"[^\d.,]", "", text)
        try:
            amount = float(_normalize_separators(cleaned))
        except ValueError:
            return 0.0
        return -amount if negative else amount

    return 0.0


def _normalize_separators(text: str) -> str:
    """Rewrite a number with "," and/or "." separators to plain "1234.56" form"""
    if "," in text and "." in text:
        # Whichever separator comes last is the decimal one
        if text.rfind(",") > text.rfind("."):
            return text.replace(".", "").replace(",", ".")
        return text.replace(",", "")
    if "," in text:
        head, _, tail = text.rpartition(",")
        if text.count(",") > 1 or len(tail) == 3:
            return text.replace(",", "")
        return f"{head}.{tail}"
    if text.count(".") > 1:
        return text.replace(".", "")
    return text


def cell_text(value) -> str:
    """Normalize a raw cell value to a stripped string ('' for empty)"""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()
