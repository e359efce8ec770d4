import os
import gspread
from gspread.utils import rowcol_to_a1
from google.oauth2.service_account import Credentials
from finplan.config import config, PROJECT_ROOT
from finplan.utils.logger import logger

# Google Sheets connection, opened on first use
_spreadsheet = None


def connect(force_refresh: bool = False) -> gspread.Spreadsheet:
    """Open the configured spreadsheet with service account credentials"""
    global _spreadsheet
    if _spreadsheet is not None and not force_refresh:
        return _spreadsheet

    try:
        scope = config["google_sheets"]["scopes"]
        credentials_path = os.path.join(
            PROJECT_ROOT, config["google_sheets"]["credentials_file"]
        )
        creds = Credentials.from_service_account_file(credentials_path, scopes=scope)
        client = gspread.authorize(creds)

        # Open the specific Google Sheet by ID from the URL
        _spreadsheet = client.open_by_key(config["google_sheets"]["spreadsheet_id"])
        logger.info(
            f"Google Sheets connected successfully using credentials from {credentials_path}"
        )
        return _spreadsheet
    except Exception as e:
        logger.error(f"Failed to connect to Google Sheets: {e}")
        logger.error(
            f"Check that {config['google_sheets']['credentials_file']} exists in {PROJECT_ROOT} "
            f"and that the sheet (ID: {config['google_sheets']['spreadsheet_id']}) "
            "is shared with the service account email"
        )
        raise


def get_worksheet_if_exists(
    spreadsheet: gspread.Spreadsheet, sheet_name: str
) -> gspread.Worksheet | None:
    """Get a worksheet by name, return None if it doesn't exist"""
    try:
        return spreadsheet.worksheet(sheet_name)
    except gspread.WorksheetNotFound:
        logger.debug(f"Sheet {sheet_name} not found")
        return None


def get_or_create_worksheet(
    spreadsheet: gspread.Spreadsheet,
    sheet_name: str,
    headers: list[str] | None = None,
    hidden: bool = False,
    rows: int = 100,
    cols: int | None = None,
) -> gspread.Worksheet:
    """Get a worksheet or create it with a bold header row (optionally hidden)"""
    worksheet = get_worksheet_if_exists(spreadsheet, sheet_name)
    if worksheet is not None:
        return worksheet

    logger.info(f"Sheet {sheet_name} not found, creating new one")
    cols = cols or max(len(headers or []), 2)
    worksheet = spreadsheet.add_worksheet(title=sheet_name, rows=rows, cols=cols)

    if headers:
        worksheet.update(values=[headers], range_name="A1")
        worksheet.format(
            f"A1:{rowcol_to_a1(1, len(headers))}",
            {"textFormat": {"bold": True}},
        )

    if hidden:
        worksheet.hide()

    logger.info(f"Created sheet: {sheet_name}")
    return worksheet
