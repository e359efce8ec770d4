from finplan.config import config

# Sheet names
TRANSACTIONS_SHEET = config["sheets"]["transactions"]
DROPDOWNS_SHEET = config["sheets"]["dropdowns"]
SETTINGS_SHEET = config["sheets"]["settings"]
ERROR_LOG_SHEET = config["sheets"]["error_log"]

# Transactions sheet layout (1-based columns)
HEADER_ROWS = 1
TYPE_COLUMN = 3  # C
CATEGORY_COLUMN = 4  # D
SUB_CATEGORY_COLUMN = 5  # E

# Dropdown UI
PLACEHOLDER_TEXT = "Please select"
PENDING_BACKGROUND = "#eeeeee"
DROPDOWN_ERROR_MSG = "An error occurred while updating dropdowns."

# Cache
CACHE_NAMESPACE = "fp_"
CACHE_ENABLED = config["cache"]["enabled"]
CACHE_EXPIRY_SECONDS = config["cache"]["expiry_seconds"]
CACHE_STORE_FILE = config["cache"]["store_file"]
CACHE_KEYS = config["cache"]["keys"]
DROPDOWN_CACHE_KEY = CACHE_KEYS.get("dropdowns", "dropdownsData")
DROPDOWN_CACHE_EXPIRY_SECONDS = config["dropdowns"]["cache_expiry_seconds"]
CATEGORY_COMBINATIONS_CACHE_KEY = CACHE_KEYS.get(
    "category_combinations", "finance_overview_categories"
)

# Settings sheet
SETTINGS_HEADERS = ["Preference", "Value"]
SHOW_SUB_CATEGORIES = "ShowSubCategories"

# Error log sheet
ERROR_LOG_HEADERS = ["Timestamp", "Error Type", "Message", "Details"]
SEVERITY_BACKGROUNDS = {
    "high": "#F9BDBD",
    "medium": "#FFE0B2",
    "low": "#E1F5FE",
}

# Reports
TRANSACTION_HEADERS = {
    "date": "Date",
    "type": "Type",
    "category": "Category",
    "sub_category": "Sub-Category",
    "amount": "Amount",
}
NO_SUB_CATEGORY = "(None)"
TREND_THRESHOLD = 0.1
EXPENSE_TYPES = config["report"]["expense_types"]
TYPE_ORDER = config["report"]["type_order"]
MONTHS_TO_LOOK_BACK = config["report"]["months_to_look_back"]

MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

# Webhook
WEBHOOK_SECRET = config["webhook"]["secret"]
WEBHOOK_SECRET_HEADER = "X-Finplan-Secret"
