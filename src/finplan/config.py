import copy
import json
from pathlib import Path

# Get the directory where this script is located
BASE_DIR = Path(__file__).resolve().parent  # /src/finplan
PROJECT_ROOT = BASE_DIR.parents[1]  # /finplan
CONFIG_PATH = PROJECT_ROOT / "config.json"

DEFAULT_CONFIG = {
    "google_sheets": {
        "credentials_file": "credentials.json",
        "spreadsheet_id": "",
        "scopes": [
            "https://www.googleapis.com/auth/spreadsheets",
            "https://www.googleapis.com/auth/drive",
        ],
    },
    "settings": {
        "logging_level": "INFO",
        "timezone": "Europe/Berlin",
    },
    "sheets": {
        "transactions": "Transactions",
        "dropdowns": "Dropdowns",
        "settings": "Settings",
        "error_log": "Error Log",
    },
    "cache": {
        "enabled": True,
        "expiry_seconds": 21600,  # 6 hours
        "store_file": ".cache/finplan_cache.json",
        "keys": {
            "dropdowns": "dropdownsData",
            "category_combinations": "finance_overview_categories",
        },
    },
    "dropdowns": {
        "cache_expiry_seconds": 300,
    },
    "report": {
        "expense_types": ["Essentials", "Wants/Pleasure", "Extra"],
        "type_order": ["Income", "Essentials", "Wants/Pleasure", "Extra", "Savings"],
        "months_to_look_back": 3,
    },
    "scheduler": {
        "enabled": True,
        "id": "warm_dropdown_cache",
        "name": "Warm dropdown cache",
        "refresh_minutes": 5,
    },
    "webhook": {
        "secret": "",
    },
}


def merge_config(target: dict, source: dict) -> dict:
    """Deep-merge ``source`` into a copy of ``target``; lists are replaced, not merged."""
    merged = copy.deepcopy(target)
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(path: Path = CONFIG_PATH) -> dict:
    """Load config.json on top of the defaults"""
    try:
        with open(path, "r") as config_file:
            user_config = json.load(config_file)
        print(f"✅ Configuration loaded successfully from {path}")
        return merge_config(DEFAULT_CONFIG, user_config)
    except FileNotFoundError:
        print(f"⚠️  {path} not found, using default configuration")
    except Exception as e:
        print(f"⚠️  Failed to load config.json: {e}")
    return copy.deepcopy(DEFAULT_CONFIG)


config = load_config()  # global in memory
