# stok/config.py
"""
Global settings and default values for the stock tracker.
"""

import os
from dataclasses import dataclass


# Default SQLite database path
DB_PATH = os.path.join(os.getcwd(), "stok.db")


@dataclass
class DefaultConfig:
    """Default values used by the workflows and the spreadsheet codec."""
    import_source: str = "Excel İçe Aktarma"      # `from_` of rows imported from XLSX
    export_filename: str = "stok_listesi.xlsx"
    export_sheet: str = "Stok Listesi"
    checklist_title: str = "Kontrol Listesi"
    # False: remove-by-name matches like the duplicate check (case-insensitive)
    case_sensitive_remove: bool = False


# Global instance with the default values
DEFAULTS = DefaultConfig()
