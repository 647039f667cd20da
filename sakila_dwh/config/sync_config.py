"""Sync and reconciliation configuration"""
import os
from decimal import Decimal

SYNC_CONFIG = {
    "reconciliation_window_days": int(os.getenv("RECONCILIATION_WINDOW_DAYS", "30")),
    "money_tolerance": Decimal(os.getenv("MONEY_TOLERANCE", "0.01")),
    # Fallback for descriptive attributes that are optional-with-default
    "unknown_label": os.getenv("UNKNOWN_LABEL", "Unknown"),
}

LOG_CONFIG = {
    "level": os.getenv("LOG_LEVEL", "INFO").upper(),
    "format": os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
}
