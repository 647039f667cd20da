"""Configuration exports"""
from .database_config import SOURCE_DB_CONFIG, WAREHOUSE_CONFIG
from .sync_config import SYNC_CONFIG, LOG_CONFIG

__all__ = [
    'SOURCE_DB_CONFIG',
    'WAREHOUSE_CONFIG',
    'SYNC_CONFIG',
    'LOG_CONFIG',
]
