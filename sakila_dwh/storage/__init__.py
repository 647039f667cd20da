"""Storage module exports"""
from .postgres import (
    PostgresSourceRepository, ConnectivityError, get_db_connection, get_source_repository,
    SOURCE_QUERIES, CHANGE_FILTERS
)
from .duckdb_store import get_duckdb_connection, setup_schema, missing_tables, transaction
from .warehouse import WarehouseRepository, TargetTable, BridgeTable

__all__ = [
    'PostgresSourceRepository',
    'ConnectivityError',
    'get_db_connection',
    'get_source_repository',
    'SOURCE_QUERIES',
    'CHANGE_FILTERS',
    'get_duckdb_connection',
    'setup_schema',
    'missing_tables',
    'transaction',
    'WarehouseRepository',
    'TargetTable',
    'BridgeTable',
]
