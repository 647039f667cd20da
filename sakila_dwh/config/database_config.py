"""Database configuration (Sakila source + DuckDB warehouse)"""
import os

SOURCE_DB_CONFIG = {
    "host": os.getenv("SAKILA_DB_HOST", "localhost"),
    "port": int(os.getenv("SAKILA_DB_PORT", "5432")),
    "user": os.getenv("SAKILA_DB_USER", "postgres"),
    "password": os.getenv("SAKILA_DB_PASSWORD", "postgres"),
    "database": os.getenv("SAKILA_DB_NAME", "pagila"),
    # Session timezone; all source timestamps are read as wall-clock time in this zone
    "timezone": os.getenv("SAKILA_DB_TIMEZONE", "UTC"),
    "connect_timeout": int(os.getenv("SAKILA_DB_CONNECT_TIMEOUT", "10")),
}

WAREHOUSE_CONFIG = {
    "path": os.getenv("DWH_PATH", "analytics.duckdb"),
}
