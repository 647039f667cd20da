"""Sakila DWH - Sakila (PostgreSQL) to DuckDB star schema synchronization."""

__version__ = "1.0.0"
