"""ETL module - source to warehouse synchronization."""
