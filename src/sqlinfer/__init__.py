"""Infer Go types for named SQL queries by preparing them against Postgres."""

__version__ = "0.1.0"
