"""Cluster-aware structural health diagnostics for PostgreSQL."""

__version__ = "0.1.0"
