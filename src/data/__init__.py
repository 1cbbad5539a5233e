"""
Review Trust Data Layer
=======================

Configuration and PostgreSQL access.

Modules:
    config : environment-driven settings (dotenv)
    db     : psycopg2 pool, schema bootstrap, profile lookup
"""

from .config import Settings, get_settings, load_settings

__all__ = ["Settings", "get_settings", "load_settings"]
