"""
pgext - PostgreSQL extension manager.

Find, inspect and install PostgreSQL extensions for the PostgreSQL
installations found on a host.
"""

__version__ = "1.0.0"
