"""
Core utilities and configuration for the pulse-sync engine.

Modules:
    config: Application configuration and environment variable management
    database: Lazily-built async engine and session factory
    exceptions: Exception hierarchy shared by clients, normalizers and sinks
    logging: Logging configuration

Usage:
    from core.config import settings
    from core.database import database, get_session
    from core.exceptions import ProviderUnavailable, SinkWriteError
    from core.logging import setup_logging
"""

__all__ = ["config", "database", "exceptions", "logging"]
