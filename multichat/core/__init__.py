"""Core application components.

This package contains configuration and logging setup shared across the
application.
"""

from .config import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
