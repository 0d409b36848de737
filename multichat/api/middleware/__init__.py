"""API middleware components."""

from .logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
