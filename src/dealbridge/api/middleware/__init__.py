"""API middleware package."""

from src.dealbridge.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
