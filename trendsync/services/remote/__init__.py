"""
Remote Authority Package

Provides the abstract interface the sync layer depends on and the
concrete client for the Trend REST backend.
"""

from trendsync.services.remote.interface import (
    AuthorityUnreachableError,
    NotAuthenticatedError,
    NotFoundError,
    RemoteAuthorityInterface,
    RemoteError,
    ServerError,
)
from trendsync.services.remote.trend_api import TrendApiClient

__all__ = [
    # Interface
    "RemoteAuthorityInterface",
    # Exceptions
    "AuthorityUnreachableError",
    "NotAuthenticatedError",
    "NotFoundError",
    "RemoteError",
    "ServerError",
    # Trend REST implementation
    "TrendApiClient",
]
