"""
Storage Services Package

Provides the abstract audit storage interface and an in-memory
implementation. Transactions themselves live on the remote authority.
"""

from trendsync.services.storage.interface import (
    AuditStorageInterface,
    StorageError,
)
from trendsync.services.storage.memory import InMemoryAuditStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    # Exceptions
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
]
