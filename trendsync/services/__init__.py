"""Services package."""

from trendsync.services.remote import (
    AuthorityUnreachableError,
    NotAuthenticatedError,
    NotFoundError,
    RemoteAuthorityInterface,
    RemoteError,
    ServerError,
    TrendApiClient,
)
from trendsync.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    StorageError,
)

__all__ = [
    # Remote authority
    "AuthorityUnreachableError",
    "NotAuthenticatedError",
    "NotFoundError",
    "RemoteAuthorityInterface",
    "RemoteError",
    "ServerError",
    "TrendApiClient",
    # Audit storage
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "StorageError",
]
