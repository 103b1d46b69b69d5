"""
Sync package: the local collection and the optimistic mutation machinery.
"""

from trendsync.sync.collection import (
    LocalCollection,
    generate_temporary_id,
    is_temporary_id,
)
from trendsync.sync.gate import AuthGate, NotAuthenticatedHandler
from trendsync.sync.tracking import MutationTracker
from trendsync.sync.coordinator import MutationCoordinator

__all__ = [
    "AuthGate",
    "LocalCollection",
    "MutationCoordinator",
    "MutationTracker",
    "NotAuthenticatedHandler",
    "generate_temporary_id",
    "is_temporary_id",
]
