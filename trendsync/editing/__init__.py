"""
Editing package: edit sessions and the description auto-fill policy.
"""

from trendsync.editing.description import (
    DescriptionAutoFill,
    should_auto_fill_description,
)
from trendsync.editing.session import EditSessionManager, newest

__all__ = [
    "DescriptionAutoFill",
    "EditSessionManager",
    "newest",
    "should_auto_fill_description",
]
