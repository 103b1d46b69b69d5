"""Validation package."""

from trendsync.validation.validator import (
    MAX_CATEGORY_NAME_LENGTH,
    CategoryValidator,
    TransactionValidator,
)

__all__ = ["MAX_CATEGORY_NAME_LENGTH", "CategoryValidator", "TransactionValidator"]
