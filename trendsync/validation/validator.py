"""
Form Validation

DESIGN DECISION: Drafts are validated before any optimistic change is
applied. A draft that fails here never touches the local collection and
never reaches the backend.

Two validators:
- TransactionValidator: the add/edit transaction form
- CategoryValidator: the add category / add subcategory form

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the form can show them.
"""

from decimal import Decimal
from typing import Optional, Sequence

from trendsync.config import SyncSettings, get_settings
from trendsync.hierarchy import find_category
from trendsync.models.category import CategoryNode
from trendsync.models.transaction import TransactionDraft
from trendsync.models.validation import ValidationIssue, ValidationResult


MAX_CATEGORY_NAME_LENGTH = 30


class TransactionValidator:
    """
    Validates a transaction draft before it is saved.

    Checks against the category hierarchy only when one is supplied;
    without it, category membership can't be judged and is skipped.
    """

    def __init__(self, settings: Optional[SyncSettings] = None):
        self._settings = settings or get_settings().sync

    def validate(
        self,
        draft: TransactionDraft,
        hierarchy: Optional[Sequence[CategoryNode]] = None,
    ) -> ValidationResult:
        issues = []

        if not draft.category_id:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="missing",
                message="Please select a category",
                severity="error",
                suggested_fix="Pick a category before saving",
            ))

        if draft.amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount cannot be negative",
                severity="error",
                suggested_fix="Enter the amount without a minus sign",
            ))
        elif draft.amount == Decimal("0"):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message="Amount is zero",
                severity="warning",
            ))

        max_length = self._settings.max_description_length
        if len(draft.description) > max_length:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message=f"Description is longer than {max_length} characters",
                severity="error",
                suggested_fix="Shorten the description",
            ))

        if hierarchy and draft.category_id:
            issues.extend(self._check_category(draft, hierarchy))

        return ValidationResult.from_issues(issues)

    def _check_category(
        self,
        draft: TransactionDraft,
        hierarchy: Sequence[CategoryNode],
    ) -> list[ValidationIssue]:
        category = find_category(hierarchy, draft.category_id)
        if category is None:
            # The hierarchy may simply be older than the backend's
            return [ValidationIssue(
                field="category_id",
                issue_type="unknown",
                message="Selected category is not in the current category list",
                severity="warning",
                suggested_fix="Refresh categories",
            )]

        if draft.subcategory_id and category.find_subcategory(draft.subcategory_id) is None:
            return [ValidationIssue(
                field="subcategory_id",
                issue_type="mismatch",
                message=f"Subcategory does not belong to {category.name}",
                severity="error",
                suggested_fix="Pick a subcategory of the selected category",
            )]
        return []


class CategoryValidator:
    """Validates the add category / add subcategory form."""

    def validate(
        self,
        name: Optional[str],
        icon: Optional[str],
        color: Optional[str] = None,
        is_subcategory: bool = False,
    ) -> ValidationResult:
        issues = []
        kind = "Subcategory" if is_subcategory else "Category"
        name = (name or "").strip()

        if not name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message=f"{kind} name is required",
                severity="error",
            ))
        elif len(name) > MAX_CATEGORY_NAME_LENGTH:
            issues.append(ValidationIssue(
                field="name",
                issue_type="too_long",
                message=f"{kind} name must be {MAX_CATEGORY_NAME_LENGTH} characters or less",
                severity="error",
            ))

        if not icon:
            issues.append(ValidationIssue(
                field="icon",
                issue_type="missing",
                message=f"{kind} icon is required",
                severity="error",
            ))

        # Only top-level categories require a color
        if not is_subcategory and not color:
            issues.append(ValidationIssue(
                field="color",
                issue_type="missing",
                message="Category color is required",
                severity="error",
            ))

        return ValidationResult.from_issues(issues)
