"""
Tests for transaction and category validation.
"""

from decimal import Decimal

import pytest

from trendsync.config import SyncSettings
from trendsync.hierarchy import build_hierarchy
from trendsync.models import TransactionDraft
from trendsync.validation import CategoryValidator, TransactionValidator

from fakes import CATEGORIES


@pytest.fixture
def validator():
    return TransactionValidator(SyncSettings())


@pytest.fixture
def hierarchy():
    return build_hierarchy(CATEGORIES, SyncSettings())


class TestTransactionValidator:
    """Tests for TransactionValidator."""

    def test_valid_draft(self, validator, hierarchy):
        draft = TransactionDraft(amount=Decimal("5"), category_id="food", subcategory_id="groceries")
        result = validator.validate(draft, hierarchy)
        assert result.is_valid is True
        assert result.issues == []

    def test_category_required(self, validator):
        result = validator.validate(TransactionDraft(amount=Decimal("5")))
        assert result.is_valid is False
        assert result.errors[0].field == "category_id"

    def test_negative_amount_is_error(self, validator):
        result = validator.validate(TransactionDraft(amount=Decimal("-1"), category_id="food"))
        assert result.is_valid is False
        assert result.errors[0].field == "amount"

    def test_zero_amount_is_warning(self, validator):
        result = validator.validate(TransactionDraft(amount=Decimal("0"), category_id="food"))
        assert result.is_valid is True
        assert result.warnings == ["Amount is zero"]

    def test_description_too_long(self):
        validator = TransactionValidator(SyncSettings(max_description_length=5))
        draft = TransactionDraft(amount=Decimal("1"), category_id="food", description="Too long")
        result = validator.validate(draft)
        assert result.errors[0].issue_type == "too_long"

    def test_foreign_subcategory_is_error(self, validator, hierarchy):
        draft = TransactionDraft(amount=Decimal("1"), category_id="food", subcategory_id="bus")
        result = validator.validate(draft, hierarchy)
        assert result.is_valid is False
        assert result.errors[0].field == "subcategory_id"

    def test_unknown_category_is_warning(self, validator, hierarchy):
        draft = TransactionDraft(amount=Decimal("1"), category_id="pets")
        result = validator.validate(draft, hierarchy)
        assert result.is_valid is True
        assert len(result.warnings) == 1

    def test_without_hierarchy_membership_is_not_checked(self, validator):
        draft = TransactionDraft(amount=Decimal("1"), category_id="food", subcategory_id="bus")
        assert validator.validate(draft).is_valid is True


class TestCategoryValidator:
    """Tests for CategoryValidator."""

    def test_valid_category(self):
        assert CategoryValidator().validate("Pets", "paw-outline", "#123456").is_valid is True

    def test_name_required(self):
        result = CategoryValidator().validate("   ", "paw-outline", "#123456")
        assert [i.message for i in result.errors] == ["Category name is required"]

    def test_name_length_limit(self):
        result = CategoryValidator().validate("x" * 31, "paw-outline", "#123456")
        assert result.errors[0].issue_type == "too_long"
        assert CategoryValidator().validate("x" * 30, "paw-outline", "#123456").is_valid

    def test_icon_and_color_required(self):
        result = CategoryValidator().validate("Pets", None, None)
        assert {i.field for i in result.errors} == {"icon", "color"}

    def test_subcategory_needs_no_color(self):
        result = CategoryValidator().validate("Vet", "medkit-outline", is_subcategory=True)
        assert result.is_valid is True

    def test_subcategory_messages(self):
        result = CategoryValidator().validate("", None, is_subcategory=True)
        assert [i.message for i in result.errors] == [
            "Subcategory name is required",
            "Subcategory icon is required",
        ]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
