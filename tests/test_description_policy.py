"""
Tests for the description auto-fill policy.

Policy under test: most-recent derived label. Text equal to the label the
form last filled in counts as derived; any other text is the user's own.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from trendsync.config import SyncSettings
from trendsync.editing import DescriptionAutoFill, should_auto_fill_description
from trendsync.hierarchy import build_hierarchy
from trendsync.models import TransactionRecord

from fakes import CATEGORIES


@pytest.fixture
def hierarchy():
    return build_hierarchy(CATEGORIES, SyncSettings())


def _record(description: str, category_id: str = "food", subcategory_id=None) -> TransactionRecord:
    return TransactionRecord(
        id="1",
        amount=Decimal("10"),
        description=description,
        category_id=category_id,
        subcategory_id=subcategory_id,
        date=datetime(2024, 3, 1),
    )


class TestShouldAutoFill:
    """Tests for the three ordered rules."""

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_text_is_filled(self, text):
        assert should_auto_fill_description(text, "Food", None, False) is True
        assert should_auto_fill_description(text, "Food", "Transport", True) is True

    def test_editing_with_prior_label_is_filled(self):
        """Test text equal to the prior label is still derived when editing."""
        assert should_auto_fill_description("Food", "Transport", "Food", True) is True

    def test_prior_label_ignored_for_new_records(self):
        assert should_auto_fill_description("Food", "Transport", "Food", False) is False

    def test_custom_text_is_kept(self):
        assert should_auto_fill_description("Dinner with Sam", "Transport", "Food", True) is False

    @pytest.mark.parametrize("label", ["", "  "])
    def test_nothing_to_fill_without_label(self, label):
        """Test an unknown category never clears or replaces the text."""
        assert should_auto_fill_description("", label, None, False) is False
        assert should_auto_fill_description("Food", label, "Food", True) is False

    def test_other_category_name_counts_as_custom(self):
        """Test the broader 'any known label' variant is not used."""
        assert should_auto_fill_description("Groceries", "Transport", "Food", True) is False


class TestDescriptionAutoFill:
    """Tests for the per-form tracker."""

    def test_empty_field_gets_category_name(self, hierarchy):
        fill = DescriptionAutoFill(hierarchy)
        assert fill.select_category("food") == "Food"

    def test_custom_text_survives_category_switch(self, hierarchy):
        """Test typing a custom description and switching category keeps it."""
        fill = DescriptionAutoFill(hierarchy)
        fill.select_category("food")
        fill.set_text("Team lunch")
        assert fill.select_category("transport") == "Team lunch"

    def test_new_record_follows_category_until_diverged(self, hierarchy):
        """Test repeated switching keeps updating an untouched field."""
        fill = DescriptionAutoFill(hierarchy)
        assert fill.select_category("food") == "Food"
        assert fill.select_category("food", "groceries") == "Groceries"
        assert fill.select_category("transport") == "Transport"

    def test_edit_follows_most_recent_label(self, hierarchy):
        """Test editing: derived text keeps tracking after several switches."""
        fill = DescriptionAutoFill(hierarchy, original=_record("Food"))
        assert fill.prior_label == "Food"
        assert fill.select_category("transport") == "Transport"
        assert fill.prior_label == "Transport"
        assert fill.select_category("transport", "bus") == "Bus"
        assert fill.select_category("food") == "Food"

    def test_edit_keeps_custom_description(self, hierarchy):
        fill = DescriptionAutoFill(hierarchy, original=_record("Birthday cake"))
        assert fill.select_category("transport") == "Birthday cake"

    def test_edit_with_subcategory_label(self, hierarchy):
        """Test the prior label comes from the original pairing."""
        fill = DescriptionAutoFill(
            hierarchy, original=_record("Groceries", subcategory_id="groceries")
        )
        assert fill.prior_label == "Groceries"
        assert fill.select_category("transport") == "Transport"

    def test_unknown_category_does_not_clear_text(self, hierarchy):
        fill = DescriptionAutoFill(hierarchy)
        fill.select_category("food")
        assert fill.select_category("missing") == "Food"

    def test_hierarchy_update(self, hierarchy):
        fill = DescriptionAutoFill([])
        assert fill.select_category("food") == ""
        fill.update_hierarchy(hierarchy)
        assert fill.select_category("food") == "Food"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
