"""
Derived Description Policy

The transaction form pre-fills the description with the selected
category's label. Picking a category often happens before the user
types anything, so the field must keep following the category while the
user hasn't diverged from it, and must never overwrite text the user
typed on purpose.

Chosen policy: most-recent derived label.
Text counts as derived when it equals the label this form most recently
put there (for an existing record: initially the label of the record's
original category pairing). Text that happens to equal some other
category's name counts as custom.
"""

from typing import Optional, Sequence

from trendsync.hierarchy import display_name
from trendsync.models.category import CategoryNode
from trendsync.models.transaction import TransactionRecord


def should_auto_fill_description(
    current_text: Optional[str],
    new_label: str,
    prior_label: Optional[str],
    is_editing_existing: bool,
) -> bool:
    """
    Decide whether the description should be replaced with new_label.

    There is nothing to fill when new_label is empty (the category is
    unknown). Otherwise, in order:
    1. Empty (after trimming) text is always filled
    2. When editing an existing record, text equal to the label computed
       for the prior category pairing is still derived, so it is filled
    3. Anything else is the user's own text and is kept
    """
    if not (new_label or "").strip():
        return False
    text = (current_text or "").strip()
    if not text:
        return True
    if is_editing_existing and prior_label is not None and text == prior_label.strip():
        return True
    return False


class DescriptionAutoFill:
    """
    Per-form tracker that re-applies the policy on every category change.

    Usage:
        fill = DescriptionAutoFill(hierarchy, original=record)
        fill.select_category("food", "groceries")   # -> "Groceries"
        fill.set_text("Weekly shop")                  # user typed
        fill.select_category("transport")             # -> "Weekly shop"
    """

    def __init__(
        self,
        hierarchy: Sequence[CategoryNode],
        original: Optional[TransactionRecord] = None,
        text: str = "",
    ):
        self._hierarchy = list(hierarchy)
        self._is_editing = original is not None
        self._prior_label: Optional[str] = None
        self._last_filled: Optional[str] = None

        if original is not None:
            self._text = original.description
            self._prior_label = display_name(
                self._hierarchy, original.category_id, original.subcategory_id
            )
        else:
            self._text = text

    @property
    def text(self) -> str:
        return self._text

    @property
    def prior_label(self) -> Optional[str]:
        return self._prior_label

    def set_text(self, text: str) -> None:
        """Record what the user typed."""
        self._text = text

    def update_hierarchy(self, hierarchy: Sequence[CategoryNode]) -> None:
        self._hierarchy = list(hierarchy)

    def select_category(
        self,
        category_id: Optional[str],
        subcategory_id: Optional[str] = None,
    ) -> str:
        """
        Apply a new category / subcategory selection.

        Returns the description the form should now show.
        """
        new_label = display_name(self._hierarchy, category_id, subcategory_id)

        fill = should_auto_fill_description(
            self._text, new_label, self._prior_label, self._is_editing
        )
        # New records: the label this form put there is still derived
        if not fill and new_label and self._last_filled is not None:
            fill = self._text.strip() == self._last_filled

        if fill:
            self._text = new_label
            self._last_filled = new_label
            self._prior_label = new_label
        return self._text
