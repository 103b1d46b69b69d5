"""
Tests for the category hierarchy builder and its lookups.
"""

import pytest

from trendsync.config import SyncSettings
from trendsync.hierarchy import (
    build_hierarchy,
    display_name,
    fallback_hierarchy,
    find_subcategory,
    flatten_hierarchy,
    known_labels,
)


FLAT = [
    {"id": "t", "name": "transport", "icon": "car-outline", "color": "#111111"},
    {"id": "f", "name": "Food", "icon": "restaurant-outline", "color": "#222222", "isSystem": True},
    {"id": "g", "name": "Groceries", "parentId": "f", "icon": "cart-outline"},
    {"id": "r", "name": "Restaurants", "parentId": "f"},
    {"id": "b", "name": "Bus", "parentId": "t", "color": "#333333"},
    {"id": "o", "name": "Orphan", "parentId": "missing"},
    {"id": "a", "name": "accommodation"},
]


class TestBuildHierarchy:
    """Tests for build_hierarchy."""

    def test_top_level_sorted_case_insensitively(self):
        """Test top-level nodes sort by name regardless of case."""
        nodes = build_hierarchy(FLAT, SyncSettings())
        assert [n.name for n in nodes] == ["accommodation", "Food", "transport"]

    def test_subcategories_attached_in_received_order(self):
        """Test children keep insertion order under their parent."""
        nodes = {n.id: n for n in build_hierarchy(FLAT, SyncSettings())}
        assert [s.id for s in nodes["f"].subcategories] == ["g", "r"]
        assert nodes["f"].has_subcategories is True
        assert nodes["a"].has_subcategories is False
        assert all(s.parent_id == "f" for s in nodes["f"].subcategories)

    def test_orphans_are_dropped(self):
        """Test a child of a non-existent parent appears nowhere."""
        nodes = build_hierarchy(FLAT, SyncSettings())
        ids = {n.id for n in nodes} | {s.id for n in nodes for s in n.subcategories}
        assert "o" not in ids

    def test_child_of_child_is_not_promoted(self):
        """Test a grandchild (parent is itself a subcategory) is dropped."""
        flat = FLAT + [{"id": "gg", "name": "Organic", "parentId": "g"}]
        nodes = build_hierarchy(flat, SyncSettings())
        ids = {n.id for n in nodes} | {s.id for n in nodes for s in n.subcategories}
        assert "gg" not in ids

    def test_fallback_icon_and_color(self):
        """Test missing tokens get the configured fallbacks."""
        nodes = {n.id: n for n in build_hierarchy(FLAT, SyncSettings())}
        assert nodes["a"].icon == "albums-outline"
        assert nodes["a"].color == "#4ECDC4"
        restaurants = nodes["f"].find_subcategory("r")
        assert restaurants.icon == "albums-outline"
        assert restaurants.color == "#4ECDC4"
        assert nodes["t"].find_subcategory("b").color == "#333333"

    def test_custom_flag(self):
        """Test is_custom is the inverse of the system flag."""
        nodes = {n.id: n for n in build_hierarchy(FLAT, SyncSettings())}
        assert nodes["f"].is_custom is False
        assert nodes["t"].is_custom is True

    def test_configured_fallbacks(self):
        """Test fallback tokens come from settings."""
        settings = SyncSettings(fallback_category_icon="help", fallback_category_color="#000000")
        node = build_hierarchy([{"id": "x", "name": "X"}], settings)[0]
        assert (node.icon, node.color) == ("help", "#000000")

    @pytest.mark.parametrize("bad_input", [None, "categories", 42, {"categories": []}])
    def test_non_list_input_yields_empty(self, bad_input):
        """Test malformed input means no categories, not an error."""
        assert build_hierarchy(bad_input, SyncSettings()) == []

    def test_malformed_records_are_skipped(self):
        """Test records without id or name are skipped individually."""
        flat = [{"name": "No id"}, {"id": "x"}, "junk", {"id": "ok", "name": "Ok"}]
        assert [n.id for n in build_hierarchy(flat, SyncSettings())] == ["ok"]

    def test_rebuild_from_flattened_tree(self):
        """Test building, flattening and rebuilding keeps ids and subcategory counts."""
        first = build_hierarchy(FLAT, SyncSettings())
        flat_again = [r.model_dump(by_alias=True) for r in flatten_hierarchy(first)]
        second = build_hierarchy(flat_again, SyncSettings())
        assert [n.id for n in second] == [n.id for n in first]
        assert [len(n.subcategories) for n in second] == [len(n.subcategories) for n in first]
        assert second == first


class TestLookups:
    """Tests for hierarchy lookups."""

    def test_display_name_prefers_subcategory(self):
        nodes = build_hierarchy(FLAT, SyncSettings())
        assert display_name(nodes, "f", "g") == "Groceries"
        assert display_name(nodes, "f") == "Food"

    def test_display_name_ignores_foreign_subcategory(self):
        """Test a subcategory of another category falls back to the category name."""
        nodes = build_hierarchy(FLAT, SyncSettings())
        assert display_name(nodes, "f", "b") == "Food"
        assert find_subcategory(nodes, "f", "b") is None

    def test_display_name_unknown_category(self):
        assert display_name(build_hierarchy(FLAT, SyncSettings()), "nope") == ""

    def test_known_labels(self):
        labels = known_labels(build_hierarchy(FLAT, SyncSettings()))
        assert {"Food", "Groceries", "Bus", "accommodation"} <= labels
        assert "Orphan" not in labels

    def test_fallback_hierarchy(self):
        """Test the built-in categories."""
        nodes = fallback_hierarchy(SyncSettings())
        assert [n.name for n in nodes] == ["Food", "Other", "Shopping", "Transport"]
        assert all(not n.has_subcategories for n in nodes)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
