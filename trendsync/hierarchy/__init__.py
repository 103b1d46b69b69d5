"""Category hierarchy package."""

from trendsync.hierarchy.builder import (
    FALLBACK_CATEGORIES,
    build_hierarchy,
    display_name,
    fallback_hierarchy,
    find_category,
    find_subcategory,
    flatten_hierarchy,
    known_labels,
)

__all__ = [
    "FALLBACK_CATEGORIES",
    "build_hierarchy",
    "display_name",
    "fallback_hierarchy",
    "find_category",
    "find_subcategory",
    "flatten_hierarchy",
    "known_labels",
]
