"""
Category Hierarchy Builder

The backend returns categories as one flat list; subcategories are
categories with a parent id. The UI renders a two-level tree. This
module turns the flat list into that tree and answers the lookups the
forms need (display names, membership checks).

DESIGN DECISION: Building is a pure function of its input.
The hierarchy is rebuilt in full on every reload, never patched in place.

Rules:
- Only records without a parent become top-level nodes
- Children are attached in the order received
- Children whose parent is not a top-level record are dropped, never promoted
- Missing icon / color tokens get fixed fallbacks so every node renders
- Top-level nodes sort by name, case-insensitive and locale-aware
- Anything that isn't a list yields an empty hierarchy
"""

import locale
from typing import Any, Iterable, Optional

import structlog
from pydantic import ValidationError

from trendsync.config import SyncSettings, get_settings
from trendsync.models.category import CategoryNode, CategoryRecord, SubcategoryNode


logger = structlog.get_logger(__name__)


# Built-in categories shown when the backend can't be reached
FALLBACK_CATEGORIES = [
    {"id": "food", "name": "Food", "icon": "restaurant-outline", "color": "#FF6B6B"},
    {"id": "transport", "name": "Transport", "icon": "car-outline", "color": "#4ECDC4"},
    {"id": "shopping", "name": "Shopping", "icon": "bag-outline", "color": "#45B7D1"},
    {"id": "other", "name": "Other", "icon": "document-text-outline", "color": "#A8A8A8"},
]


def _sort_key(name: str) -> str:
    return locale.strxfrm(name.casefold())


def _parse_records(flat_records: Iterable[Any]) -> list[CategoryRecord]:
    records = []
    for raw in flat_records:
        if isinstance(raw, CategoryRecord):
            records.append(raw)
            continue
        try:
            records.append(CategoryRecord.model_validate(raw))
        except ValidationError as e:
            logger.warning(
                "category_record_skipped",
                record=repr(raw)[:200],
                errors=e.error_count(),
            )
    return records


def build_hierarchy(
    flat_records: Any,
    settings: Optional[SyncSettings] = None,
) -> list[CategoryNode]:
    """
    Build the two-level category tree from the backend's flat list.

    Args:
        flat_records: List of category dicts (wire shape) or CategoryRecords.
                      Anything else is treated as "no categories".
        settings: Supplies the fallback icon and color tokens

    Returns:
        Top-level nodes sorted by name, each with its subcategories
    """
    if not isinstance(flat_records, (list, tuple)):
        logger.warning(
            "category_data_malformed",
            received_type=type(flat_records).__name__,
        )
        return []

    settings = settings or get_settings().sync
    icon = settings.fallback_category_icon
    color = settings.fallback_category_color

    records = _parse_records(flat_records)

    top_level = [r for r in records if r.parent_id is None]
    children_by_parent: dict[str, list[CategoryRecord]] = {}
    for record in records:
        if record.parent_id is not None:
            children_by_parent.setdefault(record.parent_id, []).append(record)

    nodes = []
    for record in top_level:
        subcategories = [
            SubcategoryNode(
                id=child.id,
                name=child.name,
                icon=child.icon or icon,
                color=child.color or color,
                is_custom=child.is_custom,
                parent_id=record.id,
            )
            for child in children_by_parent.get(record.id, [])
        ]
        nodes.append(CategoryNode(
            id=record.id,
            name=record.name,
            icon=record.icon or icon,
            color=record.color or color,
            is_custom=record.is_custom,
            subcategories=subcategories,
        ))

    top_ids = {r.id for r in top_level}
    orphans = sum(
        len(children) for parent_id, children in children_by_parent.items()
        if parent_id not in top_ids
    )
    if orphans:
        logger.info("orphan_subcategories_dropped", count=orphans)

    return sorted(nodes, key=lambda n: _sort_key(n.name))


def flatten_hierarchy(nodes: Iterable[CategoryNode]) -> list[CategoryRecord]:
    """Turn a built tree back into the backend's flat shape."""
    records = []
    for node in nodes:
        records.append(CategoryRecord(
            id=node.id,
            name=node.name,
            icon=node.icon,
            color=node.color,
            is_system=not node.is_custom,
        ))
        for sub in node.subcategories:
            records.append(CategoryRecord(
                id=sub.id,
                name=sub.name,
                icon=sub.icon,
                color=sub.color,
                parent_id=node.id,
                is_system=not sub.is_custom,
            ))
    return records


def fallback_hierarchy(settings: Optional[SyncSettings] = None) -> list[CategoryNode]:
    """The built-in categories, as a hierarchy."""
    return build_hierarchy(list(FALLBACK_CATEGORIES), settings=settings)


# =============================================================================
# Lookups
# =============================================================================

def find_category(
    nodes: Iterable[CategoryNode],
    category_id: Optional[str],
) -> Optional[CategoryNode]:
    if not category_id:
        return None
    for node in nodes:
        if node.id == category_id:
            return node
    return None


def find_subcategory(
    nodes: Iterable[CategoryNode],
    category_id: Optional[str],
    subcategory_id: Optional[str],
) -> Optional[SubcategoryNode]:
    """Find a subcategory, but only under the given category."""
    category = find_category(nodes, category_id)
    if category is None:
        return None
    return category.find_subcategory(subcategory_id)


def display_name(
    nodes: Iterable[CategoryNode],
    category_id: Optional[str],
    subcategory_id: Optional[str] = None,
) -> str:
    """
    The label a category selection shows (and auto-fills into descriptions).

    Subcategory name if it exists under the category, else the category
    name, else an empty string.
    """
    category = find_category(nodes, category_id)
    if category is None:
        return ""
    sub = category.find_subcategory(subcategory_id)
    return sub.name if sub else category.name


def known_labels(nodes: Iterable[CategoryNode]) -> set[str]:
    """Every category and subcategory display name."""
    labels = set()
    for node in nodes:
        labels.add(node.name)
        labels.update(sub.name for sub in node.subcategories)
    return labels
