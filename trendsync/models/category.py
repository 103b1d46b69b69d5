"""
Category Models for Trend Sync

The backend stores categories flat: a subcategory is just a category
with a parent id. The UI needs a two-level tree. CategoryRecord is the
flat shape as received; CategoryNode / SubcategoryNode are the derived
tree, rebuilt in full on every reload.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from trendsync.models.transaction import as_identifier


class CategoryRecord(BaseModel):
    """A category exactly as the backend returns it."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        frozen=True,
        extra="ignore",
    )

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    icon: Optional[str] = None
    color: Optional[str] = None
    parent_id: Optional[str] = None
    is_system: bool = Field(
        default=False,
        description="Seeded by the backend rather than created by the user"
    )
    description: Optional[str] = None

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return as_identifier(v) if v is not None else v

    @field_validator('parent_id', mode='before')
    @classmethod
    def coerce_parent_id(cls, v: Any) -> Optional[str]:
        return as_identifier(v)

    @field_validator('is_system', mode='before')
    @classmethod
    def null_is_not_system(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator('icon', 'color', mode='before')
    @classmethod
    def blank_is_missing(cls, v: Any) -> Any:
        return v or None

    @property
    def is_custom(self) -> bool:
        return not self.is_system


class SubcategoryNode(BaseModel):
    """A subcategory attached under its parent's node."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    icon: str
    color: str
    is_custom: bool
    parent_id: str


class CategoryNode(BaseModel):
    """A top-level category with its subcategories, ready to render."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    icon: str
    color: str
    is_custom: bool
    subcategories: list[SubcategoryNode] = Field(default_factory=list)

    @computed_field
    @property
    def has_subcategories(self) -> bool:
        return len(self.subcategories) > 0

    def find_subcategory(self, subcategory_id: Optional[str]) -> Optional[SubcategoryNode]:
        if not subcategory_id:
            return None
        for sub in self.subcategories:
            if sub.id == subcategory_id:
                return sub
        return None
