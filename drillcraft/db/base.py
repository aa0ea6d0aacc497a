"""Imports every model so ``Base.metadata`` knows the whole schema."""

from drillcraft.db.base_class import Base

from drillcraft.models.content_item_model import ContentItem
from drillcraft.models.assignment_model import Assignment

__all__ = ["Assignment", "Base", "ContentItem"]
