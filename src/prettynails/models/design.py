"""
Design Descriptor Model
=======================

Reference data describing a selectable nail-art style.
Owned by the catalog; the pipeline only reads it.
"""

from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


class DesignCategory(str, Enum):
    """Catalog grouping for designs."""

    CLASSIC = "classic"
    MODERN = "modern"
    ARTISTIC = "artistic"
    SEASONAL = "seasonal"
    WEDDING = "wedding"
    CASUAL = "casual"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class DesignDescriptor(BaseModel):
    """
    Immutable nail design entry.

    Attributes:
        id: Stable identifier
        name: Display name
        description: Free-text description used in prompts
        category: Catalog grouping
        tags: Style tags for filtering
        is_popular: Featured flag
        image_name: Thumbnail asset name for presentation layers
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    category: DesignCategory
    tags: Tuple[str, ...] = ()
    is_popular: bool = False
    image_name: str = ""

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match over name, description and tags."""
        needle = query.casefold()
        return (
            needle in self.name.casefold()
            or needle in self.description.casefold()
            or any(needle in tag.casefold() for tag in self.tags)
        )
