"""
Design Catalog
==============

Read-only collection of nail design descriptors.

The catalog is constructed explicitly and passed to whoever needs it;
there is no process-wide instance.

YAML Format:
    designs:
      - id: classic-red
        name: Classic Red
        description: Timeless red polish for any occasion
        category: classic
        tags: [red, classic, elegant]
        is_popular: true
        image_name: classic_red
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import yaml

from prettynails.models.design import DesignCategory, DesignDescriptor


logger = logging.getLogger(__name__)


SAMPLE_DESIGNS = (
    DesignDescriptor(
        id="classic-red",
        name="Classic Red",
        description="Timeless red polish for any occasion",
        category=DesignCategory.CLASSIC,
        tags=("red", "classic", "elegant"),
        is_popular=True,
        image_name="classic_red",
    ),
    DesignDescriptor(
        id="french-manicure",
        name="French Manicure",
        description="Traditional French tips with white and nude",
        category=DesignCategory.CLASSIC,
        tags=("french", "white", "nude", "professional"),
        is_popular=True,
        image_name="french_manicure",
    ),
    DesignDescriptor(
        id="sunset-ombre",
        name="Sunset Ombre",
        description="Beautiful gradient from orange to pink",
        category=DesignCategory.MODERN,
        tags=("ombre", "gradient", "sunset", "colorful"),
        image_name="sunset_ombre",
    ),
    DesignDescriptor(
        id="floral-garden",
        name="Floral Garden",
        description="Delicate flower patterns on pastel base",
        category=DesignCategory.ARTISTIC,
        tags=("floral", "flowers", "pastel", "spring"),
        is_popular=True,
        image_name="floral_garden",
    ),
    DesignDescriptor(
        id="geometric-lines",
        name="Geometric Lines",
        description="Modern geometric patterns in black and white",
        category=DesignCategory.MODERN,
        tags=("geometric", "lines", "black", "white", "modern"),
        image_name="geometric_lines",
    ),
    DesignDescriptor(
        id="winter-snowflakes",
        name="Winter Snowflakes",
        description="Sparkly snowflake designs on blue base",
        category=DesignCategory.SEASONAL,
        tags=("winter", "snowflakes", "blue", "sparkly"),
        image_name="winter_snowflakes",
    ),
    DesignDescriptor(
        id="rose-gold-glitter",
        name="Rose Gold Glitter",
        description="Elegant rose gold with fine glitter",
        category=DesignCategory.WEDDING,
        tags=("rose gold", "glitter", "elegant", "wedding"),
        is_popular=True,
        image_name="rose_gold_glitter",
    ),
    DesignDescriptor(
        id="beach-vibes",
        name="Beach Vibes",
        description="Ocean-inspired blues and whites",
        category=DesignCategory.CASUAL,
        tags=("beach", "ocean", "blue", "white", "summer"),
        image_name="beach_vibes",
    ),
    DesignDescriptor(
        id="marble-effect",
        name="Marble Effect",
        description="Sophisticated marble pattern in gray and white",
        category=DesignCategory.MODERN,
        tags=("marble", "gray", "white", "sophisticated"),
        is_popular=True,
        image_name="marble_effect",
    ),
    DesignDescriptor(
        id="autumn-leaves",
        name="Autumn Leaves",
        description="Fall-inspired orange and brown leaf patterns",
        category=DesignCategory.SEASONAL,
        tags=("autumn", "fall", "leaves", "orange", "brown"),
        image_name="autumn_leaves",
    ),
)


class DesignCatalog:
    """
    In-memory, read-only design catalog.

    Lookups preserve catalog order.
    """

    def __init__(self, designs: Iterable[DesignDescriptor] = SAMPLE_DESIGNS) -> None:
        self._designs: List[DesignDescriptor] = []
        self._by_id: Dict[str, DesignDescriptor] = {}

        for design in designs:
            if design.id in self._by_id:
                raise ValueError(f"Duplicate design id: {design.id}")
            self._designs.append(design)
            self._by_id[design.id] = design

        logger.info(f"DesignCatalog loaded: {len(self._designs)} designs")

    def __len__(self) -> int:
        return len(self._designs)

    def all(self) -> List[DesignDescriptor]:
        return list(self._designs)

    def get(self, design_id: str) -> Optional[DesignDescriptor]:
        return self._by_id.get(design_id)

    def by_category(self, category: Union[DesignCategory, str]) -> List[DesignDescriptor]:
        category = DesignCategory(category)
        return [d for d in self._designs if d.category == category]

    def by_tag(self, tag: str) -> List[DesignDescriptor]:
        needle = tag.casefold()
        return [d for d in self._designs if any(t.casefold() == needle for t in d.tags)]

    def search(self, query: str) -> List[DesignDescriptor]:
        """Case-insensitive substring search; an empty query returns everything."""
        if not query:
            return self.all()
        return [d for d in self._designs if d.matches(query)]

    def popular(self) -> List[DesignDescriptor]:
        return [d for d in self._designs if d.is_popular]

    def categorized(self) -> Dict[DesignCategory, List[DesignDescriptor]]:
        grouped: Dict[DesignCategory, List[DesignDescriptor]] = {}
        for design in self._designs:
            grouped.setdefault(design.category, []).append(design)
        return grouped

    def filter(
        self,
        category: Optional[str] = None,
        tag: Optional[str] = None,
        query: Optional[str] = None,
    ) -> List[DesignDescriptor]:
        """Apply any combination of category, tag and text filters."""
        designs = self.search(query or "")
        if category:
            wanted = DesignCategory(category)
            designs = [d for d in designs if d.category == wanted]
        if tag:
            needle = tag.casefold()
            designs = [d for d in designs if any(t.casefold() == needle for t in d.tags)]
        return designs


def load_catalog(path: Optional[str] = None) -> DesignCatalog:
    """
    Load a catalog from YAML, or the built-in samples when no path is given.

    Args:
        path: YAML file with a top-level `designs` list

    Returns:
        DesignCatalog
    """
    if not path:
        return DesignCatalog()

    logger.info(f"Loading design catalog from: {path}")
    with open(Path(path), "r") as f:
        data = yaml.safe_load(f) or {}

    return DesignCatalog(
        DesignDescriptor.model_validate(entry) for entry in data.get("designs", [])
    )
