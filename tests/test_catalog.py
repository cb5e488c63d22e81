"""
Design Catalog Tests
====================
"""

import pytest

from prettynails.catalog.catalog import DesignCatalog, SAMPLE_DESIGNS, load_catalog
from prettynails.models.design import DesignCategory


@pytest.fixture
def catalog():
    return DesignCatalog()


class TestDesignCatalog:

    def test_sample_designs(self, catalog):
        assert len(catalog) == 10
        assert catalog.all() == list(SAMPLE_DESIGNS)

    def test_get(self, catalog):
        assert catalog.get("french-manicure").name == "French Manicure"
        assert catalog.get("missing") is None

    def test_search_is_case_insensitive(self, catalog):
        ids = [d.id for d in catalog.search("RED")]
        assert "classic-red" in ids

    def test_search_matches_tags_and_description(self, catalog):
        assert [d.id for d in catalog.search("snowflake")] == ["winter-snowflakes"]
        assert "sunset-ombre" in [d.id for d in catalog.search("gradient")]

    def test_empty_query_returns_all(self, catalog):
        assert len(catalog.search("")) == len(catalog)

    def test_by_category(self, catalog):
        classics = catalog.by_category(DesignCategory.CLASSIC)
        assert [d.id for d in classics] == ["classic-red", "french-manicure"]
        assert catalog.by_category("classic") == classics

    def test_by_tag_exact(self, catalog):
        assert [d.id for d in catalog.by_tag("French")] == ["french-manicure"]
        assert catalog.by_tag("fren") == []

    def test_popular(self, catalog):
        assert {d.id for d in catalog.popular()} == {
            "classic-red",
            "french-manicure",
            "floral-garden",
            "rose-gold-glitter",
            "marble-effect",
        }

    def test_categorized_covers_everything(self, catalog):
        grouped = catalog.categorized()
        assert sum(len(designs) for designs in grouped.values()) == len(catalog)

    def test_filter_combines_criteria(self, catalog):
        assert [d.id for d in catalog.filter(category="modern", tag="modern")] == [
            "geometric-lines"
        ]

    def test_filter_unknown_category(self, catalog):
        with pytest.raises(ValueError):
            catalog.filter(category="gothic")


class TestLoadCatalog:

    def test_defaults_to_samples(self):
        assert len(load_catalog(None)) == len(SAMPLE_DESIGNS)

    def test_loads_yaml(self, tmp_path):
        path = tmp_path / "designs.yaml"
        path.write_text(
            "designs:\n"
            "  - id: mint-chip\n"
            "    name: Mint Chip\n"
            "    description: Mint green with dark speckles\n"
            "    category: casual\n"
            "    tags: [mint, speckled]\n"
        )
        catalog = load_catalog(str(path))
        design = catalog.get("mint-chip")
        assert design.category == DesignCategory.CASUAL
        assert design.tags == ("mint", "speckled")
        assert not design.is_popular
