"""Tests for stylestudio.styles — the read-only style catalog."""

from __future__ import annotations

import pytest

from stylestudio.styles import StyleCatalog


@pytest.fixture
def catalog(styles_file) -> StyleCatalog:
    return StyleCatalog.load(styles_file)


def test_packaged_catalog_loads():
    catalog = StyleCatalog.load()
    assert catalog.styles
    for style in catalog.styles:
        assert style.id and style.name and style.category
        assert style.recommended_model in {"nano-banana", "nano-banana-pro", "openai"}


def test_get_by_id(catalog):
    style = catalog.get("noir")
    assert style is not None
    assert style.example_images[0] == "https://examples.test/noir.jpg"
    assert catalog.get("missing") is None
    assert catalog.get(None) is None


def test_to_dict_uses_wire_names(catalog):
    data = catalog.get("ukiyo-e").to_dict()
    assert data["promptTemplate"] == "{subject} as a woodblock print"
    assert data["exampleImages"][0] == "https://examples.test/ukiyo-e-1.jpg"
    assert data["recommendedModel"] == "nano-banana"
    assert "author" not in data


@pytest.mark.parametrize(
    ("q", "expected"),
    [
        ("PORTRAIT", ["noir"]),
        ("japanese", ["ukiyo-e"]),
        ("concrete", ["brutalist"]),
        ("photography", ["noir"]),
    ],
)
def test_search_matches_name_tags_category_and_template(catalog, q, expected):
    assert [s.id for s in catalog.search(q)] == expected


def test_query_filters_category_and_paginates(catalog):
    page, total = catalog.query(category="Photography")
    assert [s.id for s in page] == ["noir"]
    assert total == 1

    page, total = catalog.query(category="All", offset=1, limit=1)
    assert [s.id for s in page] == ["noir"]
    assert total == 3


def test_by_category(catalog):
    assert [s.id for s in catalog.by_category("Architecture")] == ["brutalist"]
