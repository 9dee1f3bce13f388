from __future__ import annotations

from catalog_crawler.engine.catalog import CatalogEntry, flatten_products

from conftest import make_product


def test_variants_are_flattened_with_parent_title() -> None:
    products = [
        {
            "title": "Trail Shoe",
            "variants": [
                {"sku": "TS-41", "price": "89.90", "title": "41"},
                {"sku": "TS-42", "price": "89.90", "title": "42"},
            ],
        },
        make_product("CAP-1", price="12.00", title="Cap", variant="Red"),
    ]
    assert flatten_products(products) == [
        CatalogEntry(sku="TS-41", price="89.90", title="Trail Shoe 41"),
        CatalogEntry(sku="TS-42", price="89.90", title="Trail Shoe 42"),
        CatalogEntry(sku="CAP-1", price="12.00", title="Cap Red"),
    ]


def test_blank_and_missing_skus_are_dropped() -> None:
    products = [
        make_product(None),
        make_product(""),
        make_product("   "),
        make_product(" KEEP-1 "),
    ]
    entries = flatten_products(products)
    assert [e.sku for e in entries] == ["KEEP-1"]


def test_price_is_kept_as_text_and_null_survives() -> None:
    entries = flatten_products(
        [make_product("A", price=12.5), make_product("B", price=None), make_product("C", price="7")]
    )
    assert [e.price for e in entries] == ["12.5", None, "7"]


def test_products_without_variant_list_are_ignored() -> None:
    products = [{"title": "Bare"}, {"title": "Odd", "variants": "nope"}, "junk", {"variants": [None, 3]}]
    assert flatten_products(products) == []


def test_missing_variant_title_is_not_padded() -> None:
    entries = flatten_products([{"title": "Mug", "variants": [{"sku": "M1", "price": "5"}]}])
    assert entries[0].title == "Mug"
