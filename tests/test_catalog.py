from archicalc.catalog import (
    MATERIALS,
    default_price_items,
    default_prices,
    price_key,
)


def test_price_key_format():
    assert price_key("concrete", 3) == "concrete_3"


def test_items_and_map_cover_the_same_compositions():
    items = default_price_items()
    prices = default_prices()

    assert len(items) == sum(len(m["compositions"]) for m in MATERIALS.values())
    assert {price_key(i.material_key, i.composition_index) for i in items} == set(prices)
    for item in items:
        assert item.unit_price == item.default_price == prices[price_key(item.material_key, item.composition_index)]


def test_items_follow_catalog_order():
    items = default_price_items()
    assert (items[0].material_key, items[0].composition_index) == ("concrete", 0)
    assert items[0].composition_name == "Cimento CP-32"


def test_helpers_return_fresh_copies():
    items = default_price_items()
    items[0].unit_price = 0
    prices = default_prices()
    prices["concrete_0"] = 0

    assert default_price_items()[0].unit_price == 28.0
    assert default_prices()["concrete_0"] == 28.0
    assert MATERIALS["concrete"]["compositions"][0]["unit_price"] == 28.0

