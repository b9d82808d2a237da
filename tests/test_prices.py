"""
Price synchronization — defaults, overrides, optimistic update, reset.
"""

from unittest.mock import MagicMock

from archicalc import models
from archicalc.catalog import MATERIALS, default_prices, price_key
from archicalc.errors import StoreError
from archicalc.notifications import DESTRUCTIVE, Notifier
from archicalc.prices import PriceSync


def _override(db, user_id, material_key, composition_index, unit_price):
    db.add(models.MaterialPrice(
        material_key=material_key,
        composition_index=composition_index,
        composition_name="custom",
        unit="un",
        unit_price=unit_price,
        user_id=user_id,
    ))
    db.commit()


def test_anonymous_load_returns_catalog_defaults(price_sync):
    prices = price_sync.load(None)

    for material_key, material in MATERIALS.items():
        for index, composition in enumerate(material["compositions"]):
            assert prices[price_key(material_key, index)] == composition["unit_price"]
    assert prices == default_prices()


def test_anonymous_load_makes_no_store_call(notifier):
    store = MagicMock()
    PriceSync(store, notifier).load(None)
    store.select_material_prices.assert_not_called()


def test_override_replaces_only_its_key(price_sync, db, user_id):
    _override(db, user_id, "concrete", 0, 31.5)

    prices = price_sync.load(user_id)

    assert prices["concrete_0"] == 31.5
    expected = default_prices()
    expected["concrete_0"] = 31.5
    assert prices == expected

    item = price_sync.find_item("concrete", 0)
    assert item.unit_price == 31.5
    assert item.default_price == 28.0


def test_overrides_of_other_users_are_not_visible(price_sync, db, make_user):
    mine = make_user("me@obra.com")
    theirs = make_user("them@obra.com")
    _override(db, theirs, "paint", 0, 99.0)

    prices = price_sync.load(mine)

    assert prices["paint_0"] == 45.0


def test_stale_override_rows_are_ignored(price_sync, db, user_id):
    _override(db, user_id, "granite", 0, 500.0)
    _override(db, user_id, "brick", 42, 7.0)

    prices = price_sync.load(user_id)

    assert "granite_0" not in prices
    assert "brick_42" not in prices
    assert prices == default_prices()
    assert price_sync.notifier.pending() == []


def test_load_failure_falls_back_to_defaults_and_notifies():
    store = MagicMock()
    store.select_material_prices.side_effect = StoreError("connection refused", "select material_prices")
    notifier = Notifier()
    sync = PriceSync(store, notifier)

    prices = sync.load(7)

    assert prices == default_prices()
    assert notifier.pending()[0].variant == DESTRUCTIVE


def test_update_price_persists_and_patches_local_state(price_sync, db, user_id):
    price_sync.load(user_id)

    assert price_sync.update_price(user_id, "wood", 1, 14.25) is True

    assert price_sync.prices["wood_1"] == 14.25
    assert price_sync.find_item("wood", 1).unit_price == 14.25

    row = db.query(models.MaterialPrice).filter(models.MaterialPrice.user_id == user_id).one()
    assert (row.material_key, row.composition_index, row.unit_price) == ("wood", 1, 14.25)
    assert row.composition_name == "Manta acústica"
    assert row.unit == "m²"

    titles = [n.title for n in price_sync.notifier.drain()]
    assert titles == ["Preço atualizado"]


def test_update_price_twice_keeps_a_single_row(price_sync, db, user_id):
    price_sync.load(user_id)
    price_sync.update_price(user_id, "ceramic", 2, 26.0)
    price_sync.update_price(user_id, "ceramic", 2, 27.0)

    rows = db.query(models.MaterialPrice).filter(models.MaterialPrice.user_id == user_id).all()
    assert len(rows) == 1
    assert rows[0].unit_price == 27.0
    assert price_sync.prices["ceramic_2"] == 27.0


def test_update_unknown_item_is_a_silent_noop(notifier):
    store = MagicMock()
    sync = PriceSync(store, notifier)
    before_prices = dict(sync.prices)
    before_items = list(sync.price_items)

    assert sync.update_price(1, "granite", 0, 10.0) is False
    assert sync.update_price(1, "concrete", 99, 10.0) is False

    store.upsert_material_price.assert_not_called()
    assert sync.prices == before_prices
    assert sync.price_items == before_items
    assert notifier.pending() == []


def test_update_without_identity_notifies_and_skips_store(notifier):
    store = MagicMock()
    sync = PriceSync(store, notifier)

    assert sync.update_price(None, "concrete", 0, 30.0) is False

    store.upsert_material_price.assert_not_called()
    assert sync.prices["concrete_0"] == 28.0
    assert notifier.pending()[0].title == "Login necessário"


def test_update_failure_leaves_state_unchanged_and_does_not_raise(notifier):
    store = MagicMock()
    store.upsert_material_price.side_effect = StoreError("permission denied", "upsert material_prices")
    sync = PriceSync(store, notifier)
    before = dict(sync.prices)

    assert sync.update_price(3, "brick", 0, 2.0) is False

    assert sync.prices == before
    assert sync.find_item("brick", 0).unit_price == 1.2
    assert notifier.pending()[0].variant == DESTRUCTIVE


def test_update_is_a_snapshot_not_a_reload(price_sync, db, user_id):
    """Rows written behind the layer's back only show up after refresh()."""
    price_sync.load(user_id)
    _override(db, user_id, "paint", 2, 9.9)

    assert price_sync.prices["paint_2"] == 8.0
    price_sync.refresh(user_id)
    assert price_sync.prices["paint_2"] == 9.9


def test_reset_to_defaults_deletes_overrides(price_sync, db, user_id, make_user):
    other = make_user("other@obra.com")
    _override(db, other, "concrete", 0, 40.0)
    price_sync.load(user_id)
    price_sync.update_price(user_id, "concrete", 0, 30.0)
    price_sync.update_price(user_id, "paint", 1, 36.0)

    assert price_sync.reset_to_defaults(user_id) is True

    assert price_sync.prices == default_prices()
    assert all(i.unit_price == i.default_price for i in price_sync.price_items)
    db.expire_all()
    assert db.query(models.MaterialPrice).filter(models.MaterialPrice.user_id == user_id).count() == 0
    assert db.query(models.MaterialPrice).filter(models.MaterialPrice.user_id == other).count() == 1


def test_reset_failure_keeps_overrides_locally(notifier):
    store = MagicMock()
    store.select_material_prices.return_value = [
        {"material_key": "wood", "composition_index": 0, "unit_price": 90.0},
    ]
    store.delete_material_prices.side_effect = StoreError("timeout", "delete material_prices")
    sync = PriceSync(store, notifier)
    sync.load(5)

    assert sync.reset_to_defaults(5) is False
    assert sync.prices["wood_0"] == 90.0


def test_reset_without_identity_skips_store(notifier):
    store = MagicMock()
    sync = PriceSync(store, notifier)

    assert sync.reset_to_defaults(None) is False
    store.delete_material_prices.assert_not_called()


def test_get_price_reads_the_snapshot(price_sync, user_id):
    price_sync.load(user_id)
    price_sync.update_price(user_id, "brick", 1, 300.0)

    assert price_sync.get_price("brick", 1) == 300.0
    assert price_sync.get_price("brick", 0) == 1.2
    assert price_sync.get_price("granite", 0) is None
