from datetime import date

import pytest

from concessions.errors import InsufficientStockError, ValidationError
from concessions.models import InventoryLot, LotConsumption
from concessions.services import catalog_service, composite_service, inventory_service


@pytest.fixture
def meal(db_session, combo, water_refill):
    """Composite containing another composite."""
    return catalog_service.create_menu_item(
        name="Game Day Meal",
        price_cents=350,
        is_composite=True,
        components=[
            {"component_item_id": combo.id, "quantity": 1},
            {"component_item_id": water_refill.id, "quantity": 1},
        ],
    )


def test_consume_composite_draws_each_component(db_session, combo, soda, chips, stock):
    stock(soda, 5, 50)
    stock(chips, 10, 30)

    consumptions = composite_service.consume_composite(combo.id, 2)
    db_session.commit()

    by_item = {}
    for c in consumptions:
        by_item[c.menu_item_id] = by_item.get(c.menu_item_id, 0) + c.quantity
    assert by_item == {soda.id: 2, chips.id: 4}
    assert inventory_service.consumption_cost(consumptions)[0] == 2 * 50 + 4 * 30
    assert inventory_service.get_quantity_on_hand(soda.id) == 3
    assert inventory_service.get_quantity_on_hand(chips.id) == 6


def test_component_shortage_releases_everything(db_session, combo, soda, chips, stock):
    stock(soda, 5, 50, date(2024, 1, 1))
    stock(chips, 3, 30, date(2024, 1, 1))

    with pytest.raises(InsufficientStockError) as excinfo:
        composite_service.consume_composite(combo.id, 2)

    err = excinfo.value
    assert err.composite_item_id == combo.id
    assert err.menu_item_id == chips.id
    assert err.requested == 4
    assert err.available == 3
    assert err.to_dict()["details"]["composite_item_id"] == combo.id

    assert inventory_service.get_quantity_on_hand(soda.id) == 5
    assert inventory_service.get_quantity_on_hand(chips.id) == 3
    assert LotConsumption.query.count() == 0
    db_session.rollback()
    assert [lot.quantity_remaining for lot in InventoryLot.query.order_by(InventoryLot.id)] == [5, 3]


def test_consume_item_dispatches(db_session, combo, soda, chips, water_refill, stock):
    stock(soda, 2, 50)
    stock(chips, 2, 30)

    assert len(composite_service.consume_item(soda.id, 1)) == 1
    assert composite_service.consume_item(water_refill.id, 3) == []
    assert len(composite_service.consume_item(combo.id, 1)) == 2


def test_nested_composite(db_session, meal, soda, chips, water_refill, stock):
    stock(soda, 3, 50)
    stock(chips, 6, 30)

    consumptions = composite_service.consume_composite(meal.id, 2)

    assert sum(c.quantity for c in consumptions if c.menu_item_id == soda.id) == 2
    assert sum(c.quantity for c in consumptions if c.menu_item_id == chips.id) == 4
    assert all(c.menu_item_id != water_refill.id for c in consumptions)


def test_nested_shortage_names_outer_composite(db_session, meal, soda, chips, stock):
    stock(soda, 1, 50)
    stock(chips, 6, 30)

    with pytest.raises(InsufficientStockError) as excinfo:
        composite_service.consume_composite(meal.id, 2)

    assert excinfo.value.composite_item_id == meal.id
    assert inventory_service.get_quantity_on_hand(soda.id) == 1
    assert inventory_service.get_quantity_on_hand(chips.id) == 6


def test_composite_without_components_rejected(db_session):
    empty = catalog_service.create_menu_item(name="Mystery Box", price_cents=500, is_composite=True)
    with pytest.raises(ValidationError):
        composite_service.consume_composite(empty.id, 1)


def test_consume_composite_rejects_plain_item(db_session, soda):
    with pytest.raises(ValidationError):
        composite_service.consume_composite(soda.id, 1)


def test_available_quantity(db_session, combo, meal, soda, chips, water_refill, stock):
    assert composite_service.available_quantity(water_refill.id) is None
    assert composite_service.available_quantity(combo.id) == 0

    stock(soda, 5, 50)
    stock(chips, 7, 30)

    assert composite_service.available_quantity(soda.id) == 5
    assert composite_service.available_quantity(combo.id) == 3
    assert composite_service.available_quantity(meal.id) == 3


def test_available_quantity_untracked_only_recipe(db_session, water_refill):
    refill_pack = catalog_service.create_menu_item(
        name="Refill Pack",
        price_cents=90,
        is_composite=True,
        components=[{"component_item_id": water_refill.id, "quantity": 2}],
    )
    assert composite_service.available_quantity(refill_pack.id) is None


def test_explode_flattens_nested_recipe(db_session, meal, soda, chips, water_refill):
    assert composite_service.explode(meal.id, 2) == {soda.id: 2, chips.id: 4, water_refill.id: 2}


def test_recipe_cycles_rejected(db_session, combo, meal):
    with pytest.raises(ValidationError):
        catalog_service.set_components(combo.id, [{"component_item_id": combo.id, "quantity": 1}])
    with pytest.raises(ValidationError):
        catalog_service.set_components(combo.id, [{"component_item_id": meal.id, "quantity": 1}])

    recipe = composite_service.get_recipe(combo.id)
    assert [c["quantity"] for c in recipe["components"]] == [1, 2]
