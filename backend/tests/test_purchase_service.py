from datetime import date

import pytest

from concessions.errors import CannotReverseConsumedLotError, ValidationError
from concessions.models import InventoryLot, InventoryTransaction, Purchase, PurchaseLine
from concessions.services import inventory_service, purchase_service


def test_allocate_overhead_largest_remainder():
    assert purchase_service.allocate_overhead([1000, 2000, 3000], 100) == [17, 33, 50]


def test_allocate_overhead_proportional_share():
    # $25 of a $100 receipt carries a quarter of $10 overhead
    assert purchase_service.allocate_overhead([2500, 7500], 1000) == [250, 750]


def test_allocate_overhead_ties_go_to_earlier_lines():
    assert purchase_service.allocate_overhead([1, 1, 1], 2) == [1, 1, 0]


def test_allocate_overhead_zero_overhead():
    assert purchase_service.allocate_overhead([0, 500], 0) == [0, 0]


def test_allocate_overhead_zero_subtotal_rejected():
    with pytest.raises(ValidationError):
        purchase_service.allocate_overhead([0, 0], 50)


def test_compute_unit_cost_rounds_half_up_then_adds_crv():
    assert purchase_service.compute_unit_cost_cents(1000, 17, 24, 5) == 47
    assert purchase_service.compute_unit_cost_cents(1200, 60, 24, 5) == 58


def _receipt(soda, chips):
    return purchase_service.create_purchase(
        vendor="Costco",
        purchase_date=date(2024, 9, 3),
        tax_cents=115,
        lines=[
            {"menu_item_id": soda.id, "quantity": 24, "line_total_cents": 1200, "crv_per_unit_cents": 5},
            {"menu_item_id": chips.id, "quantity": 10, "unit_price_cents": 80},
            {"item_name": "Napkins", "quantity": 1, "line_total_cents": 300},
        ],
        created_by="treasurer",
    )


def test_create_purchase_costs_lines_and_receives_lots(db_session, soda, chips):
    purchase, lot_ids, warnings = _receipt(soda, chips)

    assert purchase.subtotal_cents == 2300
    assert purchase.crv_total_cents == 120
    assert purchase.total_cents == 2535

    lines = PurchaseLine.query.filter_by(purchase_id=purchase.id).order_by(PurchaseLine.id).all()
    assert [line.overhead_share_cents for line in lines] == [60, 40, 15]
    assert [line.unit_cost_cents for line in lines[:2]] == [58, 84]
    assert lines[2].is_linked is False

    assert len(lot_ids) == 2
    assert len(warnings) == 1
    assert "Napkins" in warnings[0]

    soda_lot = db_session.get(InventoryLot, lot_ids[0])
    assert soda_lot.unit_cost_cents == 58
    assert soda_lot.is_reimbursable is True
    assert soda_lot.purchase_date == date(2024, 9, 3)
    assert inventory_service.get_quantity_on_hand(chips.id) == 10


def test_create_purchase_rejects_composite_line(db_session, combo):
    with pytest.raises(ValidationError):
        purchase_service.create_purchase(lines=[{"menu_item_id": combo.id, "quantity": 2, "line_total_cents": 500}])
    assert Purchase.query.count() == 0


def test_create_purchase_rejects_empty_and_negative_fees(db_session, soda):
    with pytest.raises(ValidationError):
        purchase_service.create_purchase(lines=[])
    with pytest.raises(ValidationError):
        purchase_service.create_purchase(
            lines=[{"menu_item_id": soda.id, "quantity": 1, "line_total_cents": 100}],
            tax_cents=-1,
        )


def test_delete_purchase_reverses_untouched_lots(db_session, soda, chips):
    purchase, lot_ids, _ = _receipt(soda, chips)

    reversed_lots = purchase_service.delete_purchase(purchase.id)

    assert {lot["id"] for lot in reversed_lots} == set(lot_ids)
    assert Purchase.query.count() == 0
    assert InventoryLot.query.count() == 0
    assert inventory_service.get_quantity_on_hand(soda.id) == 0
    assert InventoryTransaction.query.filter_by(type="purchase_reversal").count() == 2


def test_delete_purchase_after_consumption_changes_nothing(db_session, soda, chips):
    purchase, lot_ids, _ = _receipt(soda, chips)
    inventory_service.consume(soda.id, 1)
    db_session.commit()

    with pytest.raises(CannotReverseConsumedLotError) as excinfo:
        purchase_service.delete_purchase(purchase.id)

    assert excinfo.value.lots[0]["quantity_consumed"] == 1
    assert db_session.get(Purchase, purchase.id) is not None
    assert InventoryLot.query.count() == 2
    assert inventory_service.get_quantity_on_hand(chips.id) == 10


def test_stock_update_is_never_reimbursable(db_session, soda, stock):
    stock(soda, 1, 65)

    lot = purchase_service.stock_update(soda.id, 6, notes="Donated by parents")

    assert lot.source == "stock_update"
    assert lot.is_reimbursable is False
    assert lot.unit_cost_cents == 65
    assert inventory_service.get_quantity_on_hand(soda.id) == 7


def test_last_purchase_quantity(db_session, soda, chips):
    assert purchase_service.last_purchase_quantity(soda.id) is None
    _receipt(soda, chips)
    purchase_service.create_purchase(
        purchase_date=date(2024, 9, 10),
        lines=[{"menu_item_id": soda.id, "quantity": 12, "line_total_cents": 600}],
    )
    assert purchase_service.last_purchase_quantity(soda.id) == 12


def test_update_purchase_recosts_and_replaces_lots(db_session, soda, chips):
    purchase, old_lot_ids, _ = _receipt(soda, chips)

    updated, lot_ids, warnings = purchase_service.update_purchase(
        purchase.id,
        vendor="Costco",
        purchase_date=date(2024, 9, 4),
        lines=[{"menu_item_id": soda.id, "quantity": 24, "line_total_cents": 1200, "crv_per_unit_cents": 5}],
        updated_by="treasurer",
    )

    assert updated.id == purchase.id
    assert warnings == []
    assert updated.subtotal_cents == 1200
    assert updated.total_cents == 1320
    assert updated.overhead_cents == 0
    assert Purchase.query.count() == 1
    assert PurchaseLine.query.filter_by(purchase_id=purchase.id).count() == 1

    assert not set(lot_ids) & set(old_lot_ids)
    lot = db_session.get(InventoryLot, lot_ids[0])
    assert lot.unit_cost_cents == 55
    assert lot.purchase_date == date(2024, 9, 4)
    assert inventory_service.get_quantity_on_hand(soda.id) == 24
    assert inventory_service.get_quantity_on_hand(chips.id) == 0
    assert InventoryTransaction.query.filter_by(type="purchase_reversal").count() == 2


def test_update_purchase_after_consumption_changes_nothing(db_session, soda, chips):
    purchase, lot_ids, _ = _receipt(soda, chips)
    inventory_service.consume(chips.id, 2)
    db_session.commit()

    with pytest.raises(CannotReverseConsumedLotError):
        purchase_service.update_purchase(
            purchase.id,
            lines=[{"menu_item_id": soda.id, "quantity": 1, "line_total_cents": 100}],
        )

    purchase = db_session.get(Purchase, purchase.id)
    assert purchase.total_cents == 2535
    assert PurchaseLine.query.filter_by(purchase_id=purchase.id).count() == 3
    assert sorted(lot.id for lot in InventoryLot.query.all()) == sorted(lot_ids)
    assert inventory_service.get_quantity_on_hand(soda.id) == 24
    assert inventory_service.get_quantity_on_hand(chips.id) == 8


def test_update_purchase_bad_line_changes_nothing(db_session, soda, chips, combo):
    purchase, lot_ids, _ = _receipt(soda, chips)

    with pytest.raises(ValidationError):
        purchase_service.update_purchase(
            purchase.id,
            lines=[{"menu_item_id": combo.id, "quantity": 1, "line_total_cents": 100}],
        )

    assert sorted(lot.id for lot in InventoryLot.query.all()) == sorted(lot_ids)
    assert PurchaseLine.query.filter_by(purchase_id=purchase.id).count() == 3
    assert InventoryTransaction.query.filter_by(type="purchase_reversal").count() == 0
