import pytest

from concessions.errors import NotFoundError, ValidationError
from concessions.models import PurchaseTemplateLine
from concessions.services import purchase_service, purchase_template_service


def _costco(soda, chips):
    return purchase_template_service.create_template(
        "Costco run",
        [
            {"menu_item_id": soda.id, "default_quantity": 24},
            {"menu_item_id": chips.id},
            {"item_name": "Napkins", "default_quantity": 2},
        ],
        vendor="Costco",
    )


def test_create_template_names_linked_lines(db_session, soda, chips):
    template = _costco(soda, chips)

    assert [line.item_name for line in template.lines] == ["Soda", "Chips", "Napkins"]
    assert [line.default_quantity for line in template.lines] == [24, 1, 2]
    assert template.to_dict()["item_count"] == 3


def test_template_names_are_unique(db_session, soda, chips):
    _costco(soda, chips)
    with pytest.raises(ValidationError):
        purchase_template_service.create_template("Costco run", [{"item_name": "Ice"}])


def test_template_rejects_bad_lines(db_session, combo):
    with pytest.raises(ValidationError):
        purchase_template_service.create_template("Empty", [])
    with pytest.raises(ValidationError):
        purchase_template_service.create_template("Combo", [{"menu_item_id": combo.id}])
    with pytest.raises(ValidationError):
        purchase_template_service.create_template("Zero", [{"item_name": "Ice", "default_quantity": 0}])


def test_update_template_replaces_lines(db_session, soda, chips):
    template = _costco(soda, chips)

    updated = purchase_template_service.update_template(
        template.id,
        name="Snack run",
        lines=[{"menu_item_id": chips.id, "default_quantity": 12}],
    )

    assert updated.name == "Snack run"
    assert updated.vendor == "Costco"
    assert [(line.menu_item_id, line.default_quantity) for line in updated.lines] == [(chips.id, 12)]
    assert PurchaseTemplateLine.query.count() == 1


def test_delete_template(db_session, soda, chips):
    template = _costco(soda, chips)
    purchase_template_service.delete_template(template.id)

    assert PurchaseTemplateLine.query.count() == 0
    with pytest.raises(NotFoundError):
        purchase_template_service.get_template(template.id)


def test_template_lines_feed_a_receipt(db_session, soda, chips):
    template = _costco(soda, chips)

    lines = purchase_template_service.to_purchase_lines(template.id)
    for line, total in zip(lines, (1200, 500, 300)):
        line["line_total_cents"] = total
    purchase, lot_ids, warnings = purchase_service.create_purchase(lines=lines, vendor=template.vendor)

    assert purchase.subtotal_cents == 2000
    assert len(lot_ids) == 2
    assert len(warnings) == 1
