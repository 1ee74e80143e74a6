# Overview: Purchase receipts; turns receipt lines into costed inventory lots.

"""
Purchase Intake

WHY: The receipt's overhead (tax, delivery, other fees) is part of what the
stock cost, so it is folded into each line's unit cost in proportion to the
line's share of the subtotal. CRV is a per-unit deposit and is added on top.

COSTING (integer cents):
- share(line)      = line_total / subtotal x overhead, largest-remainder
                     rounding so SUM(share) == overhead exactly
- unit_cost(line)  = round_half_up((line_total + share) / quantity) + crv_per_unit

LINKING:
- Lines with a menu_item_id become reimbursable lots.
- Unlinked (free-text) lines are stored for the record and reported as
  warnings; they never reach inventory.

REVERSAL:
- A purchase can be deleted only while none of its lots has been touched.
  Every lot is checked before anything is removed.
- Editing a receipt is a reversal plus a fresh costing in one transaction,
  under the same rule.
"""

from __future__ import annotations

from datetime import date

from flask import current_app

from ..errors import CannotReverseConsumedLotError, NotFoundError, ValidationError
from ..extensions import db
from ..models import InventoryLot, Purchase, PurchaseLine
from ..money import round_half_up_div
from concessions.time_utils import today
from .catalog_service import get_menu_item
from .concurrency import fresh, ledger_lock, lock_for_update, run_with_retry
from .inventory_service import log_movement, receive_inner


def allocate_overhead(line_totals: list[int], overhead_cents: int) -> list[int]:
    """
    Split overhead across lines proportionally to their totals.

    Floors every exact share, then hands the leftover cents to the lines with
    the largest remainders (earlier lines win ties).
    """
    if overhead_cents < 0:
        raise ValidationError("Overhead cannot be negative")
    if any(t < 0 for t in line_totals):
        raise ValidationError("Line totals cannot be negative")
    if overhead_cents == 0:
        return [0 for _ in line_totals]

    subtotal = sum(line_totals)
    if subtotal <= 0:
        raise ValidationError(
            "Cannot allocate overhead to a receipt with a zero subtotal",
            {"overhead_cents": overhead_cents},
        )

    shares = []
    remainders = []
    for index, total in enumerate(line_totals):
        share, remainder = divmod(total * overhead_cents, subtotal)
        shares.append(share)
        remainders.append((remainder, -index))

    leftover = overhead_cents - sum(shares)
    for _, neg_index in sorted(remainders, reverse=True)[:leftover]:
        shares[-neg_index] += 1
    return shares


def compute_unit_cost_cents(line_total_cents: int, overhead_share_cents: int, quantity: int, crv_per_unit_cents: int = 0) -> int:
    if quantity <= 0:
        raise ValidationError("quantity must be positive")
    return round_half_up_div(line_total_cents + overhead_share_cents, quantity) + crv_per_unit_cents


def _normalize_line(raw: dict, index: int) -> dict:
    def _int(key, default=None):
        value = raw.get(key, default)
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"lines[{index}].{key} must be an integer")
        return value

    quantity = _int("quantity")
    if quantity is None or quantity <= 0:
        raise ValidationError(f"lines[{index}].quantity must be a positive integer")

    line_total = _int("line_total_cents")
    if line_total is None:
        unit_price = _int("unit_price_cents")
        if unit_price is None:
            raise ValidationError(f"lines[{index}] needs line_total_cents or unit_price_cents")
        line_total = unit_price * quantity
    if line_total < 0:
        raise ValidationError(f"lines[{index}].line_total_cents cannot be negative")

    crv = _int("crv_per_unit_cents", 0) or 0
    if crv < 0:
        raise ValidationError(f"lines[{index}].crv_per_unit_cents cannot be negative")

    menu_item_id = _int("menu_item_id")
    item_name = (raw.get("item_name") or "").strip()
    item = None
    if menu_item_id is not None:
        item = get_menu_item(menu_item_id)
        if item.is_composite:
            raise ValidationError(
                f"lines[{index}]: composite item {item.name} cannot be purchased",
                {"menu_item_id": menu_item_id},
            )
        item_name = item_name or item.name
    if not item_name:
        raise ValidationError(f"lines[{index}] needs menu_item_id or item_name")

    return {
        "item": item,
        "item_name": item_name,
        "quantity": quantity,
        "line_total_cents": line_total,
        "crv_per_unit_cents": crv,
    }


def _check_overhead(tax_cents: int, delivery_fee_cents: int, other_fees_cents: int) -> None:
    for key, value in (("tax_cents", tax_cents), ("delivery_fee_cents", delivery_fee_cents), ("other_fees_cents", other_fees_cents)):
        if value is None or value < 0:
            raise ValidationError(f"{key} cannot be negative")


def _cost_receipt_inner(
    purchase: Purchase,
    lines: list[dict],
    *,
    created_by: str | None = None,
) -> tuple[list[int], list[str]]:
    """
    Cost the receipt's lines and receive the linked ones as lots.

    Header fields (vendor, date, overhead) must already be set on `purchase`.
    Fills in the receipt totals. Flushes only; caller holds ledger_lock().
    """
    parsed = [_normalize_line(raw, i) for i, raw in enumerate(lines)]
    shares = allocate_overhead([p["line_total_cents"] for p in parsed], purchase.overhead_cents)

    subtotal = sum(p["line_total_cents"] for p in parsed)
    crv_total = sum(p["crv_per_unit_cents"] * p["quantity"] for p in parsed)
    purchase.subtotal_cents = subtotal
    purchase.crv_total_cents = crv_total
    purchase.total_cents = subtotal + crv_total + purchase.overhead_cents
    db.session.flush()

    lot_ids = []
    warnings = []
    for p, share in zip(parsed, shares):
        unit_cost = compute_unit_cost_cents(
            p["line_total_cents"], share, p["quantity"], p["crv_per_unit_cents"]
        )
        line = PurchaseLine(
            purchase_id=purchase.id,
            menu_item_id=p["item"].id if p["item"] else None,
            item_name=p["item_name"],
            quantity=p["quantity"],
            line_total_cents=p["line_total_cents"],
            crv_per_unit_cents=p["crv_per_unit_cents"],
            overhead_share_cents=share,
            unit_cost_cents=unit_cost,
        )
        db.session.add(line)
        db.session.flush()

        if p["item"] is None:
            warnings.append(f"Line '{p['item_name']}' is not linked to a menu item; no inventory received")
            continue

        lot = receive_inner(
            item=p["item"],
            quantity=p["quantity"],
            unit_cost_cents=unit_cost,
            reimbursable=True,
            purchase_date=purchase.purchase_date,
            vendor=purchase.vendor,
            purchase_line_id=line.id,
            purchase_id=purchase.id,
            source="purchase",
            created_by=created_by,
        )
        lot_ids.append(lot.id)

    return lot_ids, warnings


def create_purchase(
    *,
    lines: list[dict],
    vendor: str | None = None,
    purchase_date: date | None = None,
    tax_cents: int = 0,
    delivery_fee_cents: int = 0,
    other_fees_cents: int = 0,
    notes: str | None = None,
    created_by: str | None = None,
) -> tuple[Purchase, list[int], list[str]]:
    """
    Record a receipt and receive its linked lines as reimbursable lots.

    Returns (purchase, new lot ids, warnings). Warnings name unlinked lines.
    """
    if not lines:
        raise ValidationError("A purchase needs at least one line")
    _check_overhead(tax_cents, delivery_fee_cents, other_fees_cents)

    def _op():
        with ledger_lock():
            purchase = Purchase(
                vendor=vendor,
                purchase_date=purchase_date or today(),
                tax_cents=tax_cents,
                delivery_fee_cents=delivery_fee_cents,
                other_fees_cents=other_fees_cents,
                notes=notes,
                created_by=created_by,
            )
            db.session.add(purchase)
            db.session.flush()

            lot_ids, warnings = _cost_receipt_inner(purchase, lines, created_by=created_by)
            db.session.commit()
            return purchase, lot_ids, warnings

    purchase, lot_ids, warnings = run_with_retry(_op)
    for warning in warnings:
        current_app.logger.warning("Purchase %s: %s", purchase.id, warning)
    return purchase, lot_ids, warnings


def _purchase_lots(purchase_id: int) -> list[InventoryLot]:
    q = (
        db.session.query(InventoryLot)
        .join(PurchaseLine, InventoryLot.purchase_line_id == PurchaseLine.id)
        .filter(PurchaseLine.purchase_id == purchase_id)
    )
    return fresh(lock_for_update(q)).order_by(InventoryLot.id.asc()).all()


def _reverse_lots_inner(purchase_id: int, note: str) -> list[dict]:
    """
    Remove every lot the receipt created. Flushes only.

    Raises CannotReverseConsumedLotError before removing anything when any
    lot has already been (partly) consumed.
    """
    lots = _purchase_lots(purchase_id)
    consumed = [
        {
            "lot_id": lot.id,
            "menu_item_id": lot.menu_item_id,
            "quantity_original": lot.quantity_original,
            "quantity_remaining": lot.quantity_remaining,
            "quantity_consumed": lot.quantity_consumed,
        }
        for lot in lots
        if lot.quantity_remaining < lot.quantity_original
    ]
    if consumed:
        raise CannotReverseConsumedLotError(purchase_id, consumed)

    reversed_lots = []
    for lot in lots:
        reversed_lots.append(lot.to_dict())
        log_movement(
            lot.menu_item_id,
            "purchase_reversal",
            -lot.quantity_original,
            unit_cost_cents=lot.unit_cost_cents,
            is_reimbursable=lot.is_reimbursable,
            purchase_id=purchase_id,
            lot_id=lot.id,
            note=note,
        )
        db.session.delete(lot)
    db.session.flush()
    return reversed_lots


def delete_purchase(purchase_id: int) -> list[dict]:
    """
    Reverse a receipt: remove its lots and the receipt itself.

    Raises CannotReverseConsumedLotError, with nothing changed, when any lot
    has already been (partly) consumed. Returns the reversed lots.
    """
    def _op():
        with ledger_lock():
            purchase = get_purchase(purchase_id)
            reversed_lots = _reverse_lots_inner(purchase_id, f"Reversed purchase #{purchase_id}")
            db.session.delete(purchase)
            db.session.commit()
            return reversed_lots

    return run_with_retry(_op)


def update_purchase(
    purchase_id: int,
    *,
    lines: list[dict],
    vendor: str | None = None,
    purchase_date: date | None = None,
    tax_cents: int = 0,
    delivery_fee_cents: int = 0,
    other_fees_cents: int = 0,
    notes: str | None = None,
    updated_by: str | None = None,
) -> tuple[Purchase, list[int], list[str]]:
    """
    Correct a receipt: reverse its lots, then cost and receive it again.

    Same rule as delete: refused with CannotReverseConsumedLotError, with
    nothing changed, once any of its stock has been used. The receipt keeps
    its id; its lines and lots are replaced. Returns (purchase, new lot ids,
    warnings).
    """
    if not lines:
        raise ValidationError("A purchase needs at least one line")
    _check_overhead(tax_cents, delivery_fee_cents, other_fees_cents)

    def _op():
        with ledger_lock():
            purchase = get_purchase(purchase_id)
            _reverse_lots_inner(purchase_id, f"Edited purchase #{purchase_id}")
            purchase.lines.clear()
            db.session.flush()

            purchase.vendor = vendor
            purchase.purchase_date = purchase_date or purchase.purchase_date
            purchase.tax_cents = tax_cents
            purchase.delivery_fee_cents = delivery_fee_cents
            purchase.other_fees_cents = other_fees_cents
            purchase.notes = notes

            lot_ids, warnings = _cost_receipt_inner(purchase, lines, created_by=updated_by)
            db.session.commit()
            return purchase, lot_ids, warnings

    purchase, lot_ids, warnings = run_with_retry(_op)
    current_app.logger.info("Purchase %s edited, %s lot(s) received", purchase.id, len(lot_ids))
    for warning in warnings:
        current_app.logger.warning("Purchase %s: %s", purchase.id, warning)
    return purchase, lot_ids, warnings


def stock_update(
    item_id: int,
    quantity: int,
    *,
    unit_cost_cents: int | None = None,
    purchase_date: date | None = None,
    notes: str | None = None,
    created_by: str | None = None,
) -> InventoryLot:
    """
    Manual stock (donations, stock bought without a receipt). Never
    reimbursable; cost defaults to the item's last known unit cost.
    """
    def _op():
        with ledger_lock():
            item = get_menu_item(item_id)
            cost = unit_cost_cents
            if cost is None:
                cost = item.unit_cost_cents or 0
            lot = receive_inner(
                item=item,
                quantity=quantity,
                unit_cost_cents=cost,
                reimbursable=False,
                purchase_date=purchase_date,
                source="stock_update",
                note=notes or "Manual stock update",
                created_by=created_by,
            )
            db.session.commit()
            return lot

    return run_with_retry(_op)


def get_purchase(purchase_id: int) -> Purchase:
    purchase = db.session.get(Purchase, purchase_id)
    if purchase is None:
        raise NotFoundError(f"Purchase {purchase_id} not found", {"purchase_id": purchase_id})
    return purchase


def list_purchases(*, limit: int = 100) -> list[Purchase]:
    return (
        db.session.query(Purchase)
        .order_by(Purchase.purchase_date.desc(), Purchase.id.desc())
        .limit(limit)
        .all()
    )


def last_purchase_quantity(item_id: int) -> int | None:
    """Quantity on the most recent receipt line for this item (reorder hint)."""
    row = (
        db.session.query(PurchaseLine.quantity)
        .join(Purchase, PurchaseLine.purchase_id == Purchase.id)
        .filter(PurchaseLine.menu_item_id == item_id)
        .order_by(Purchase.purchase_date.desc(), Purchase.id.desc(), PurchaseLine.id.desc())
        .first()
    )
    return row[0] if row else None
