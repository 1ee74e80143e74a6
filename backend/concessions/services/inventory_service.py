# Overview: FIFO lot ledger; every change to on-hand quantity goes through here.

# backend/concessions/services/inventory_service.py

from __future__ import annotations

from datetime import date

from sqlalchemy import func

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import (
    ConcessionSession,
    InventoryCount,
    InventoryLot,
    InventoryTransaction,
    LotConsumption,
    MenuItem,
)
from ..models.inventory import COUNT_STAGES
from concessions.time_utils import today
from .concurrency import fresh, ledger_lock, lock_for_update, run_with_retry
from .loss_service import record_loss_inner
"""
Inventory Invariants (authoritative)

Lot model:
- Stock is held in lots. On-hand quantity is SUM(quantity_remaining) over an
  item's lots; it is never stored on the item.
- 0 <= quantity_remaining <= quantity_original for every lot, always.
- Lots are consumed oldest first: ORDER BY purchase_date ASC, id ASC.

Consumption:
- Availability is checked for the FULL quantity before any lot is touched.
  A shortfall raises InsufficientStockError and nothing is written.
- Each lot touched yields one LotConsumption row carrying the lot's unit cost
  and reimbursable flag; the sum of those rows is the exact FIFO COGS.
- Untracked items consume nothing and cost nothing.
- Composite items have no lots; they are resolved by composite_service.

Locking:
- consume/release only flush. The caller must hold ledger_lock() until it
  commits, otherwise a second writer could read lots that are about to change.

Audit:
- Every quantity movement appends an InventoryTransaction. The audit log is
  append-only; a released consumption is recorded as a compensating row.
- Every physical count is kept as an InventoryCount row, including counts
  that found nothing to correct.

Practice sessions:
- adjust and record_count refuse a practice session_id. Practice sessions
  never move real stock.
"""

ADJUST_KINDS = ("lost", "wasted", "donated", "count_adjustment")

# Loss category recorded for each loss-bearing adjustment kind
ADJUST_LOSS_TYPES = {
    "lost": "inventory_discrepancy",
    "wasted": "spoilage",
    "donated": "other",
}


def _get_item(item_id: int) -> MenuItem:
    item = db.session.get(MenuItem, item_id)
    if item is None:
        raise NotFoundError(f"Menu item {item_id} not found", {"menu_item_id": item_id})
    return item


def _require_lot_item(item: MenuItem, action: str) -> None:
    if item.is_composite:
        raise ValidationError(
            f"Cannot {action} composite item {item.name}; it has no lots of its own",
            {"menu_item_id": item.id},
        )


def get_quantity_on_hand(item_id: int) -> int:
    """Unsynchronised read: SUM(quantity_remaining) over the item's lots."""
    q = db.session.query(
        func.coalesce(func.sum(InventoryLot.quantity_remaining), 0)
    ).filter(InventoryLot.menu_item_id == item_id)
    return int(q.scalar() or 0)


def _open_lots(item_id: int, *, lock: bool = False) -> list[InventoryLot]:
    q = db.session.query(InventoryLot).filter(
        InventoryLot.menu_item_id == item_id,
        InventoryLot.quantity_remaining > 0,
    )
    if lock:
        q = lock_for_update(q)
    return fresh(q).order_by(InventoryLot.purchase_date.asc(), InventoryLot.id.asc()).all()


def log_movement(item_id: int, type_: str, quantity_delta: int, **fields) -> InventoryTransaction:
    tx = InventoryTransaction(menu_item_id=item_id, type=type_, quantity_delta=quantity_delta, **fields)
    db.session.add(tx)
    return tx


def _average_cost(consumptions: list[LotConsumption]) -> int | None:
    units = sum(c.quantity for c in consumptions)
    if units <= 0:
        return None
    cost = sum(c.cost_cents for c in consumptions)
    # nearest-cent rounding (half-up)
    return (cost + (units // 2)) // units


# ---- Receive ----

def receive_inner(
    *,
    item: MenuItem,
    quantity: int,
    unit_cost_cents: int,
    reimbursable: bool,
    purchase_date: date | None = None,
    vendor: str | None = None,
    purchase_line_id: int | None = None,
    purchase_id: int | None = None,
    source: str = "purchase",
    note: str | None = None,
    created_by: str | None = None,
) -> InventoryLot:
    """Core RECEIVE logic without locking, retry, or commit."""
    _require_lot_item(item, "receive stock for")
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise ValidationError("quantity must be a positive integer", {"menu_item_id": item.id})
    if unit_cost_cents is None or unit_cost_cents < 0:
        raise ValidationError("unit_cost_cents must be zero or more", {"menu_item_id": item.id})

    lot = InventoryLot(
        menu_item_id=item.id,
        purchase_line_id=purchase_line_id,
        source=source,
        purchase_date=purchase_date or today(),
        quantity_original=quantity,
        quantity_remaining=quantity,
        unit_cost_cents=unit_cost_cents,
        is_reimbursable=bool(reimbursable),
        vendor=vendor,
    )
    db.session.add(lot)
    db.session.flush()

    # Reference cost only; synthetic count lots carry no real cost
    if source != "count_adjustment":
        item.unit_cost_cents = unit_cost_cents

    log_movement(
        item.id,
        source,
        quantity,
        unit_cost_cents=unit_cost_cents,
        is_reimbursable=bool(reimbursable),
        purchase_id=purchase_id,
        lot_id=lot.id,
        note=note,
        created_by=created_by,
    )
    db.session.flush()
    return lot


def receive(
    item_id: int,
    quantity: int,
    unit_cost_cents: int,
    reimbursable: bool,
    purchase_date: date | None = None,
    *,
    vendor: str | None = None,
    purchase_line_id: int | None = None,
    source: str = "purchase",
    note: str | None = None,
    created_by: str | None = None,
) -> InventoryLot:
    """
    Add a lot of stock at a fixed unit cost.

    Works for untracked items too (the lot is simply never consumed by sales).
    Composite items are rejected.
    """
    def _op():
        with ledger_lock():
            item = _get_item(item_id)
            lot = receive_inner(
                item=item,
                quantity=quantity,
                unit_cost_cents=unit_cost_cents,
                reimbursable=reimbursable,
                purchase_date=purchase_date,
                vendor=vendor,
                purchase_line_id=purchase_line_id,
                source=source,
                note=note,
                created_by=created_by,
            )
            db.session.commit()
            return lot

    return run_with_retry(_op)


# ---- Consume / release ----

def consume(
    item_id: int,
    quantity: int,
    kind: str = "sale",
    *,
    order_id: int | None = None,
    session_id: int | None = None,
    note: str | None = None,
) -> list[LotConsumption]:
    """
    Take `quantity` units of a non-composite item, oldest lots first.

    Returns one LotConsumption per lot touched ([] for untracked items).
    Raises InsufficientStockError before touching any lot when the item's
    total remaining is short. Flushes only; see the locking note above.
    """
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise ValidationError("quantity must be a positive integer", {"menu_item_id": item_id})

    item = _get_item(item_id)
    _require_lot_item(item, "consume")
    if not item.track_inventory:
        return []

    with ledger_lock():
        lots = _open_lots(item_id, lock=True)
        available = sum(lot.quantity_remaining for lot in lots)
        if available < quantity:
            raise InsufficientStockError(item_id, quantity, available, item_name=item.name)

        consumptions = []
        needed = quantity
        for lot in lots:
            if needed == 0:
                break
            take = min(needed, lot.quantity_remaining)
            lot.quantity_remaining -= take
            needed -= take
            consumption = LotConsumption(
                lot_id=lot.id,
                menu_item_id=item_id,
                quantity=take,
                unit_cost_cents=lot.unit_cost_cents,
                is_reimbursable=lot.is_reimbursable,
                kind=kind,
                order_id=order_id,
                session_id=session_id,
            )
            db.session.add(consumption)
            consumptions.append(consumption)

        log_movement(
            item_id,
            kind,
            -quantity,
            unit_cost_cents=_average_cost(consumptions),
            order_id=order_id,
            session_id=session_id,
            note=note,
        )
        db.session.flush()
        return consumptions


def release(consumptions: list[LotConsumption]) -> None:
    """
    Put consumed units back on the exact lots they came from and drop the
    consumption rows. Used to undo a partially resolved composite.
    """
    if not consumptions:
        return
    with ledger_lock():
        restored: dict[int, int] = {}
        for consumption in consumptions:
            lot = fresh(db.session.query(InventoryLot).filter_by(id=consumption.lot_id)).one()
            lot.quantity_remaining += consumption.quantity
            restored[consumption.menu_item_id] = restored.get(consumption.menu_item_id, 0) + consumption.quantity
            db.session.delete(consumption)

        first = consumptions[0]
        for item_id, qty in restored.items():
            log_movement(
                item_id,
                "release",
                qty,
                order_id=first.order_id,
                session_id=first.session_id,
                note="Released partial composite consumption",
            )
        db.session.flush()


def consumption_cost(consumptions: list[LotConsumption]) -> tuple[int, int]:
    """(total_cost_cents, reimbursable_cost_cents) of a set of consumptions."""
    total = sum(c.cost_cents for c in consumptions)
    reimbursable = sum(c.cost_cents for c in consumptions if c.is_reimbursable)
    return total, reimbursable


# ---- Adjust / count ----

def _require_real_session(session_id: int | None) -> None:
    if session_id is None:
        return
    session = db.session.get(ConcessionSession, session_id)
    if session is None:
        raise NotFoundError(f"Session {session_id} not found", {"session_id": session_id})
    if session.is_test:
        raise ValidationError(
            "Practice sessions cannot change inventory",
            {"session_id": session_id},
        )


def _count_adjust_inner(item: MenuItem, delta: int, *, session_id, note, created_by) -> list[LotConsumption]:
    if delta > 0:
        receive_inner(
            item=item,
            quantity=delta,
            unit_cost_cents=0,
            reimbursable=False,
            source="count_adjustment",
            note=note,
            created_by=created_by,
        )
        return []
    return consume(item.id, -delta, "count_adjustment", session_id=session_id, note=note)


def adjust(
    item_id: int,
    kind: str,
    quantity: int,
    notes: str | None = None,
    *,
    session_id: int | None = None,
    created_by: str | None = None,
) -> int:
    """
    Manual inventory correction. Returns the new on-hand quantity.

    - lost / wasted / donated: consumes |quantity| FIFO and records a Loss
      valued at the consumed lots' cost.
    - count_adjustment: positive adds a zero-cost, non-reimbursable lot;
      negative shrinks lots FIFO with no Loss.

    Untracked items are a successful no-op. A practice session_id is
    rejected.
    """
    if kind not in ADJUST_KINDS:
        raise ValidationError(f"Unknown adjustment kind {kind!r}", {"allowed": list(ADJUST_KINDS)})
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity == 0:
        raise ValidationError("quantity must be a non-zero integer")

    def _op():
        with ledger_lock():
            _require_real_session(session_id)
            item = _get_item(item_id)
            _require_lot_item(item, "adjust")
            if not item.track_inventory:
                return get_quantity_on_hand(item_id)

            if kind == "count_adjustment":
                _count_adjust_inner(item, quantity, session_id=session_id, note=notes, created_by=created_by)
            else:
                consumptions = consume(item_id, abs(quantity), kind, session_id=session_id, note=notes)
                cost, _ = consumption_cost(consumptions)
                record_loss_inner(
                    loss_type=ADJUST_LOSS_TYPES[kind],
                    amount_cents=cost,
                    session_id=session_id,
                    menu_item_id=item_id,
                    description=notes or f"{kind.capitalize()}: {abs(quantity)} x {item.name}",
                    recorded_by=created_by,
                )

            db.session.commit()
            return get_quantity_on_hand(item_id)

    return run_with_retry(_op)


def record_count_inner(
    item_id: int,
    actual_quantity: int,
    *,
    session_id: int | None = None,
    stage: str = "adhoc",
    counted_by: str | None = None,
    notes: str | None = None,
) -> InventoryCount:
    """
    Core COUNT logic without retry or commit. Caller holds ledger_lock().

    Writes one InventoryCount row whatever the outcome.
    """
    if not isinstance(actual_quantity, int) or isinstance(actual_quantity, bool) or actual_quantity < 0:
        raise ValidationError("actual_quantity must be a non-negative integer", {"menu_item_id": item_id})
    if stage not in COUNT_STAGES:
        raise ValidationError(f"Unknown count stage {stage!r}", {"allowed": list(COUNT_STAGES)})

    item = _get_item(item_id)
    _require_lot_item(item, "count")
    if not item.track_inventory:
        raise ValidationError(f"{item.name} does not track inventory", {"menu_item_id": item_id})

    expected = sum(lot.quantity_remaining for lot in _open_lots(item_id, lock=True))
    delta = actual_quantity - expected
    count = InventoryCount(
        menu_item_id=item_id,
        session_id=session_id,
        stage=stage,
        expected_quantity=expected,
        actual_quantity=actual_quantity,
        delta=delta,
        loss_cents=0,
        counted_by=counted_by,
        notes=notes,
    )

    if delta != 0:
        note = notes or f"Inventory count by {counted_by or 'unknown'}"
        consumptions = _count_adjust_inner(item, delta, session_id=session_id, note=note, created_by=counted_by)
        if delta < 0:
            cost, _ = consumption_cost(consumptions)
            loss = record_loss_inner(
                loss_type="inventory_discrepancy",
                amount_cents=cost,
                session_id=session_id,
                menu_item_id=item_id,
                description=f"Count short {-delta} x {item.name}",
                recorded_by=counted_by,
            )
            count.loss_id = loss.id
            count.loss_cents = cost

    db.session.add(count)
    db.session.flush()
    return count


def count_result(count: InventoryCount) -> dict:
    return {
        "count_id": count.id,
        "menu_item_id": count.menu_item_id,
        "menu_item_name": count.menu_item.name if count.menu_item else None,
        "expected_quantity": count.expected_quantity,
        "actual_quantity": count.actual_quantity,
        "delta": count.delta,
        "loss_id": count.loss_id,
        "loss_cents": count.loss_cents,
    }


def record_count(
    item_id: int,
    actual_quantity: int,
    *,
    session_id: int | None = None,
    counted_by: str | None = None,
    notes: str | None = None,
) -> dict:
    """
    Physical count: bring on-hand to the counted quantity.

    A shortfall is recorded as an inventory_discrepancy Loss valued at the
    cost of the lots it drains. An overage becomes a zero-cost lot.
    """
    def _op():
        with ledger_lock():
            _require_real_session(session_id)
            count = record_count_inner(
                item_id,
                actual_quantity,
                session_id=session_id,
                counted_by=counted_by,
                notes=notes,
            )
            db.session.commit()
            return count_result(count)

    return run_with_retry(_op)


def list_counts(
    *,
    session_id: int | None = None,
    item_id: int | None = None,
    limit: int = 50,
) -> list[InventoryCount]:
    q = db.session.query(InventoryCount)
    if session_id is not None:
        q = q.filter(InventoryCount.session_id == session_id)
    if item_id is not None:
        q = q.filter(InventoryCount.menu_item_id == item_id)
    return q.order_by(InventoryCount.created_at.desc(), InventoryCount.id.desc()).limit(limit).all()


# ---- Reads ----

def list_lots(item_id: int, *, include_empty: bool = False) -> list[InventoryLot]:
    _get_item(item_id)
    q = db.session.query(InventoryLot).filter(InventoryLot.menu_item_id == item_id)
    if not include_empty:
        q = q.filter(InventoryLot.quantity_remaining > 0)
    return q.order_by(InventoryLot.purchase_date.asc(), InventoryLot.id.asc()).all()


def get_inventory_summary(item_id: int) -> dict:
    item = _get_item(item_id)
    lots = list_lots(item_id)
    on_hand = sum(lot.quantity_remaining for lot in lots)
    value = sum(lot.quantity_remaining * lot.unit_cost_cents for lot in lots)
    reimbursable_value = sum(
        lot.quantity_remaining * lot.unit_cost_cents for lot in lots if lot.is_reimbursable
    )
    return {
        "menu_item_id": item.id,
        "menu_item_name": item.name,
        "track_inventory": item.track_inventory,
        "quantity_on_hand": on_hand,
        "lot_count": len(lots),
        "inventory_value_cents": value,
        "reimbursable_value_cents": reimbursable_value,
        "next_unit_cost_cents": lots[0].unit_cost_cents if lots else None,
        "reference_unit_cost_cents": item.unit_cost_cents,
    }


def list_transactions(item_id: int | None = None, *, limit: int = 100) -> list[InventoryTransaction]:
    q = db.session.query(InventoryTransaction)
    if item_id is not None:
        _get_item(item_id)
        q = q.filter(InventoryTransaction.menu_item_id == item_id)
    return q.order_by(
        InventoryTransaction.occurred_at.desc(),
        InventoryTransaction.id.desc(),
    ).limit(limit).all()
