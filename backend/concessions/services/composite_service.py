# backend/concessions/services/composite_service.py
"""
Composite (bundle) item resolution.

Selling N of a composite consumes N x per-unit quantity of each component,
in recipe order, through the inventory ledger. Components may themselves be
composites.

CRITICAL: resolution is all-or-nothing. If any component is short, every
consumption already made for this resolution is released back to its exact
lot before the InsufficientStockError propagates, now naming the composite.
"""
from __future__ import annotations

from ..errors import InsufficientStockError, ValidationError
from ..models import LotConsumption
from . import inventory_service
from .catalog_service import get_menu_item as _get_item
from .concurrency import ledger_lock


def consume_item(
    item_id: int,
    quantity: int,
    kind: str = "sale",
    *,
    order_id: int | None = None,
    session_id: int | None = None,
) -> list[LotConsumption]:
    """Consume any sellable item: composites via their recipe, everything else FIFO."""
    item = _get_item(item_id)
    if item.is_composite:
        return consume_composite(item_id, quantity, kind, order_id=order_id, session_id=session_id)
    return inventory_service.consume(item_id, quantity, kind, order_id=order_id, session_id=session_id)


def consume_composite(
    item_id: int,
    quantity: int,
    kind: str = "sale",
    *,
    order_id: int | None = None,
    session_id: int | None = None,
    _path: tuple[int, ...] = (),
) -> list[LotConsumption]:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise ValidationError("quantity must be a positive integer", {"menu_item_id": item_id})

    item = _get_item(item_id)
    if not item.is_composite:
        raise ValidationError(f"{item.name} is not a composite item", {"menu_item_id": item_id})
    if item_id in _path:
        raise ValidationError("Composite recipe contains a cycle", {"menu_item_id": item_id})
    if not item.components:
        raise ValidationError(f"Composite item {item.name} has no components", {"menu_item_id": item_id})

    path = _path + (item_id,)
    consumed: list[LotConsumption] = []
    with ledger_lock():
        try:
            for entry in item.components:
                needed = entry.quantity * quantity
                component = _get_item(entry.component_item_id)
                if component.is_composite:
                    consumed.extend(
                        consume_composite(
                            component.id,
                            needed,
                            kind,
                            order_id=order_id,
                            session_id=session_id,
                            _path=path,
                        )
                    )
                else:
                    consumed.extend(
                        inventory_service.consume(
                            component.id,
                            needed,
                            kind,
                            order_id=order_id,
                            session_id=session_id,
                        )
                    )
        except InsufficientStockError as exc:
            inventory_service.release(consumed)
            raise exc.for_composite(item_id) from exc
    return consumed


def available_quantity(item_id: int) -> int | None:
    """
    How many units could be sold right now. Display only; never used for
    order validation. None means unlimited (nothing tracked).
    """
    item = _get_item(item_id)
    if not item.is_composite:
        if not item.track_inventory:
            return None
        return inventory_service.get_quantity_on_hand(item_id)

    best = None
    for entry in item.components:
        component_available = available_quantity(entry.component_item_id)
        if component_available is None:
            continue
        units = component_available // entry.quantity
        best = units if best is None else min(best, units)
    return best


def explode(item_id: int, quantity: int = 1) -> dict[int, int]:
    """Flatten a composite into {leaf item id: total quantity}."""
    item = _get_item(item_id)
    if not item.is_composite:
        return {item_id: quantity}
    totals: dict[int, int] = {}
    for entry in item.components:
        for leaf_id, leaf_qty in explode(entry.component_item_id, entry.quantity * quantity).items():
            totals[leaf_id] = totals.get(leaf_id, 0) + leaf_qty
    return totals


def get_recipe(item_id: int) -> dict:
    item = _get_item(item_id)
    return {
        "menu_item_id": item.id,
        "menu_item_name": item.name,
        "components": [c.to_dict() for c in item.components],
        "available_quantity": available_quantity(item_id),
        "leaf_quantities": [
            {"menu_item_id": k, "quantity": v} for k, v in sorted(explode(item_id).items())
        ] if item.is_composite else [],
    }
