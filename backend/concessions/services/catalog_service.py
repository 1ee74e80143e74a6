# backend/concessions/services/catalog_service.py
"""
Program directory and menu catalog.

Programs are created once and deactivated rather than deleted (their ledger
history must stay). Menu items carry the flags the inventory core branches
on: is_composite (sold via component recipe), track_inventory (lots are
kept), price_cents (null = category row, not sellable).
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import MenuItem, MenuItemComponent, Program
from .concurrency import run_with_retry

MENU_ITEM_MUTABLE_FIELDS = {
    "name",
    "price_cents",
    "parent_id",
    "is_supply",
    "track_inventory",
    "unit_cost_cents",
    "is_active",
}


# ---- Programs ----

def get_program(program_id: int, *, require_active: bool = False) -> Program:
    program = db.session.get(Program, program_id)
    if program is None:
        raise NotFoundError(f"Program {program_id} not found", {"program_id": program_id})
    if require_active and not program.is_active:
        raise ValidationError(f"Program {program.name} is inactive", {"program_id": program_id})
    return program


def list_programs(*, include_inactive: bool = False) -> list[Program]:
    q = db.session.query(Program)
    if not include_inactive:
        q = q.filter(Program.is_active.is_(True))
    return q.order_by(Program.name.asc()).all()


def create_program(name: str) -> Program:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Program name is required")

    def _op():
        if db.session.query(Program).filter_by(name=name).first() is not None:
            raise ValidationError(f"Program {name!r} already exists", {"name": name})
        program = Program(name=name, balance_cents=0, is_active=True)
        db.session.add(program)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ValidationError(f"Program {name!r} already exists", {"name": name})
        return program

    return run_with_retry(_op)


def set_program_active(program_id: int, is_active: bool) -> Program:
    def _op():
        program = get_program(program_id)
        program.is_active = bool(is_active)
        db.session.commit()
        return program

    return run_with_retry(_op)


# ---- Menu items ----

def get_menu_item(item_id: int) -> MenuItem:
    item = db.session.get(MenuItem, item_id)
    if item is None:
        raise NotFoundError(f"Menu item {item_id} not found", {"menu_item_id": item_id})
    return item


def list_menu_items(*, include_inactive: bool = False, parent_id: int | None = None) -> list[MenuItem]:
    q = db.session.query(MenuItem)
    if not include_inactive:
        q = q.filter(MenuItem.is_active.is_(True))
    if parent_id is not None:
        q = q.filter(MenuItem.parent_id == parent_id)
    return q.order_by(MenuItem.name.asc(), MenuItem.id.asc()).all()


def _validate_parent(parent_id: int | None, item_id: int | None = None) -> None:
    if parent_id is None:
        return
    if item_id is not None and parent_id == item_id:
        raise ValidationError("A menu item cannot be its own parent")
    parent = get_menu_item(parent_id)
    if parent.parent_id is not None:
        raise ValidationError("Sub-items can only be nested one level deep", {"parent_id": parent_id})


def create_menu_item(
    *,
    name: str,
    price_cents: int | None = None,
    parent_id: int | None = None,
    is_supply: bool = False,
    is_composite: bool = False,
    track_inventory: bool = True,
    unit_cost_cents: int | None = None,
    components: list[dict] | None = None,
) -> MenuItem:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Menu item name is required")
    if price_cents is not None and price_cents < 0:
        raise ValidationError("price_cents cannot be negative")

    def _op():
        _validate_parent(parent_id)
        item = MenuItem(
            name=name,
            price_cents=price_cents,
            parent_id=parent_id,
            is_supply=bool(is_supply),
            is_composite=bool(is_composite),
            # Composite items never hold lots of their own
            track_inventory=False if is_composite else bool(track_inventory),
            unit_cost_cents=unit_cost_cents,
            is_active=True,
        )
        db.session.add(item)
        db.session.flush()
        if is_composite and components:
            _replace_components(item, components)
        db.session.commit()
        return item

    return run_with_retry(_op)


def update_menu_item(item_id: int, patch: dict) -> MenuItem:
    def _op():
        item = get_menu_item(item_id)
        if "parent_id" in patch:
            _validate_parent(patch["parent_id"], item_id)
        if patch.get("price_cents") is not None and patch["price_cents"] < 0:
            raise ValidationError("price_cents cannot be negative")
        for k, v in patch.items():
            if k not in MENU_ITEM_MUTABLE_FIELDS:
                continue
            if k == "track_inventory" and item.is_composite:
                continue
            setattr(item, k, v)
        db.session.commit()
        return item

    return run_with_retry(_op)


def _component_graph_reaches(start_id: int, target_id: int, overrides: dict[int, list[int]]) -> bool:
    """True when target_id is reachable from start_id through component edges."""
    seen = set()
    stack = [start_id]
    while stack:
        current = stack.pop()
        if current == target_id:
            return True
        if current in seen:
            continue
        seen.add(current)
        if current in overrides:
            stack.extend(overrides[current])
            continue
        rows = db.session.query(MenuItemComponent.component_item_id).filter_by(menu_item_id=current).all()
        stack.extend(r[0] for r in rows)
    return False


def _replace_components(item: MenuItem, components: list[dict]) -> None:
    seen_ids = set()
    parsed = []
    for position, entry in enumerate(components):
        component_id = entry.get("component_item_id")
        quantity = entry.get("quantity", 1)
        if not isinstance(component_id, int) or isinstance(component_id, bool):
            raise ValidationError("component_item_id must be an integer")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise ValidationError("Component quantity must be a positive integer", {"component_item_id": component_id})
        if component_id in seen_ids:
            raise ValidationError("Duplicate component", {"component_item_id": component_id})
        seen_ids.add(component_id)
        get_menu_item(component_id)
        parsed.append((position, component_id, quantity))

    overrides = {item.id: [c for _, c, _ in parsed]}
    for _, component_id, _ in parsed:
        if _component_graph_reaches(component_id, item.id, overrides):
            raise ValidationError(
                "Component recipe would create a cycle",
                {"menu_item_id": item.id, "component_item_id": component_id},
            )

    item.components.clear()
    db.session.flush()
    for position, component_id, quantity in parsed:
        item.components.append(
            MenuItemComponent(component_item_id=component_id, quantity=quantity, position=position)
        )
    db.session.flush()


def set_components(item_id: int, components: list[dict]) -> MenuItem:
    """
    Replace a composite item's recipe.

    Nested composites are allowed; a recipe that would make an item a
    (transitive) component of itself is rejected.
    """
    def _op():
        item = get_menu_item(item_id)
        if not item.is_composite:
            raise ValidationError("Only composite items have components", {"menu_item_id": item_id})
        _replace_components(item, components)
        db.session.commit()
        return item

    return run_with_retry(_op)
