# Overview: Flask API routes for programs and the menu catalog.

# backend/concessions/routes/catalog.py
from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError
from ..services import catalog_service, composite_service, inventory_service, program_ledger_service
from ..validation import (
    get_json_payload,
    optional_bool,
    optional_cents,
    optional_int,
    optional_str,
    require_cents,
    require_str,
)

programs_bp = Blueprint("programs", __name__, url_prefix="/api/programs")
menu_bp = Blueprint("menu", __name__, url_prefix="/api/menu")


# =============================================================================
# PROGRAMS
# =============================================================================

@programs_bp.get("")
def list_programs_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    programs = catalog_service.list_programs(include_inactive=include_inactive)
    return jsonify({"items": [p.to_dict() for p in programs], "count": len(programs)})


@programs_bp.post("")
def create_program_route():
    try:
        payload = get_json_payload(request)
        program = catalog_service.create_program(require_str(payload, "name", max_length=128))
        return jsonify({"program": program.to_dict()}), 201
    except LedgerError:
        raise
    except Exception:
        current_app.logger.exception("Failed to create program")
        return jsonify({"error": "Internal server error"}), 500


@programs_bp.get("/<int:program_id>")
def get_program_route(program_id: int):
    return jsonify({"program": program_ledger_service.get_program_account(program_id)})


@programs_bp.patch("/<int:program_id>")
def update_program_route(program_id: int):
    payload = get_json_payload(request)
    program = catalog_service.set_program_active(program_id, optional_bool(payload, "is_active", True))
    return jsonify({"program": program.to_dict()})


@programs_bp.post("/<int:program_id>/deposit")
def deposit_route(program_id: int):
    payload = get_json_payload(request)
    tx = program_ledger_service.deposit(
        program_id,
        require_cents(payload, "amount_cents"),
        optional_str(payload, "note", max_length=255),
    )
    return jsonify({"transaction": tx.to_dict(), "balance_cents": catalog_service.get_program(program_id).balance_cents}), 201


@programs_bp.post("/<int:program_id>/withdraw")
def withdraw_route(program_id: int):
    payload = get_json_payload(request)
    tx = program_ledger_service.withdraw(
        program_id,
        require_cents(payload, "amount_cents"),
        optional_str(payload, "note", max_length=255),
    )
    return jsonify({"transaction": tx.to_dict(), "balance_cents": catalog_service.get_program(program_id).balance_cents}), 201


# =============================================================================
# MENU
# =============================================================================

def _item_with_stock(item) -> dict:
    if item.is_composite:
        return item.to_dict(quantity_on_hand=composite_service.available_quantity(item.id))
    if item.track_inventory:
        return item.to_dict(quantity_on_hand=inventory_service.get_quantity_on_hand(item.id))
    return item.to_dict()


@menu_bp.get("")
def list_menu_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    parent_id = request.args.get("parent_id", type=int)
    items = catalog_service.list_menu_items(include_inactive=include_inactive, parent_id=parent_id)
    return jsonify({"items": [_item_with_stock(i) for i in items], "count": len(items)})


@menu_bp.post("")
def create_menu_item_route():
    """
    Request body:
    {
        "name": "Combo Meal",
        "price_cents": 500,            (null for a category row)
        "parent_id": null,
        "is_composite": true,
        "components": [{"component_item_id": 3, "quantity": 1}, ...]
    }
    """
    try:
        payload = get_json_payload(request)
        components = payload.get("components")
        if components is not None and not isinstance(components, list):
            return jsonify({"error": "components must be a list"}), 400
        item = catalog_service.create_menu_item(
            name=require_str(payload, "name", max_length=255),
            price_cents=optional_cents(payload, "price_cents"),
            parent_id=optional_int(payload, "parent_id"),
            is_supply=optional_bool(payload, "is_supply", False),
            is_composite=optional_bool(payload, "is_composite", False),
            track_inventory=optional_bool(payload, "track_inventory", True),
            unit_cost_cents=optional_cents(payload, "unit_cost_cents"),
            components=components,
        )
        return jsonify({"item": _item_with_stock(item)}), 201
    except LedgerError:
        raise
    except Exception:
        current_app.logger.exception("Failed to create menu item")
        return jsonify({"error": "Internal server error"}), 500


@menu_bp.get("/<int:item_id>")
def get_menu_item_route(item_id: int):
    item = catalog_service.get_menu_item(item_id)
    data = _item_with_stock(item)
    if item.is_composite:
        data["recipe"] = composite_service.get_recipe(item_id)
    return jsonify({"item": data})


@menu_bp.patch("/<int:item_id>")
def update_menu_item_route(item_id: int):
    payload = get_json_payload(request)
    patch = {}
    if "name" in payload:
        patch["name"] = require_str(payload, "name", max_length=255)
    if "price_cents" in payload:
        patch["price_cents"] = optional_cents(payload, "price_cents")
    if "parent_id" in payload:
        patch["parent_id"] = optional_int(payload, "parent_id")
    if "unit_cost_cents" in payload:
        patch["unit_cost_cents"] = optional_cents(payload, "unit_cost_cents")
    for flag in ("is_supply", "track_inventory", "is_active"):
        if flag in payload:
            patch[flag] = optional_bool(payload, flag)
    item = catalog_service.update_menu_item(item_id, patch)
    return jsonify({"item": _item_with_stock(item)})


@menu_bp.put("/<int:item_id>/components")
def set_components_route(item_id: int):
    payload = get_json_payload(request)
    components = payload.get("components")
    if not isinstance(components, list):
        return jsonify({"error": "components must be a list"}), 400
    item = catalog_service.set_components(item_id, components)
    return jsonify({"item": _item_with_stock(item)})
