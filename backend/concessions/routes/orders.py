# Overview: Flask API routes for placing and reading orders.

# backend/concessions/routes/orders.py
from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError
from ..services import order_service
from ..validation import (
    get_json_payload,
    optional_bool,
    optional_cents,
    optional_int,
    optional_str,
    require_int,
    require_list,
    require_str,
)

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _charge_target(payload: dict):
    raw = payload.get("discount_charged_to")
    if raw is None or raw == "":
        return None
    if isinstance(raw, str) and raw.strip().lower() in ("session", "asb"):
        return raw.strip().lower()
    return optional_int(payload, "discount_charged_to")


@orders_bp.post("")
def place_order_route():
    """
    Request body:
    {
        "session_id": 4,
        "items": [{"menu_item_id": 3, "quantity": 2}, ...],
        "payment_method": "cash" | "cashapp" | "zelle",
        "amount_tendered_cents": 1000,
        "discount_cents": 100,
        "discount_charged_to": null | "session" | 2,
        "discount_reason": "Volunteer",
        "is_comp": false
    }
    """
    try:
        payload = get_json_payload(request)
        items = require_list(payload, "items")
        order, change = order_service.place_order(
            require_int(payload, "session_id"),
            [
                {
                    "menu_item_id": require_int(i, "menu_item_id"),
                    "quantity": require_int(i, "quantity"),
                    "unit_price_cents": optional_cents(i, "unit_price_cents"),
                }
                for i in items
            ],
            require_str(payload, "payment_method"),
            amount_tendered_cents=optional_cents(payload, "amount_tendered_cents"),
            discount_cents=optional_cents(payload, "discount_cents"),
            discount_charged_to=_charge_target(payload),
            discount_reason=optional_str(payload, "discount_reason", max_length=255),
            is_comp=optional_bool(payload, "is_comp", False),
        )
        return jsonify({"order": order.to_dict(), "change_cents": change}), 201
    except LedgerError:
        raise
    except Exception:
        current_app.logger.exception("Failed to place order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
def get_order_route(order_id: int):
    return jsonify({"order": order_service.get_order(order_id).to_dict()})


@orders_bp.get("/session/<int:session_id>")
def list_session_orders_route(session_id: int):
    orders = order_service.list_orders(session_id)
    return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)})
