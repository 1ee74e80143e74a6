# Overview: Flask API routes for purchase receipts and manual stock.

# backend/concessions/routes/purchases.py
"""
Purchase API Routes

DESIGN:
- POST creates a receipt and receives its linked lines as lots
- PUT and DELETE reverse a receipt only while none of its stock has been used
- Unlinked lines are accepted and reported back as warnings
"""
from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError
from ..services import purchase_service, purchase_template_service
from ..validation import (
    get_json_payload,
    optional_cents,
    optional_date,
    optional_str,
    require_int,
    require_list,
    require_str,
)

purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.post("")
def create_purchase_route():
    """
    Request body:
    {
        "vendor": "Costco",
        "purchase_date": "2024-09-14",
        "tax_cents": 150, "delivery_fee_cents": 0, "other_fees_cents": 0,
        "lines": [
            {"menu_item_id": 3, "quantity": 24, "line_total_cents": 1200, "crv_per_unit_cents": 5},
            {"item_name": "Napkins", "quantity": 1, "line_total_cents": 300}
        ]
    }
    """
    try:
        payload = get_json_payload(request)
        purchase, lot_ids, warnings = purchase_service.create_purchase(
            lines=require_list(payload, "lines"),
            vendor=optional_str(payload, "vendor", max_length=255),
            purchase_date=optional_date(payload, "purchase_date"),
            tax_cents=optional_cents(payload, "tax_cents", 0),
            delivery_fee_cents=optional_cents(payload, "delivery_fee_cents", 0),
            other_fees_cents=optional_cents(payload, "other_fees_cents", 0),
            notes=optional_str(payload, "notes"),
            created_by=optional_str(payload, "created_by", max_length=128),
        )
        return jsonify({"purchase": purchase.to_dict(), "lot_ids": lot_ids, "warnings": warnings}), 201
    except LedgerError:
        raise
    except Exception:
        current_app.logger.exception("Failed to create purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.get("")
def list_purchases_route():
    limit = min(request.args.get("limit", default=100, type=int) or 100, 500)
    purchases = purchase_service.list_purchases(limit=limit)
    return jsonify({"items": [p.to_dict(include_lines=False) for p in purchases], "count": len(purchases)})


@purchases_bp.get("/<int:purchase_id>")
def get_purchase_route(purchase_id: int):
    return jsonify({"purchase": purchase_service.get_purchase(purchase_id).to_dict()})


@purchases_bp.put("/<int:purchase_id>")
def update_purchase_route(purchase_id: int):
    """Replace a receipt's header and lines. Same body as POST."""
    try:
        payload = get_json_payload(request)
        purchase, lot_ids, warnings = purchase_service.update_purchase(
            purchase_id,
            lines=require_list(payload, "lines"),
            vendor=optional_str(payload, "vendor", max_length=255),
            purchase_date=optional_date(payload, "purchase_date"),
            tax_cents=optional_cents(payload, "tax_cents", 0),
            delivery_fee_cents=optional_cents(payload, "delivery_fee_cents", 0),
            other_fees_cents=optional_cents(payload, "other_fees_cents", 0),
            notes=optional_str(payload, "notes"),
            updated_by=optional_str(payload, "updated_by", max_length=128),
        )
        return jsonify({"purchase": purchase.to_dict(), "lot_ids": lot_ids, "warnings": warnings})
    except LedgerError:
        raise
    except Exception:
        current_app.logger.exception("Failed to update purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.delete("/<int:purchase_id>")
def delete_purchase_route(purchase_id: int):
    try:
        reversed_lots = purchase_service.delete_purchase(purchase_id)
        return jsonify({"purchase_id": purchase_id, "reversed_lots": reversed_lots})
    except LedgerError:
        raise
    except Exception:
        current_app.logger.exception("Failed to delete purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.post("/stock-update")
def stock_update_route():
    payload = get_json_payload(request)
    lot = purchase_service.stock_update(
        require_int(payload, "menu_item_id"),
        require_int(payload, "quantity", minimum=1),
        unit_cost_cents=optional_cents(payload, "unit_cost_cents"),
        purchase_date=optional_date(payload, "purchase_date"),
        notes=optional_str(payload, "notes", max_length=255),
        created_by=optional_str(payload, "created_by", max_length=128),
    )
    return jsonify({"lot": lot.to_dict()}), 201


@purchases_bp.get("/last-quantity/<int:item_id>")
def last_quantity_route(item_id: int):
    return jsonify({"menu_item_id": item_id, "quantity": purchase_service.last_purchase_quantity(item_id)})


# =============================================================================
# TEMPLATES
# =============================================================================

templates_bp = Blueprint("purchase_templates", __name__, url_prefix="/api/purchase-templates")


@templates_bp.get("")
def list_templates_route():
    templates = purchase_template_service.list_templates()
    return jsonify({"items": [t.to_dict(include_lines=False) for t in templates], "count": len(templates)})


@templates_bp.post("")
def create_template_route():
    """
    Request body:
    {
        "name": "Costco run",
        "vendor": "Costco",
        "lines": [{"menu_item_id": 3, "default_quantity": 24}, {"item_name": "Napkins"}]
    }
    """
    payload = get_json_payload(request)
    template = purchase_template_service.create_template(
        require_str(payload, "name", max_length=128),
        require_list(payload, "lines"),
        vendor=optional_str(payload, "vendor", max_length=255),
    )
    return jsonify({"template": template.to_dict()}), 201


@templates_bp.get("/<int:template_id>")
def get_template_route(template_id: int):
    return jsonify({"template": purchase_template_service.get_template(template_id).to_dict()})


@templates_bp.get("/<int:template_id>/lines")
def template_lines_route(template_id: int):
    return jsonify({"template_id": template_id, "lines": purchase_template_service.to_purchase_lines(template_id)})


@templates_bp.put("/<int:template_id>")
def update_template_route(template_id: int):
    payload = get_json_payload(request)
    template = purchase_template_service.update_template(
        template_id,
        name=optional_str(payload, "name", max_length=128),
        vendor=optional_str(payload, "vendor", max_length=255),
        lines=require_list(payload, "lines") if "lines" in payload else None,
    )
    return jsonify({"template": template.to_dict()})


@templates_bp.delete("/<int:template_id>")
def delete_template_route(template_id: int):
    purchase_template_service.delete_template(template_id)
    return jsonify({"template_id": template_id, "deleted": True})
