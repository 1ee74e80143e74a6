# Overview: Flask API routes for inventory reads, adjustments and counts.

# backend/concessions/routes/inventory.py
from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError
from ..services import catalog_service, composite_service, inventory_service
from ..validation import get_json_payload, optional_int, optional_str, require_int, require_str

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/<int:item_id>/summary")
def inventory_summary(item_id: int):
    item = catalog_service.get_menu_item(item_id)
    if item.is_composite:
        return jsonify({
            "menu_item_id": item.id,
            "menu_item_name": item.name,
            "is_composite": True,
            "available_quantity": composite_service.available_quantity(item_id),
        })
    return jsonify(inventory_service.get_inventory_summary(item_id))


@inventory_bp.get("/<int:item_id>/lots")
def list_lots(item_id: int):
    include_empty = request.args.get("include_empty", "false").lower() == "true"
    lots = inventory_service.list_lots(item_id, include_empty=include_empty)
    return jsonify({"items": [lot.to_dict() for lot in lots], "count": len(lots)})


@inventory_bp.get("/transactions")
def list_transactions():
    item_id = request.args.get("menu_item_id", type=int)
    limit = min(request.args.get("limit", default=100, type=int) or 100, 500)
    rows = inventory_service.list_transactions(item_id, limit=limit)
    return jsonify({"items": [r.to_dict() for r in rows], "count": len(rows)})


@inventory_bp.post("/<int:item_id>/adjust")
def adjust_inventory(item_id: int):
    """
    Request body:
    {
        "kind": "lost" | "wasted" | "donated" | "count_adjustment",
        "quantity": -3,
        "notes": "Dropped a case",
        "session_id": 4        (optional)
    }
    """
    try:
        payload = get_json_payload(request)
        on_hand = inventory_service.adjust(
            item_id,
            require_str(payload, "kind"),
            require_int(payload, "quantity"),
            optional_str(payload, "notes", max_length=255),
            session_id=optional_int(payload, "session_id"),
            created_by=optional_str(payload, "created_by", max_length=128),
        )
        return jsonify({"menu_item_id": item_id, "quantity_on_hand": on_hand})
    except LedgerError:
        raise
    except Exception:
        current_app.logger.exception("Failed to adjust inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/count")
def record_count():
    """
    Record a physical count for one or more items.

    Request body:
    {
        "counts": [{"menu_item_id": 1, "actual_quantity": 20}, ...],
        "session_id": 4,          (optional)
        "counted_by": "Jordan"    (optional)
    }
    """
    payload = get_json_payload(request)
    counts = payload.get("counts")
    if not isinstance(counts, list) or not counts:
        return jsonify({"error": "counts must be a non-empty list"}), 400

    session_id = optional_int(payload, "session_id")
    counted_by = optional_str(payload, "counted_by", max_length=128)
    results = []
    for entry in counts:
        if not isinstance(entry, dict):
            return jsonify({"error": "counts entries must be objects"}), 400
        results.append(
            inventory_service.record_count(
                require_int(entry, "menu_item_id"),
                require_int(entry, "actual_quantity", minimum=0),
                session_id=session_id,
                counted_by=counted_by,
                notes=optional_str(entry, "notes", max_length=255),
            )
        )
    return jsonify({
        "results": results,
        "total_loss_cents": sum(r["loss_cents"] for r in results),
    })


@inventory_bp.get("/counts")
def list_counts():
    limit = min(request.args.get("limit", default=50, type=int) or 50, 500)
    counts = inventory_service.list_counts(
        session_id=request.args.get("session_id", type=int),
        item_id=request.args.get("menu_item_id", type=int),
        limit=limit,
    )
    return jsonify({"items": [c.to_dict() for c in counts], "count": len(counts)})
