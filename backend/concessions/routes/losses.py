# Overview: Flask API routes for recording and settling losses.

# backend/concessions/routes/losses.py
from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError
from ..services import loss_service
from ..validation import get_json_payload, optional_int, optional_str, require_cents, require_str

losses_bp = Blueprint("losses", __name__, url_prefix="/api/losses")


@losses_bp.get("")
def list_losses_route():
    settled_arg = request.args.get("settled")
    settled = None
    if settled_arg is not None:
        settled = settled_arg.lower() == "true"
    losses = loss_service.list_losses(
        session_id=request.args.get("session_id", type=int),
        loss_type=request.args.get("loss_type"),
        settled=settled,
    )
    return jsonify({"items": [loss.to_dict() for loss in losses], "count": len(losses)})


@losses_bp.post("")
def record_loss_route():
    try:
        payload = get_json_payload(request)
        loss = loss_service.record_loss(
            require_str(payload, "loss_type"),
            require_cents(payload, "amount_cents"),
            session_id=optional_int(payload, "session_id"),
            program_id=optional_int(payload, "program_id"),
            description=optional_str(payload, "description", max_length=255),
            recorded_by=optional_str(payload, "recorded_by", max_length=128),
        )
        return jsonify({"loss": loss.to_dict()}), 201
    except LedgerError:
        raise
    except Exception:
        current_app.logger.exception("Failed to record loss")
        return jsonify({"error": "Internal server error"}), 500


@losses_bp.get("/summary")
def loss_summary_route():
    return jsonify(loss_service.get_loss_summary())


@losses_bp.post("/<int:loss_id>/settle")
def settle_loss_route(loss_id: int):
    """Request body: {"settle_to": "asb" | "reimbursement" | "program:<id>", "settled_by": "...", "notes": "..."}"""
    payload = get_json_payload(request)
    loss = loss_service.settle_loss(
        loss_id,
        require_str(payload, "settle_to"),
        settled_by=optional_str(payload, "settled_by", max_length=128),
        notes=optional_str(payload, "notes", max_length=255),
    )
    return jsonify({"loss": loss.to_dict()})


@losses_bp.delete("/<int:loss_id>")
def delete_loss_route(loss_id: int):
    loss_service.delete_loss(loss_id)
    return jsonify({"deleted": loss_id})
