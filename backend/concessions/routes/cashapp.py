# Overview: Flask API routes for the CashApp account and the Zelle log.

# backend/concessions/routes/cashapp.py
from flask import Blueprint, jsonify, request

from ..services import cashapp_service
from ..validation import get_json_payload, optional_str, require_cents

cashapp_bp = Blueprint("cashapp", __name__, url_prefix="/api/cashapp")


@cashapp_bp.get("/balance")
def balance_route():
    return jsonify({"balance_cents": cashapp_service.get_balance()})


@cashapp_bp.get("/transactions")
def transactions_route():
    limit = min(request.args.get("limit", default=100, type=int) or 100, 500)
    rows = cashapp_service.list_transactions(limit=limit)
    return jsonify({"items": [r.to_dict() for r in rows], "count": len(rows)})


@cashapp_bp.post("/withdraw")
def withdraw_route():
    payload = get_json_payload(request)
    tx = cashapp_service.withdraw(
        require_cents(payload, "amount_cents"),
        optional_str(payload, "notes", max_length=255),
    )
    return jsonify({"transaction": tx.to_dict(), "balance_cents": cashapp_service.get_balance()}), 201


@cashapp_bp.get("/zelle")
def zelle_route():
    session_id = request.args.get("session_id", type=int)
    payments = cashapp_service.list_zelle_payments(session_id)
    return jsonify({
        "items": [p.to_dict() for p in payments],
        "count": len(payments),
        "total_cents": sum(p.amount_cents for p in payments),
    })
