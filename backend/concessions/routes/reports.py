# Overview: Flask API routes for reimbursement, cost and operational reports.

# backend/concessions/routes/reports.py
from flask import Blueprint, jsonify, request

from ..services import reimbursement_service, report_service
from ..validation import get_json_payload, optional_str, require_cents

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/reimbursement")
def reimbursement_report():
    summary = reimbursement_service.get_reimbursement_summary()
    entries = reimbursement_service.list_entries(request.args.get("entry_type"))
    summary["entries"] = [e.to_dict() for e in entries]
    return jsonify(summary)


@reports_bp.post("/reimbursement/cashbox")
def cashbox_reimbursement():
    payload = get_json_payload(request)
    entry = reimbursement_service.record_cashbox_reimbursement(
        require_cents(payload, "amount_cents"),
        optional_str(payload, "notes", max_length=255),
    )
    return jsonify({"entry": entry.to_dict()}), 201


@reports_bp.get("/costs")
def cost_report():
    return jsonify(
        reimbursement_service.get_cost_breakdown(
            session_id=request.args.get("session_id", type=int),
            kind=request.args.get("kind"),
        )
    )


@reports_bp.get("/sessions")
def sessions_report():
    return jsonify(report_service.sessions_report(
        start=request.args.get("start"),
        end=request.args.get("end"),
        program_id=request.args.get("program_id", type=int),
    ))


@reports_bp.get("/orders")
def orders_report():
    return jsonify(report_service.orders_report(
        session_id=request.args.get("session_id", type=int),
        start=request.args.get("start"),
        end=request.args.get("end"),
    ))


@reports_bp.get("/purchases")
def purchases_report():
    return jsonify(report_service.purchases_report(start=request.args.get("start"), end=request.args.get("end")))


@reports_bp.get("/programs")
def programs_report():
    return jsonify(report_service.programs_report(start=request.args.get("start"), end=request.args.get("end")))


@reports_bp.get("/programs/earnings")
def program_earnings_report():
    rows = report_service.program_earnings()
    return jsonify({"items": rows, "count": len(rows)})


@reports_bp.get("/summary")
def summary_report():
    return jsonify(report_service.summary(start=request.args.get("start"), end=request.args.get("end")))
