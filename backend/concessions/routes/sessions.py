# Overview: Flask API routes for concession sessions, the main cashbox and profit distribution.

# backend/concessions/routes/sessions.py
"""
Session API Routes

WHY: Session lifecycle is the cash accountability boundary. Start and close
both take a denomination count; profit is derived from those counts.

DESIGN:
- created -> active -> closed; created|active -> cancelled
- Practice sessions can be thrown away with /end-practice
- Profit distribution happens after close and may be repeated
"""
from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError, ValidationError
from ..money import Denominations
from ..services import distribution_service, session_service
from ..validation import get_json_payload, optional_bool, optional_int, optional_str, require_int, require_str

sessions_bp = Blueprint("sessions", __name__, url_prefix="/api/sessions")


def _counts_from(payload: dict) -> Denominations:
    counts = payload.get("counts")
    if counts is None:
        raise ValidationError("counts is required")
    if not isinstance(counts, dict):
        raise ValidationError("counts must be an object of denomination counts")
    return Denominations.from_payload(counts)


# =============================================================================
# MAIN CASHBOX
# =============================================================================

@sessions_bp.get("/cashbox")
def get_cashbox_route():
    return jsonify({"cashbox": session_service.get_main_cashbox().to_dict()})


@sessions_bp.put("/cashbox")
def set_cashbox_route():
    payload = get_json_payload(request)
    box = session_service.set_main_cashbox(_counts_from(payload))
    return jsonify({"cashbox": box.to_dict()})


# =============================================================================
# LIFECYCLE
# =============================================================================

@sessions_bp.get("")
def list_sessions_route():
    status = request.args.get("status")
    program_id = request.args.get("program_id", type=int)
    include_test = request.args.get("include_test", "true").lower() == "true"
    sessions = session_service.list_sessions(status=status, program_id=program_id, include_test=include_test)
    return jsonify({"items": [s.to_dict() for s in sessions], "count": len(sessions)})


@sessions_bp.post("")
def create_session_route():
    try:
        payload = get_json_payload(request)
        session = session_service.create_session(
            require_str(payload, "name", max_length=255),
            require_int(payload, "program_id"),
            created_by=optional_str(payload, "created_by", max_length=128),
            is_test=optional_bool(payload, "is_test", False),
        )
        return jsonify({"session": session.to_dict()}), 201
    except LedgerError:
        raise
    except Exception:
        current_app.logger.exception("Failed to create session")
        return jsonify({"error": "Internal server error"}), 500


@sessions_bp.get("/<int:session_id>")
def get_session_route(session_id: int):
    return jsonify({"session": session_service.get_session(session_id).to_dict()})


@sessions_bp.post("/<int:session_id>/start")
def start_session_route(session_id: int):
    """
    Request body:
    {"counts": {"quarters": 40, "bills_1": 20, "bills_5": 4}, "started_by": "Sam"}
    """
    try:
        payload = get_json_payload(request)
        session = session_service.start_session(
            session_id,
            _counts_from(payload),
            started_by=optional_str(payload, "started_by", max_length=128),
        )
        return jsonify({"session": session.to_dict(), "start_total_cents": session.start_total_cents})
    except LedgerError:
        raise
    except Exception:
        current_app.logger.exception("Failed to start session")
        return jsonify({"error": "Internal server error"}), 500


@sessions_bp.post("/<int:session_id>/close")
def close_session_route(session_id: int):
    try:
        payload = get_json_payload(request)
        result = session_service.close_session(
            session_id,
            _counts_from(payload),
            closed_by=optional_str(payload, "closed_by", max_length=128),
        )
        return jsonify(result)
    except LedgerError:
        raise
    except Exception:
        current_app.logger.exception("Failed to close session")
        return jsonify({"error": "Internal server error"}), 500


@sessions_bp.post("/<int:session_id>/cancel")
def cancel_session_route(session_id: int):
    session = session_service.cancel_session(session_id)
    return jsonify({"session": session.to_dict()})


@sessions_bp.post("/<int:session_id>/end-practice")
def end_practice_route(session_id: int):
    return jsonify(session_service.end_practice_session(session_id))


# =============================================================================
# STOCK CHECKS
# =============================================================================

@sessions_bp.get("/<int:session_id>/inventory-checks")
def list_checks_route(session_id: int):
    return jsonify(session_service.list_checks(session_id))


@sessions_bp.post("/<int:session_id>/inventory-checks/<stage>")
def check_inventory_route(session_id: int, stage: str):
    """
    Request body:
    {
        "counts": [{"menu_item_id": 1, "actual_quantity": 20, "notes": "..."}, ...],
        "verified_by": "Jordan",
        "skip": false
    }
    """
    try:
        payload = get_json_payload(request)
        skip = optional_bool(payload, "skip", False)
        counts = payload.get("counts") or []
        if not isinstance(counts, list):
            raise ValidationError("counts must be a list")
        for entry in counts:
            if not isinstance(entry, dict):
                raise ValidationError("counts entries must be objects")
        parsed = [
            {
                "menu_item_id": require_int(entry, "menu_item_id"),
                "actual_quantity": require_int(entry, "actual_quantity", minimum=0),
                "notes": optional_str(entry, "notes", max_length=255),
            }
            for entry in counts
        ]
        result = session_service.check_inventory(
            session_id,
            stage,
            parsed,
            verified_by=optional_str(payload, "verified_by", max_length=128),
            skip=skip,
        )
        return jsonify(result)
    except LedgerError:
        raise
    except Exception:
        current_app.logger.exception("Failed to record stock check")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# REPORTING
# =============================================================================

@sessions_bp.get("/<int:session_id>/summary")
def sales_summary_route(session_id: int):
    return jsonify(session_service.get_sales_summary(session_id))


@sessions_bp.route("/<int:session_id>/close-preview", methods=["GET", "POST"])
def close_preview_route(session_id: int):
    counts = None
    if request.method == "POST":
        payload = get_json_payload(request)
        if payload.get("counts") is not None:
            counts = _counts_from(payload)
    return jsonify(session_service.close_preview(session_id, counts))


# =============================================================================
# PROFIT DISTRIBUTION
# =============================================================================

@sessions_bp.get("/<int:session_id>/distributions")
def distribution_status_route(session_id: int):
    return jsonify(distribution_service.get_distribution_status(session_id))


@sessions_bp.post("/<int:session_id>/distributions")
def distribute_profit_route(session_id: int):
    """
    Request body:
    {"allocations": [{"program_id": 1, "amount_cents": 4000}, ...], "distributed_by": "Sam"}

    Empty or missing allocations send the undistributed profit to the
    session's own program.
    """
    payload = get_json_payload(request)
    allocations = payload.get("allocations") or []
    if not isinstance(allocations, list) or any(not isinstance(a, dict) for a in allocations):
        return jsonify({"error": "allocations must be a list of objects"}), 400
    result = distribution_service.distribute_profit(
        session_id,
        [
            {"program_id": optional_int(a, "program_id"), "amount_cents": optional_int(a, "amount_cents")}
            for a in allocations
        ],
        distributed_by=optional_str(payload, "distributed_by", max_length=128),
    )
    return jsonify(result), 201
