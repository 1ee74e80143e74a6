"""
Concession Session Management

WHY: A session is one stand run with one cash drawer. Profit is what the
drawer gained (counted end total minus counted start total), so the
counts are the source of truth and the order totals only serve as an
advisory cross-check.

DESIGN PRINCIPLES:
- created -> active -> closed, or created|active -> cancelled; nothing else
- Every transition re-reads the session under session_lock(session_id)
- Real sessions draw their float from the main cashbox and return the
  closing count to it; practice sessions never touch the cashbox
- Closing writes what ASB owes for reimbursable stock sold (cogs_owed)
- Stock checks at start/end are optional; shortfalls become session Losses
- Closed sessions are immutable
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..errors import NotFoundError, SessionStateError, ValidationError
from ..extensions import db
from ..models import ConcessionSession, Loss, MainCashbox, Order
from ..money import Denominations
from concessions.time_utils import utcnow
from . import inventory_service
from .catalog_service import get_program
from .concurrency import (
    forget_session_lock,
    fresh,
    ledger_lock,
    lock_for_update,
    run_with_retry,
    session_lock,
)
from .reimbursement_service import record_entry

CASHBOX_ID = 1


# =============================================================================
# MAIN CASHBOX
# =============================================================================

def _cashbox(*, refresh: bool = False) -> MainCashbox:
    q = db.session.query(MainCashbox).filter_by(id=CASHBOX_ID)
    if refresh:
        q = fresh(lock_for_update(q))
    box = q.first()
    if box is None:
        box = MainCashbox(id=CASHBOX_ID)
        db.session.add(box)
        db.session.flush()
    return box


def get_main_cashbox() -> Denominations:
    box = db.session.get(MainCashbox, CASHBOX_ID)
    return box.get_counts() if box else Denominations()


def set_main_cashbox(counts: Denominations) -> MainCashbox:
    """Overwrite the main cashbox with a fresh physical count."""
    def _op():
        with ledger_lock():
            box = _cashbox(refresh=True)
            box.set_counts(counts)
            box.updated_at = utcnow()
            db.session.commit()
            return box

    return run_with_retry(_op)


def _draw_from_cashbox(counts: Denominations) -> None:
    box = _cashbox(refresh=True)
    current = box.get_counts()
    if not current.covers(counts):
        raise ValidationError(
            "Main cashbox does not hold the requested float",
            {"cashbox": current.to_dict(), "requested": counts.to_dict()},
        )
    box.set_counts(current - counts)
    box.updated_at = utcnow()


def _return_to_cashbox(counts: Denominations) -> None:
    box = _cashbox(refresh=True)
    box.set_counts(box.get_counts() + counts)
    box.updated_at = utcnow()


# =============================================================================
# SESSION LIFECYCLE
# =============================================================================

def get_session(session_id: int) -> ConcessionSession:
    session = db.session.get(ConcessionSession, session_id)
    if session is None:
        raise NotFoundError(f"Session {session_id} not found", {"session_id": session_id})
    return session


def locked_session(session_id: int) -> ConcessionSession:
    """Fresh read of a session row; call while holding session_lock(session_id)."""
    q = fresh(lock_for_update(db.session.query(ConcessionSession).filter_by(id=session_id)))
    session = q.first()
    if session is None:
        raise NotFoundError(f"Session {session_id} not found", {"session_id": session_id})
    return session


def _require_status(session: ConcessionSession, *allowed: str, action: str) -> None:
    if session.status not in allowed:
        raise SessionStateError(
            f"Cannot {action} a session that is {session.status}",
            {"session_id": session.id, "status": session.status, "allowed": list(allowed)},
        )


def list_sessions(
    *,
    status: str | None = None,
    program_id: int | None = None,
    include_test: bool = True,
) -> list[ConcessionSession]:
    q = db.session.query(ConcessionSession)
    if status is not None:
        q = q.filter(ConcessionSession.status == status)
    if program_id is not None:
        q = q.filter(ConcessionSession.program_id == program_id)
    if not include_test:
        q = q.filter(ConcessionSession.is_test.is_(False))
    return q.order_by(ConcessionSession.created_at.desc(), ConcessionSession.id.desc()).all()


def create_session(
    name: str,
    program_id: int,
    *,
    created_by: str | None = None,
    is_test: bool = False,
) -> ConcessionSession:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Session name is required")

    def _op():
        get_program(program_id, require_active=True)
        session = ConcessionSession(
            name=name,
            program_id=program_id,
            status="created",
            is_test=bool(is_test),
            created_by=created_by,
        )
        db.session.add(session)
        db.session.commit()
        return session

    return run_with_retry(_op)


def start_session(
    session_id: int,
    counts: Denominations,
    *,
    started_by: str | None = None,
) -> ConcessionSession:
    """
    Count the starting float into the drawer and open the session for orders.

    Real sessions take that float out of the main cashbox.
    """
    def _op():
        with session_lock(session_id):
            session = locked_session(session_id)
            _require_status(session, "created", action="start")

            if not session.is_test:
                with ledger_lock():
                    _draw_from_cashbox(counts)
                    _activate(session, counts, started_by)
                    db.session.commit()
            else:
                _activate(session, counts, started_by)
                db.session.commit()
            return session

    return run_with_retry(_op)


def _activate(session: ConcessionSession, counts: Denominations, started_by: str | None) -> None:
    session.start_counts = counts.to_dict()
    session.start_total_cents = counts.value_cents()
    session.status = "active"
    session.started_at = utcnow()
    session.started_by = started_by


def _order_totals(session_id: int) -> dict:
    orders = (
        db.session.query(Order)
        .filter(Order.session_id == session_id)
        .order_by(Order.id.asc())
        .all()
    )
    by_method = {"cash": 0, "cashapp": 0, "zelle": 0}
    orders_by_method = {"cash": 0, "cashapp": 0, "zelle": 0}
    comps = comp_value = 0
    for o in orders:
        by_method[o.payment_method] = by_method.get(o.payment_method, 0) + o.final_total_cents
        orders_by_method[o.payment_method] = orders_by_method.get(o.payment_method, 0) + 1
        if o.is_comp:
            comps += 1
            comp_value += o.subtotal_cents

    return {
        "order_count": len(orders),
        "gross_sales_cents": sum(o.subtotal_cents for o in orders),
        "discount_total_cents": sum(o.discount_cents for o in orders),
        "net_sales_cents": sum(o.final_total_cents for o in orders),
        "revenue_by_method_cents": by_method,
        "orders_by_method": orders_by_method,
        "comp_count": comps,
        "comp_value_cents": comp_value,
        "cogs_cents": sum(o.cogs_cents for o in orders),
        "cogs_reimbursable_cents": sum(o.cogs_reimbursable_cents for o in orders),
    }


def _reconcile(session: ConcessionSession, totals: dict, end_total_cents: int | None) -> dict:
    start = session.start_total_cents or 0
    expected = start + totals["revenue_by_method_cents"]["cash"]
    result = {
        "start_total_cents": start,
        "cash_revenue_cents": totals["revenue_by_method_cents"]["cash"],
        "expected_cash_cents": expected,
        "end_total_cents": end_total_cents,
        "profit_cents": None,
        "discrepancy_cents": None,
    }
    if end_total_cents is not None:
        result["profit_cents"] = end_total_cents - start
        result["discrepancy_cents"] = end_total_cents - expected
    return result


def close_session(
    session_id: int,
    counts: Denominations,
    *,
    closed_by: str | None = None,
) -> dict:
    """
    Count the drawer and close the session.

    profit = end_total - start_total. The reconciliation against recorded
    cash sales is returned for display only; a discrepancy never blocks the
    close and is not booked as a loss automatically.
    """
    def _op():
        with session_lock(session_id):
            session = locked_session(session_id)
            _require_status(session, "active", action="close")

            totals = _order_totals(session_id)
            end_total = counts.value_cents()
            reconciliation = _reconcile(session, totals, end_total)

            session.end_counts = counts.to_dict()
            session.end_total_cents = end_total
            session.profit_cents = end_total - (session.start_total_cents or 0)
            session.status = "closed"
            session.closed_at = utcnow()
            session.closed_by = closed_by

            if not session.is_test:
                with ledger_lock():
                    _return_to_cashbox(counts)
                    if totals["cogs_reimbursable_cents"] > 0:
                        record_entry(
                            "cogs_owed",
                            totals["cogs_reimbursable_cents"],
                            session_id=session.id,
                            notes=f"Reimbursable COGS for session '{session.name}'",
                        )
                    db.session.commit()
            else:
                db.session.commit()
            return session, reconciliation

    session, reconciliation = run_with_retry(_op)
    forget_session_lock(session_id)

    threshold = current_app.config.get("CASH_DISCREPANCY_WARN_CENTS", 500)
    discrepancy = reconciliation["discrepancy_cents"]
    if discrepancy is not None and abs(discrepancy) > threshold:
        current_app.logger.warning(
            "Session %s closed with cash discrepancy of %s cents (expected %s, counted %s)",
            session.id,
            discrepancy,
            reconciliation["expected_cash_cents"],
            reconciliation["end_total_cents"],
        )

    return {
        "session": session.to_dict(),
        "end_total_cents": session.end_total_cents,
        "profit_cents": session.profit_cents,
        "reconciliation": reconciliation,
    }


def cancel_session(session_id: int) -> ConcessionSession:
    """
    Abandon a session that has taken no orders.

    An active real session's float goes back into the main cashbox.
    """
    def _op():
        with session_lock(session_id):
            session = locked_session(session_id)
            _require_status(session, "created", "active", action="cancel")

            order_count = db.session.query(func.count(Order.id)).filter(Order.session_id == session_id).scalar()
            if order_count:
                raise SessionStateError(
                    "Cannot cancel a session that has orders; close it instead",
                    {"session_id": session_id, "order_count": int(order_count)},
                )

            with ledger_lock():
                if session.status == "active" and not session.is_test and session.start_counts:
                    _return_to_cashbox(session.start_denominations)
                session.status = "cancelled"
                session.cancelled_at = utcnow()
                db.session.commit()
            return session

    session = run_with_retry(_op)
    forget_session_lock(session_id)
    return session


# =============================================================================
# STOCK CHECKS
# =============================================================================

CHECK_STAGE_STATUSES = {
    "start": ("created", "active"),
    "end": ("active",),
}


def check_inventory(
    session_id: int,
    stage: str,
    counts: list[dict],
    *,
    verified_by: str | None = None,
    skip: bool = False,
) -> dict:
    """
    Count stock at the start or end of a session.

    Each entry ({"menu_item_id", "actual_quantity", "notes"?}) goes through
    the physical count, so a shortfall becomes an inventory_discrepancy Loss
    tied to this session and an overage a zero-cost lot. All entries commit
    together or not at all.

    skip=True records that the check was skipped and counts nothing.
    Practice sessions may only skip.
    """
    if stage not in CHECK_STAGE_STATUSES:
        raise ValidationError(f"Unknown stock check stage {stage!r}", {"allowed": list(CHECK_STAGE_STATUSES)})
    counts = counts or []
    if not skip:
        if not counts:
            raise ValidationError("counts must be a non-empty list unless the check is skipped")
        seen = set()
        for entry in counts:
            if not isinstance(entry, dict):
                raise ValidationError("counts entries must be objects")
            item_id = entry.get("menu_item_id")
            if isinstance(item_id, bool) or not isinstance(item_id, int):
                raise ValidationError("counts[].menu_item_id must be an integer")
            if item_id in seen:
                raise ValidationError("Each item may be counted once per check", {"menu_item_id": item_id})
            seen.add(item_id)

    def _op():
        with session_lock(session_id):
            session = locked_session(session_id)
            _require_status(session, *CHECK_STAGE_STATUSES[stage], action=f"run the {stage} stock check for")
            if session.is_test and not skip:
                raise ValidationError(
                    "Practice sessions cannot change inventory; skip the stock check instead",
                    {"session_id": session_id},
                )

            results = []
            with ledger_lock():
                for entry in counts if not skip else []:
                    count = inventory_service.record_count_inner(
                        entry.get("menu_item_id"),
                        entry.get("actual_quantity"),
                        session_id=session_id,
                        stage=stage,
                        counted_by=verified_by,
                        notes=entry.get("notes"),
                    )
                    results.append(inventory_service.count_result(count))

                if stage == "start":
                    session.inventory_verified_at_start = not skip
                    session.start_verified_by = verified_by
                else:
                    session.inventory_verified_at_end = not skip
                    session.end_verified_by = verified_by
                db.session.commit()
            return session, results

    session, results = run_with_retry(_op)
    discrepancies = [r for r in results if r["delta"] != 0]
    if discrepancies:
        current_app.logger.info(
            "Session %s %s stock check: %s item(s) off count",
            session_id,
            stage,
            len(discrepancies),
        )
    return {
        "session": session.to_dict(),
        "stage": stage,
        "verified": not skip,
        "results": results,
        "discrepancy_count": len(discrepancies),
        "total_loss_cents": sum(r["loss_cents"] for r in results),
    }


def list_checks(session_id: int) -> dict:
    session = get_session(session_id)
    counts = inventory_service.list_counts(session_id=session_id, limit=500)
    return {
        "session_id": session_id,
        "inventory_verified_at_start": session.inventory_verified_at_start,
        "inventory_verified_at_end": session.inventory_verified_at_end,
        "start": [c.to_dict() for c in counts if c.stage == "start"],
        "end": [c.to_dict() for c in counts if c.stage == "end"],
    }


def end_practice_session(session_id: int) -> dict:
    """
    Throw away a practice session and its orders.

    Practice orders never reached inventory or any ledger, so deleting them
    has nothing to undo.
    """
    def _op():
        with session_lock(session_id):
            session = locked_session(session_id)
            if not session.is_test:
                raise ValidationError("Only practice sessions can be ended this way", {"session_id": session_id})
            _require_status(session, "created", "active", action="end")

            orders = db.session.query(Order).filter(Order.session_id == session_id).all()
            for order in orders:
                db.session.delete(order)
            db.session.query(Loss).filter(Loss.session_id == session_id).update(
                {Loss.session_id: None}, synchronize_session=False
            )
            db.session.delete(session)
            db.session.commit()
            return {"session_id": session_id, "orders_deleted": len(orders)}

    result = run_with_retry(_op)
    forget_session_lock(session_id)
    current_app.logger.info(
        "Practice session %s ended, %s order(s) discarded", session_id, result["orders_deleted"]
    )
    return result


# =============================================================================
# REPORTING
# =============================================================================

def get_sales_summary(session_id: int) -> dict:
    session = get_session(session_id)
    totals = _order_totals(session_id)
    return {
        "session": session.to_dict(),
        **totals,
        "expected_cash_cents": _reconcile(session, totals, None)["expected_cash_cents"],
    }


def close_preview(session_id: int, counts: Denominations | None = None) -> dict:
    """What closing would report, without closing. Counts are optional."""
    session = get_session(session_id)
    _require_status(session, "active", action="preview closing")
    totals = _order_totals(session_id)
    end_total = counts.value_cents() if counts is not None else None
    return {
        "session": session.to_dict(),
        **totals,
        "reconciliation": _reconcile(session, totals, end_total),
        "cogs_owed_cents": 0 if session.is_test else totals["cogs_reimbursable_cents"],
    }
