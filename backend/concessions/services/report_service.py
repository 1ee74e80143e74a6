# Overview: Read-only operational reports over sessions, orders, purchases and program accounts.

from __future__ import annotations

from datetime import date, datetime, time, timedelta

from sqlalchemy import func

from ..errors import ValidationError
from ..extensions import db
from ..models import (
    ConcessionSession,
    Loss,
    Order,
    ProfitDistribution,
    Program,
    ProgramTransaction,
    Purchase,
)
from concessions.time_utils import parse_business_date, to_iso_date, to_utc_z
from .reimbursement_service import get_reimbursement_summary

"""
Reporting rules

- Practice sessions and their orders never appear in a report.
- Session figures count closed sessions only; profit is the drawer profit
  written at close.
- Date ranges are inclusive business dates. Sessions are dated by
  started_at, orders by created_at, purchases by purchase_date.
"""


def _parse_range(start, end) -> tuple[date | None, date | None]:
    try:
        start_d = parse_business_date(start)
        end_d = parse_business_date(end)
    except ValueError:
        raise ValidationError("start and end must be ISO-8601 dates")
    if start_d and end_d and start_d > end_d:
        raise ValidationError("start must not be after end", {"start": start, "end": end})
    return start_d, end_d


def _filter_datetime(q, column, start_d: date | None, end_d: date | None):
    if start_d:
        q = q.filter(column >= datetime.combine(start_d, time.min))
    if end_d:
        q = q.filter(column < datetime.combine(end_d + timedelta(days=1), time.min))
    return q


def _closed_sessions(start_d, end_d, program_id: int | None = None):
    q = db.session.query(ConcessionSession).filter(
        ConcessionSession.status == "closed",
        ConcessionSession.is_test.is_(False),
    )
    if program_id is not None:
        q = q.filter(ConcessionSession.program_id == program_id)
    return _filter_datetime(q, ConcessionSession.started_at, start_d, end_d)


def _real_orders(start_d, end_d):
    q = db.session.query(Order).join(ConcessionSession, Order.session_id == ConcessionSession.id).filter(
        ConcessionSession.is_test.is_(False),
    )
    return _filter_datetime(q, Order.created_at, start_d, end_d)


def sessions_report(*, start=None, end=None, program_id: int | None = None) -> dict:
    start_d, end_d = _parse_range(start, end)
    sessions = _closed_sessions(start_d, end_d, program_id).order_by(
        ConcessionSession.started_at.desc(), ConcessionSession.id.desc()
    ).all()

    rows = [
        {
            "id": s.id,
            "name": s.name,
            "program_id": s.program_id,
            "program_name": s.program.name if s.program else None,
            "started_at": to_utc_z(s.started_at),
            "closed_at": to_utc_z(s.closed_at),
            "start_total_cents": s.start_total_cents,
            "end_total_cents": s.end_total_cents,
            "profit_cents": s.profit_cents,
            "order_count": s.order_count,
            "sales_total_cents": s.sales_total_cents,
            "discount_total_cents": s.discount_total_cents,
            "inventory_verified_at_start": s.inventory_verified_at_start,
            "inventory_verified_at_end": s.inventory_verified_at_end,
            "started_by": s.started_by,
            "closed_by": s.closed_by,
        }
        for s in sessions
    ]
    return {
        "start": to_iso_date(start_d),
        "end": to_iso_date(end_d),
        "rows": rows,
        "session_count": len(rows),
        "total_profit_cents": sum(r["profit_cents"] or 0 for r in rows),
    }


def orders_report(*, session_id: int | None = None, start=None, end=None) -> dict:
    start_d, end_d = _parse_range(start, end)
    q = _real_orders(start_d, end_d)
    if session_id is not None:
        q = q.filter(Order.session_id == session_id)
    orders = q.order_by(Order.created_at.desc(), Order.id.desc()).all()

    rows = []
    for o in orders:
        rows.append({
            "id": o.id,
            "session_id": o.session_id,
            "items": ", ".join(
                f"{line.quantity}x {line.menu_item.name if line.menu_item else line.menu_item_id}"
                for line in o.lines
            ),
            "subtotal_cents": o.subtotal_cents,
            "discount_cents": o.discount_cents,
            "final_total_cents": o.final_total_cents,
            "payment_method": o.payment_method,
            "is_comp": o.is_comp,
            "cogs_cents": o.cogs_cents,
            "cogs_reimbursable_cents": o.cogs_reimbursable_cents,
            "created_at": to_utc_z(o.created_at),
        })
    return {
        "start": to_iso_date(start_d),
        "end": to_iso_date(end_d),
        "session_id": session_id,
        "rows": rows,
        "order_count": len(rows),
        "revenue_cents": sum(r["final_total_cents"] for r in rows),
        "cogs_cents": sum(r["cogs_cents"] for r in rows),
    }


def purchases_report(*, start=None, end=None) -> dict:
    start_d, end_d = _parse_range(start, end)
    q = db.session.query(Purchase)
    if start_d:
        q = q.filter(Purchase.purchase_date >= start_d)
    if end_d:
        q = q.filter(Purchase.purchase_date <= end_d)
    purchases = q.order_by(Purchase.purchase_date.desc(), Purchase.id.desc()).all()
    return {
        "start": to_iso_date(start_d),
        "end": to_iso_date(end_d),
        "rows": [p.to_dict(include_lines=False) for p in purchases],
        "purchase_count": len(purchases),
        "total_cents": sum(p.total_cents for p in purchases),
        "overhead_cents": sum(p.overhead_cents for p in purchases),
    }


def programs_report(*, start=None, end=None) -> dict:
    """Per-program P&L: closed-session profit, what was distributed, current balance."""
    start_d, end_d = _parse_range(start, end)
    sessions = _closed_sessions(start_d, end_d).subquery()

    profit_rows = {
        program_id: (int(count), int(profit))
        for program_id, count, profit in db.session.query(
            sessions.c.program_id,
            func.count(sessions.c.id),
            func.coalesce(func.sum(sessions.c.profit_cents), 0),
        ).group_by(sessions.c.program_id).all()
    }
    distributed_rows = {
        program_id: int(total)
        for program_id, total in db.session.query(
            ProfitDistribution.program_id,
            func.coalesce(func.sum(ProfitDistribution.amount_cents), 0),
        )
        .join(sessions, ProfitDistribution.session_id == sessions.c.id)
        .group_by(ProfitDistribution.program_id)
        .all()
    }

    rows = []
    for program in db.session.query(Program).order_by(Program.name.asc()).all():
        count, profit = profit_rows.get(program.id, (0, 0))
        rows.append({
            "program_id": program.id,
            "name": program.name,
            "is_active": program.is_active,
            "balance_cents": program.balance_cents,
            "session_count": count,
            "total_profit_cents": profit,
            "total_distributed_cents": distributed_rows.get(program.id, 0),
        })
    return {"start": to_iso_date(start_d), "end": to_iso_date(end_d), "rows": rows}


def program_earnings() -> list[dict]:
    """Active programs with the lifetime sum of their earning postings."""
    earnings = dict(
        db.session.query(
            ProgramTransaction.program_id,
            func.coalesce(func.sum(ProgramTransaction.amount_cents), 0),
        )
        .filter(ProgramTransaction.kind == "earning")
        .group_by(ProgramTransaction.program_id)
        .all()
    )
    programs = (
        db.session.query(Program)
        .filter(Program.is_active.is_(True))
        .order_by(Program.name.asc())
        .all()
    )
    return [
        {**program.to_dict(), "total_earnings_cents": int(earnings.get(program.id, 0))}
        for program in programs
    ]


def summary(*, start=None, end=None) -> dict:
    start_d, end_d = _parse_range(start, end)

    session_q = _filter_datetime(
        db.session.query(ConcessionSession).filter(ConcessionSession.is_test.is_(False)),
        ConcessionSession.started_at,
        start_d,
        end_d,
    )
    sessions = session_q.all()
    closed = [s for s in sessions if s.status == "closed"]

    orders = _real_orders(start_d, end_d).all()
    by_method = {"cash": 0, "cashapp": 0, "zelle": 0}
    for o in orders:
        by_method[o.payment_method] = by_method.get(o.payment_method, 0) + o.final_total_cents

    losses = _filter_datetime(db.session.query(Loss), Loss.created_at, start_d, end_d).all()

    purchases = purchases_report(start=start_d, end=end_d)
    reimbursement = get_reimbursement_summary()

    return {
        "start": to_iso_date(start_d),
        "end": to_iso_date(end_d),
        "sessions": {
            "total_sessions": len(sessions),
            "closed_sessions": len(closed),
            "total_profit_cents": sum(s.profit_cents or 0 for s in closed),
        },
        "orders": {
            "total_orders": len(orders),
            "total_revenue_cents": sum(o.final_total_cents for o in orders),
            "total_cogs_cents": sum(o.cogs_cents for o in orders),
            "total_discounts_cents": sum(o.discount_cents for o in orders),
            "revenue_by_method_cents": by_method,
        },
        "losses": {
            "total_losses": len(losses),
            "total_loss_cents": sum(loss.amount_cents for loss in losses),
            "unsettled_loss_cents": sum(loss.amount_cents for loss in losses if not loss.is_settled),
        },
        "purchases": {
            "total_purchases": purchases["purchase_count"],
            "total_purchase_cents": purchases["total_cents"],
        },
        "reimbursement_remaining_cents": reimbursement["remaining_cents"],
    }
