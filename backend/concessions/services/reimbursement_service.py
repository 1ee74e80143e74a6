# backend/concessions/services/reimbursement_service.py
"""
Reimbursement tracking.

Two views:

- Cost breakdown (read-only, exact): LotConsumption rows split by the lot's
  reimbursable flag. Only stock bought on a recorded purchase receipt is
  reimbursable.
- Reimbursement ledger: what ASB owes the purchaser (COGS of reimbursable
  stock sold, written at session close, less losses settled against it) and
  what has been paid back (Zelle receipts, CashApp withdrawals, cash handed
  over from the main cashbox).
"""
from __future__ import annotations

from sqlalchemy import func

from ..errors import ValidationError
from ..extensions import db
from ..models import LotConsumption, MenuItem, ReimbursementEntry
from ..models.ledgers import REIMBURSEMENT_ENTRY_TYPES
from .concurrency import run_with_retry

OWED_TYPES = ("cogs_owed", "loss_offset")
RECEIVED_TYPES = ("zelle_received", "cashapp_withdrawal", "cashbox_reimbursement")


def record_entry(
    entry_type: str,
    amount_cents: int,
    *,
    session_id: int | None = None,
    reference_id: int | None = None,
    notes: str | None = None,
) -> ReimbursementEntry:
    """Flushes only; caller commits."""
    if entry_type not in REIMBURSEMENT_ENTRY_TYPES:
        raise ValidationError(f"Unknown reimbursement entry type {entry_type!r}")
    entry = ReimbursementEntry(
        entry_type=entry_type,
        amount_cents=amount_cents,
        session_id=session_id,
        reference_id=reference_id,
        notes=notes,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def record_cashbox_reimbursement(amount_cents: int, notes: str | None = None) -> ReimbursementEntry:
    """Cash handed to the purchaser out of the main cashbox."""
    if amount_cents <= 0:
        raise ValidationError("Reimbursement amount must be positive")

    def _op():
        entry = record_entry("cashbox_reimbursement", amount_cents, notes=notes)
        db.session.commit()
        return entry

    return run_with_retry(_op)


def list_entries(entry_type: str | None = None, *, limit: int = 200) -> list[ReimbursementEntry]:
    q = db.session.query(ReimbursementEntry)
    if entry_type is not None:
        q = q.filter(ReimbursementEntry.entry_type == entry_type)
    return q.order_by(ReimbursementEntry.created_at.desc(), ReimbursementEntry.id.desc()).limit(limit).all()


def get_reimbursement_summary() -> dict:
    rows = (
        db.session.query(ReimbursementEntry.entry_type, func.coalesce(func.sum(ReimbursementEntry.amount_cents), 0))
        .group_by(ReimbursementEntry.entry_type)
        .all()
    )
    by_type = {t: 0 for t in REIMBURSEMENT_ENTRY_TYPES}
    for entry_type, total in rows:
        by_type[entry_type] = int(total)

    owed = sum(by_type[t] for t in OWED_TYPES)
    received = sum(by_type[t] for t in RECEIVED_TYPES)
    return {
        "by_type_cents": by_type,
        "cogs_owed_cents": by_type["cogs_owed"],
        "loss_offset_cents": by_type["loss_offset"],
        "total_owed_cents": owed,
        "total_received_cents": received,
        "remaining_cents": owed - received,
    }


def get_cost_breakdown(session_id: int | None = None, kind: str | None = None) -> dict:
    """
    Exact FIFO cost of consumed stock, split reimbursable / non-reimbursable.

    Filter by session and/or consumption kind (sale, lost, wasted, ...).
    """
    q = db.session.query(LotConsumption)
    if session_id is not None:
        q = q.filter(LotConsumption.session_id == session_id)
    if kind is not None:
        q = q.filter(LotConsumption.kind == kind)
    consumptions = q.all()

    total = reimbursable = 0
    by_kind: dict[str, dict] = {}
    by_item: dict[int, dict] = {}
    for c in consumptions:
        cost = c.cost_cents
        total += cost
        if c.is_reimbursable:
            reimbursable += cost

        k = by_kind.setdefault(c.kind, {"quantity": 0, "cost_cents": 0, "reimbursable_cents": 0})
        k["quantity"] += c.quantity
        k["cost_cents"] += cost
        if c.is_reimbursable:
            k["reimbursable_cents"] += cost

        i = by_item.setdefault(
            c.menu_item_id,
            {"menu_item_id": c.menu_item_id, "quantity": 0, "cost_cents": 0, "reimbursable_cents": 0},
        )
        i["quantity"] += c.quantity
        i["cost_cents"] += cost
        if c.is_reimbursable:
            i["reimbursable_cents"] += cost

    if by_item:
        names = dict(
            db.session.query(MenuItem.id, MenuItem.name).filter(MenuItem.id.in_(list(by_item))).all()
        )
        for item_id, row in by_item.items():
            row["menu_item_name"] = names.get(item_id)

    return {
        "session_id": session_id,
        "kind": kind,
        "total_cost_cents": total,
        "reimbursable_cents": reimbursable,
        "non_reimbursable_cents": total - reimbursable,
        "by_kind": by_kind,
        "by_item": sorted(by_item.values(), key=lambda r: r["menu_item_id"]),
    }
