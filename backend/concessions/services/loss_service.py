# backend/concessions/services/loss_service.py
"""
Loss recording and settlement.

A loss is recorded first and settled later. Settlement picks who absorbs it:

- "asb": ASB eats it, no ledger effect.
- "program:<id>": debit on that program's account (loss_settlement).
- "reimbursement": negative loss_offset entry, reducing what ASB owes the
  purchaser.

Only unsettled losses may be deleted.
"""
from __future__ import annotations

from sqlalchemy import func

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import ConcessionSession, InventoryCount, Loss
from ..models.ledgers import LOSS_TYPES
from concessions.time_utils import utcnow
from .catalog_service import get_program
from .concurrency import fresh, ledger_lock, run_with_retry
from .program_ledger_service import post_transaction
from .reimbursement_service import record_entry


def _get_loss(loss_id: int, *, refresh: bool = False) -> Loss:
    q = db.session.query(Loss).filter_by(id=loss_id)
    if refresh:
        q = fresh(q)
    loss = q.first()
    if loss is None:
        raise NotFoundError(f"Loss {loss_id} not found", {"loss_id": loss_id})
    return loss


def record_loss_inner(
    *,
    loss_type: str,
    amount_cents: int,
    session_id: int | None = None,
    program_id: int | None = None,
    menu_item_id: int | None = None,
    description: str | None = None,
    recorded_by: str | None = None,
) -> Loss:
    """Core logic without retry or commit."""
    if loss_type not in LOSS_TYPES:
        raise ValidationError(f"Unknown loss type {loss_type!r}", {"allowed": list(LOSS_TYPES)})
    if amount_cents is None or amount_cents < 0:
        raise ValidationError("Loss amount cannot be negative")
    loss = Loss(
        loss_type=loss_type,
        amount_cents=amount_cents,
        session_id=session_id,
        program_id=program_id,
        menu_item_id=menu_item_id,
        description=description,
        recorded_by=recorded_by,
    )
    db.session.add(loss)
    db.session.flush()
    return loss


def record_loss(
    loss_type: str,
    amount_cents: int,
    *,
    session_id: int | None = None,
    program_id: int | None = None,
    description: str | None = None,
    recorded_by: str | None = None,
) -> Loss:
    if amount_cents is None or amount_cents <= 0:
        raise ValidationError("Loss amount must be positive")

    def _op():
        if session_id is not None and db.session.get(ConcessionSession, session_id) is None:
            raise NotFoundError(f"Session {session_id} not found", {"session_id": session_id})
        if program_id is not None:
            get_program(program_id)
        loss = record_loss_inner(
            loss_type=loss_type,
            amount_cents=amount_cents,
            session_id=session_id,
            program_id=program_id,
            description=description,
            recorded_by=recorded_by,
        )
        db.session.commit()
        return loss

    return run_with_retry(_op)


def _parse_settle_to(settle_to: str) -> tuple[str, int | None]:
    value = (settle_to or "").strip()
    if value in ("asb", "reimbursement"):
        return value, None
    if value.startswith("program:"):
        raw_id = value.split(":", 1)[1]
        if raw_id.isdigit():
            return "program", int(raw_id)
    raise ValidationError(
        "settle_to must be 'asb', 'reimbursement' or 'program:<id>'",
        {"settle_to": settle_to},
    )


def settle_loss(
    loss_id: int,
    settle_to: str,
    *,
    settled_by: str | None = None,
    notes: str | None = None,
) -> Loss:
    target, program_id = _parse_settle_to(settle_to)

    def _op():
        with ledger_lock():
            loss = _get_loss(loss_id, refresh=True)
            if loss.is_settled:
                raise ValidationError(f"Loss {loss_id} is already settled", {"settled_to": loss.settled_to})

            if target == "program":
                program = get_program(program_id)
                post_transaction(
                    program.id,
                    -loss.amount_cents,
                    "loss_settlement",
                    session_id=loss.session_id,
                    note=f"Loss #{loss.id} ({loss.loss_type})",
                )
                loss.program_id = program.id
            elif target == "reimbursement":
                record_entry(
                    "loss_offset",
                    -loss.amount_cents,
                    session_id=loss.session_id,
                    reference_id=loss.id,
                    notes=notes or f"Loss #{loss.id} ({loss.loss_type})",
                )

            loss.settled_to = settle_to.strip()
            loss.settled_at = utcnow()
            loss.settled_by = settled_by
            loss.settlement_notes = notes
            db.session.commit()
            return loss

    return run_with_retry(_op)


def delete_loss(loss_id: int) -> None:
    def _op():
        loss = _get_loss(loss_id, refresh=True)
        if loss.is_settled:
            raise ValidationError("Settled losses cannot be deleted", {"loss_id": loss_id})
        db.session.query(InventoryCount).filter(InventoryCount.loss_id == loss_id).update(
            {InventoryCount.loss_id: None}, synchronize_session=False
        )
        db.session.delete(loss)
        db.session.commit()

    return run_with_retry(_op)


def list_losses(
    *,
    session_id: int | None = None,
    loss_type: str | None = None,
    settled: bool | None = None,
    limit: int = 200,
) -> list[Loss]:
    q = db.session.query(Loss)
    if session_id is not None:
        q = q.filter(Loss.session_id == session_id)
    if loss_type is not None:
        q = q.filter(Loss.loss_type == loss_type)
    if settled is True:
        q = q.filter(Loss.settled_at.isnot(None))
    elif settled is False:
        q = q.filter(Loss.settled_at.is_(None))
    return q.order_by(Loss.created_at.desc(), Loss.id.desc()).limit(limit).all()


def get_loss_summary() -> dict:
    rows = (
        db.session.query(
            Loss.loss_type,
            func.count(Loss.id),
            func.coalesce(func.sum(Loss.amount_cents), 0),
        )
        .group_by(Loss.loss_type)
        .all()
    )
    by_type = {t: {"count": 0, "amount_cents": 0} for t in LOSS_TYPES}
    for loss_type, count, total in rows:
        by_type[loss_type] = {"count": int(count), "amount_cents": int(total)}

    unsettled = (
        db.session.query(func.coalesce(func.sum(Loss.amount_cents), 0))
        .filter(Loss.settled_at.is_(None))
        .scalar()
    )
    return {
        "by_type": by_type,
        "total_cents": sum(v["amount_cents"] for v in by_type.values()),
        "unsettled_cents": int(unsettled or 0),
    }
