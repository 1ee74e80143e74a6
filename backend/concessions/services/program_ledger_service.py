# backend/concessions/services/program_ledger_service.py
"""
Program accounts.

Every balance change is a ProgramTransaction row plus an atomic UPDATE of
Program.balance_cents in the same DB transaction, so the balance always
equals the sum of the program's transactions.

Charges (discounts, loss settlements) may drive a balance negative; manual
withdrawals may not.
"""
from __future__ import annotations

from sqlalchemy import func

from ..errors import ValidationError
from ..extensions import db
from ..models import Program, ProgramTransaction
from ..models.ledgers import PROGRAM_TRANSACTION_KINDS
from .catalog_service import get_program
from .concurrency import fresh, ledger_lock, run_with_retry


def post_transaction(
    program_id: int,
    amount_cents: int,
    kind: str,
    *,
    session_id: int | None = None,
    order_id: int | None = None,
    note: str | None = None,
) -> ProgramTransaction:
    """Append a signed transaction and move the balance. Flushes only; caller commits."""
    if kind not in PROGRAM_TRANSACTION_KINDS:
        raise ValidationError(f"Unknown program transaction kind {kind!r}")
    get_program(program_id)

    tx = ProgramTransaction(
        program_id=program_id,
        session_id=session_id,
        order_id=order_id,
        kind=kind,
        amount_cents=amount_cents,
        note=note,
    )
    db.session.add(tx)
    db.session.query(Program).filter(Program.id == program_id).update(
        {Program.balance_cents: Program.balance_cents + amount_cents},
        synchronize_session="fetch",
    )
    db.session.flush()
    return tx


def deposit(program_id: int, amount_cents: int, note: str | None = None) -> ProgramTransaction:
    if amount_cents <= 0:
        raise ValidationError("Deposit amount must be positive")

    def _op():
        with ledger_lock():
            get_program(program_id, require_active=True)
            tx = post_transaction(program_id, amount_cents, "deposit", note=note or "Manual deposit")
            db.session.commit()
            return tx

    return run_with_retry(_op)


def withdraw(program_id: int, amount_cents: int, note: str | None = None) -> ProgramTransaction:
    if amount_cents <= 0:
        raise ValidationError("Withdrawal amount must be positive")

    def _op():
        with ledger_lock():
            get_program(program_id)
            program = fresh(db.session.query(Program).filter_by(id=program_id)).one()
            if program.balance_cents < amount_cents:
                raise ValidationError(
                    f"Insufficient balance in {program.name}",
                    {"balance_cents": program.balance_cents, "requested_cents": amount_cents},
                )
            tx = post_transaction(program_id, -amount_cents, "withdrawal", note=note or "Manual withdrawal")
            db.session.commit()
            return tx

    return run_with_retry(_op)


def list_transactions(program_id: int, *, limit: int = 100) -> list[ProgramTransaction]:
    get_program(program_id)
    return (
        db.session.query(ProgramTransaction)
        .filter(ProgramTransaction.program_id == program_id)
        .order_by(ProgramTransaction.created_at.desc(), ProgramTransaction.id.desc())
        .limit(limit)
        .all()
    )


def get_program_account(program_id: int) -> dict:
    program = get_program(program_id)
    rows = (
        db.session.query(ProgramTransaction.kind, func.coalesce(func.sum(ProgramTransaction.amount_cents), 0))
        .filter(ProgramTransaction.program_id == program_id)
        .group_by(ProgramTransaction.kind)
        .all()
    )
    totals = {kind: 0 for kind in PROGRAM_TRANSACTION_KINDS}
    for kind, total in rows:
        totals[kind] = int(total)

    data = program.to_dict()
    data["totals_by_kind_cents"] = totals
    data["transactions"] = [tx.to_dict() for tx in list_transactions(program_id, limit=50)]
    return data
