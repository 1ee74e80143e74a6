# backend/concessions/services/cashapp_service.py
"""
CashApp account and Zelle payment log.

CashApp sales land in a single club account (balance_cents == SUM of its
transactions). Withdrawals pay the purchaser back, so each one is also a
cashapp_withdrawal entry in the reimbursement ledger.

Zelle payments go straight to the purchaser: they are logged and counted as
zelle_received in the reimbursement ledger, with no club balance.
"""
from __future__ import annotations

from ..errors import ValidationError
from ..extensions import db
from ..models import CashAppAccount, CashAppTransaction, ZellePayment
from concessions.time_utils import utcnow
from .concurrency import fresh, ledger_lock, run_with_retry
from .reimbursement_service import record_entry

ACCOUNT_ID = 1


def _get_account(*, refresh: bool = False) -> CashAppAccount:
    q = db.session.query(CashAppAccount).filter_by(id=ACCOUNT_ID)
    if refresh:
        q = fresh(q)
    account = q.first()
    if account is None:
        account = CashAppAccount(id=ACCOUNT_ID, balance_cents=0)
        db.session.add(account)
        db.session.flush()
    return account


def credit_sale(amount_cents: int, *, order_id: int, session_id: int) -> CashAppTransaction:
    """Flushes only; caller commits (under ledger_lock)."""
    account = _get_account(refresh=True)
    account.balance_cents += amount_cents
    account.updated_at = utcnow()
    tx = CashAppTransaction(
        kind="sale",
        amount_cents=amount_cents,
        order_id=order_id,
        session_id=session_id,
    )
    db.session.add(tx)
    db.session.flush()
    return tx


def withdraw(amount_cents: int, notes: str | None = None) -> CashAppTransaction:
    if amount_cents <= 0:
        raise ValidationError("Withdrawal amount must be positive")

    def _op():
        with ledger_lock():
            account = _get_account(refresh=True)
            if account.balance_cents < amount_cents:
                raise ValidationError(
                    "Insufficient CashApp balance",
                    {"balance_cents": account.balance_cents, "requested_cents": amount_cents},
                )
            account.balance_cents -= amount_cents
            account.updated_at = utcnow()
            tx = CashAppTransaction(kind="withdrawal", amount_cents=-amount_cents, notes=notes)
            db.session.add(tx)
            db.session.flush()
            record_entry("cashapp_withdrawal", amount_cents, reference_id=tx.id, notes=notes)
            db.session.commit()
            return tx

    return run_with_retry(_op)


def get_balance() -> int:
    account = db.session.get(CashAppAccount, ACCOUNT_ID)
    return account.balance_cents if account else 0


def list_transactions(*, limit: int = 100) -> list[CashAppTransaction]:
    return (
        db.session.query(CashAppTransaction)
        .order_by(CashAppTransaction.created_at.desc(), CashAppTransaction.id.desc())
        .limit(limit)
        .all()
    )


def record_zelle(amount_cents: int, *, order_id: int, session_id: int) -> ZellePayment:
    """Flushes only; caller commits."""
    payment = ZellePayment(order_id=order_id, session_id=session_id, amount_cents=amount_cents)
    db.session.add(payment)
    db.session.flush()
    record_entry(
        "zelle_received",
        amount_cents,
        session_id=session_id,
        reference_id=order_id,
        notes=f"Zelle payment for order #{order_id}",
    )
    return payment


def list_zelle_payments(session_id: int | None = None) -> list[ZellePayment]:
    q = db.session.query(ZellePayment)
    if session_id is not None:
        q = q.filter(ZellePayment.session_id == session_id)
    return q.order_by(ZellePayment.created_at.desc(), ZellePayment.id.desc()).all()
