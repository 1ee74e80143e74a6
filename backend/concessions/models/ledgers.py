from __future__ import annotations

from ..extensions import db
from concessions.time_utils import to_utc_z


PROGRAM_TRANSACTION_KINDS = ("deposit", "withdrawal", "earning", "charge", "loss_settlement")
LOSS_TYPES = ("cash_discrepancy", "inventory_discrepancy", "spoilage", "other")
REIMBURSEMENT_ENTRY_TYPES = (
    "cogs_owed",
    "loss_offset",
    "zelle_received",
    "cashapp_withdrawal",
    "cashbox_reimbursement",
)


class ProgramTransaction(db.Model):
    """
    Signed movement on a program account.

    INVARIANT: Program.balance_cents == SUM(amount_cents) over the program's
    rows. session_id is null for manual deposits/withdrawals.
    """
    __tablename__ = "program_transactions"
    __table_args__ = (
        db.Index("ix_program_transactions_program_created", "program_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    program_id = db.Column(db.Integer, db.ForeignKey("programs.id"), nullable=False, index=True)
    session_id = db.Column(db.Integer, db.ForeignKey("concession_sessions.id"), nullable=True, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True)

    kind = db.Column(db.String(32), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "program_id": self.program_id,
            "session_id": self.session_id,
            "order_id": self.order_id,
            "kind": self.kind,
            "amount_cents": self.amount_cents,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }


class ProfitDistribution(db.Model):
    __tablename__ = "profit_distributions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("concession_sessions.id"), nullable=False, index=True)
    program_id = db.Column(db.Integer, db.ForeignKey("programs.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    distributed_by = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    program = db.relationship("Program")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "program_id": self.program_id,
            "program_name": self.program.name if self.program else None,
            "amount_cents": self.amount_cents,
            "distributed_by": self.distributed_by,
            "created_at": to_utc_z(self.created_at),
        }


class Loss(db.Model):
    """
    Recorded loss (cash short at close, missing/spoiled stock, other).

    Settlement decides who absorbs it: ASB (no ledger effect), a program
    (debit on its account) or the reimbursement ledger (reduces what ASB
    owes). Settled losses are permanent.
    """
    __tablename__ = "losses"
    __table_args__ = (
        db.CheckConstraint("amount_cents >= 0", name="ck_losses_amount_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("concession_sessions.id"), nullable=True, index=True)
    program_id = db.Column(db.Integer, db.ForeignKey("programs.id"), nullable=True, index=True)
    menu_item_id = db.Column(db.Integer, db.ForeignKey("menu_items.id"), nullable=True)

    loss_type = db.Column(db.String(32), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)
    recorded_by = db.Column(db.String(128), nullable=True)

    settled_to = db.Column(db.String(32), nullable=True)
    settled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    settled_by = db.Column(db.String(128), nullable=True)
    settlement_notes = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def is_settled(self) -> bool:
        return self.settled_at is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "program_id": self.program_id,
            "menu_item_id": self.menu_item_id,
            "loss_type": self.loss_type,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "recorded_by": self.recorded_by,
            "settled_to": self.settled_to,
            "settled_at": to_utc_z(self.settled_at),
            "settled_by": self.settled_by,
            "settlement_notes": self.settlement_notes,
            "is_settled": self.is_settled,
            "created_at": to_utc_z(self.created_at),
        }


class CashAppAccount(db.Model):
    """Single row (id=1). balance_cents == SUM(CashAppTransaction.amount_cents)."""
    __tablename__ = "cashapp_account"

    id = db.Column(db.Integer, primary_key=True)
    balance_cents = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {"balance_cents": self.balance_cents, "updated_at": to_utc_z(self.updated_at)}


class CashAppTransaction(db.Model):
    __tablename__ = "cashapp_transactions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(16), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True)
    session_id = db.Column(db.Integer, db.ForeignKey("concession_sessions.id"), nullable=True)
    notes = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "amount_cents": self.amount_cents,
            "order_id": self.order_id,
            "session_id": self.session_id,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class ZellePayment(db.Model):
    __tablename__ = "zelle_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    session_id = db.Column(db.Integer, db.ForeignKey("concession_sessions.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "session_id": self.session_id,
            "amount_cents": self.amount_cents,
            "created_at": to_utc_z(self.created_at),
        }


class ReimbursementEntry(db.Model):
    """
    Line in the reimbursement ledger (what ASB owes the purchaser for stock
    bought out of pocket, and what has been paid back).

    Positive entries of type cogs_owed grow the debt; loss_offset entries are
    negative and shrink it. zelle_received, cashapp_withdrawal and
    cashbox_reimbursement count as money paid back.
    """
    __tablename__ = "reimbursement_entries"
    __table_args__ = (
        db.Index("ix_reimbursement_entries_type", "entry_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    entry_type = db.Column(db.String(32), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    session_id = db.Column(db.Integer, db.ForeignKey("concession_sessions.id"), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "entry_type": self.entry_type,
            "amount_cents": self.amount_cents,
            "session_id": self.session_id,
            "reference_id": self.reference_id,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
