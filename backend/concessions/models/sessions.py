from __future__ import annotations

from ..extensions import db
from concessions.money import DENOMINATION_CENTS, Denominations
from concessions.time_utils import to_utc_z


SESSION_STATUSES = ("created", "active", "closed", "cancelled")


class ConcessionSession(db.Model):
    """
    One run of the concession stand, sponsored by a program.

    Lifecycle: created -> active -> closed, or created|active -> cancelled.
    Only active sessions accept orders.

    WHY: Profit is measured by counting the drawer (end_total - start_total),
    NOT by summing orders. Sales totals are kept alongside for the
    advisory reconciliation shown at close.

    is_test marks a practice session: orders are recorded but never touch
    inventory, the main cashbox, CashApp or any program ledger.
    """
    __tablename__ = "concession_sessions"
    __table_args__ = (
        db.Index("ix_concession_sessions_program_status", "program_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    program_id = db.Column(db.Integer, db.ForeignKey("programs.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default="created", index=True)
    is_test = db.Column(db.Boolean, nullable=False, default=False)

    # Denomination snapshots, stored as {"quarters": n, ...}
    start_counts = db.Column(db.JSON, nullable=True)
    end_counts = db.Column(db.JSON, nullable=True)

    start_total_cents = db.Column(db.Integer, nullable=True)
    end_total_cents = db.Column(db.Integer, nullable=True)
    profit_cents = db.Column(db.Integer, nullable=True)

    # Stock checks: None until the check is done or skipped, then True/False
    inventory_verified_at_start = db.Column(db.Boolean, nullable=True)
    inventory_verified_at_end = db.Column(db.Boolean, nullable=True)
    start_verified_by = db.Column(db.String(128), nullable=True)
    end_verified_by = db.Column(db.String(128), nullable=True)

    # Running sales totals, incremented per order
    sales_total_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_total_cents = db.Column(db.Integer, nullable=False, default=0)
    order_count = db.Column(db.Integer, nullable=False, default=0)

    created_by = db.Column(db.String(128), nullable=True)
    started_by = db.Column(db.String(128), nullable=True)
    closed_by = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    program = db.relationship("Program")

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def start_denominations(self) -> Denominations | None:
        return Denominations.from_payload(self.start_counts) if self.start_counts is not None else None

    @property
    def end_denominations(self) -> Denominations | None:
        return Denominations.from_payload(self.end_counts) if self.end_counts is not None else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "program_id": self.program_id,
            "program_name": self.program.name if self.program else None,
            "status": self.status,
            "is_test": self.is_test,
            "start_counts": self.start_counts,
            "end_counts": self.end_counts,
            "start_total_cents": self.start_total_cents,
            "end_total_cents": self.end_total_cents,
            "profit_cents": self.profit_cents,
            "inventory_verified_at_start": self.inventory_verified_at_start,
            "inventory_verified_at_end": self.inventory_verified_at_end,
            "start_verified_by": self.start_verified_by,
            "end_verified_by": self.end_verified_by,
            "sales_total_cents": self.sales_total_cents,
            "discount_total_cents": self.discount_total_cents,
            "order_count": self.order_count,
            "created_by": self.created_by,
            "started_by": self.started_by,
            "closed_by": self.closed_by,
            "created_at": to_utc_z(self.created_at),
            "started_at": to_utc_z(self.started_at),
            "closed_at": to_utc_z(self.closed_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
        }


class MainCashbox(db.Model):
    """
    The club's main cash box. Single row (id=1).

    Session floats are drawn out of it at start and the closing count is
    returned to it at close.
    """
    __tablename__ = "main_cashbox"

    id = db.Column(db.Integer, primary_key=True)
    quarters = db.Column(db.Integer, nullable=False, default=0)
    bills_1 = db.Column(db.Integer, nullable=False, default=0)
    bills_5 = db.Column(db.Integer, nullable=False, default=0)
    bills_10 = db.Column(db.Integer, nullable=False, default=0)
    bills_20 = db.Column(db.Integer, nullable=False, default=0)
    bills_50 = db.Column(db.Integer, nullable=False, default=0)
    bills_100 = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def get_counts(self) -> Denominations:
        return Denominations.from_model(self)

    def set_counts(self, counts: Denominations) -> None:
        for name in DENOMINATION_CENTS:
            setattr(self, name, getattr(counts, name))

    def to_dict(self) -> dict:
        data = self.get_counts().to_dict()
        data["updated_at"] = to_utc_z(self.updated_at)
        return data
