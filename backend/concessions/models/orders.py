from __future__ import annotations

from ..extensions import db
from concessions.time_utils import to_utc_z


PAYMENT_METHODS = ("cash", "cashapp", "zelle")


class Order(db.Model):
    """
    One sale inside an active session.

    final_total_cents = subtotal_cents - discount_cents. A comp is an order
    whose discount equals its subtotal (final total zero).

    discount_charged_to_program_id: null means the discount is absorbed by
    ASB; otherwise the program that pays for it.

    cogs_cents / cogs_reimbursable_cents are the FIFO cost of everything the
    order consumed, split by lot reimbursability. Practice orders carry zero.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_session_created", "session_id", "created_at"),
        db.CheckConstraint("discount_cents >= 0", name="ck_orders_discount_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("concession_sessions.id"), nullable=False, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    final_total_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False)
    amount_tendered_cents = db.Column(db.Integer, nullable=False)
    change_cents = db.Column(db.Integer, nullable=False, default=0)

    discount_charged_to_program_id = db.Column(db.Integer, db.ForeignKey("programs.id"), nullable=True)
    discount_reason = db.Column(db.String(255), nullable=True)
    is_comp = db.Column(db.Boolean, nullable=False, default=False)
    is_test = db.Column(db.Boolean, nullable=False, default=False)

    cogs_cents = db.Column(db.Integer, nullable=False, default=0)
    cogs_reimbursable_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "OrderLine",
        backref="order",
        order_by="OrderLine.id",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "final_total_cents": self.final_total_cents,
            "payment_method": self.payment_method,
            "amount_tendered_cents": self.amount_tendered_cents,
            "change_cents": self.change_cents,
            "discount_charged_to_program_id": self.discount_charged_to_program_id,
            "discount_reason": self.discount_reason,
            "is_comp": self.is_comp,
            "is_test": self.is_test,
            "cogs_cents": self.cogs_cents,
            "cogs_reimbursable_cents": self.cogs_reimbursable_cents,
            "created_at": to_utc_z(self.created_at),
            "lines": [line.to_dict() for line in self.lines],
        }


class OrderLine(db.Model):
    __tablename__ = "order_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    menu_item_id = db.Column(db.Integer, db.ForeignKey("menu_items.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    menu_item = db.relationship("MenuItem")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "menu_item_id": self.menu_item_id,
            "menu_item_name": self.menu_item.name if self.menu_item else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }
