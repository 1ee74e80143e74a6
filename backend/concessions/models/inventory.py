from __future__ import annotations

from ..extensions import db
from concessions.time_utils import to_utc_z, to_iso_date


LOT_SOURCES = ("purchase", "stock_update", "count_adjustment")
CONSUMPTION_KINDS = ("sale", "lost", "wasted", "donated", "count_adjustment")


class InventoryLot(db.Model):
    """
    A batch of one item received at a single cost and date.

    FIFO: lots are consumed oldest first, ordered by (purchase_date, id).

    INVARIANT: 0 <= quantity_remaining <= quantity_original, enforced by a
    check constraint as well as by the service layer. The item's on-hand
    quantity is the sum of quantity_remaining over its lots.

    is_reimbursable: True when the lot is backed by a recorded purchase
    receipt (eligible for club reimbursement); False for manual stock,
    donations and count corrections.
    """
    __tablename__ = "inventory_lots"
    __table_args__ = (
        db.Index("ix_inventory_lots_item_fifo", "menu_item_id", "purchase_date", "id"),
        db.CheckConstraint(
            "quantity_remaining >= 0 AND quantity_remaining <= quantity_original",
            name="ck_inventory_lots_remaining_bounds",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    menu_item_id = db.Column(db.Integer, db.ForeignKey("menu_items.id"), nullable=False, index=True)
    purchase_line_id = db.Column(db.Integer, db.ForeignKey("purchase_lines.id"), nullable=True, index=True)

    source = db.Column(db.String(32), nullable=False, default="purchase")
    purchase_date = db.Column(db.Date, nullable=False)

    quantity_original = db.Column(db.Integer, nullable=False)
    quantity_remaining = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    is_reimbursable = db.Column(db.Boolean, nullable=False, default=True)
    vendor = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    menu_item = db.relationship("MenuItem", backref=db.backref("lots", lazy=True))

    @property
    def quantity_consumed(self) -> int:
        return self.quantity_original - self.quantity_remaining

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "menu_item_id": self.menu_item_id,
            "purchase_line_id": self.purchase_line_id,
            "source": self.source,
            "purchase_date": to_iso_date(self.purchase_date),
            "quantity_original": self.quantity_original,
            "quantity_remaining": self.quantity_remaining,
            "unit_cost_cents": self.unit_cost_cents,
            "is_reimbursable": self.is_reimbursable,
            "vendor": self.vendor,
            "created_at": to_utc_z(self.created_at),
        }


class LotConsumption(db.Model):
    """
    Quantity taken from one lot by one Consume call.

    WHY: The per-lot breakdown is what makes FIFO COGS exact and lets the
    reimbursement tracker split cost into reimbursable vs non-reimbursable.
    Rows are deleted only when a consumption is released (composite rollback).
    """
    __tablename__ = "lot_consumptions"
    __table_args__ = (
        db.Index("ix_lot_consumptions_session_kind", "session_id", "kind"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    lot_id = db.Column(db.Integer, db.ForeignKey("inventory_lots.id"), nullable=False, index=True)
    menu_item_id = db.Column(db.Integer, db.ForeignKey("menu_items.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)
    is_reimbursable = db.Column(db.Boolean, nullable=False)

    kind = db.Column(db.String(32), nullable=False, default="sale", index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)
    session_id = db.Column(db.Integer, db.ForeignKey("concession_sessions.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lot = db.relationship("InventoryLot", backref=db.backref("consumptions", lazy=True))

    @property
    def cost_cents(self) -> int:
        return self.quantity * self.unit_cost_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "lot_id": self.lot_id,
            "menu_item_id": self.menu_item_id,
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
            "cost_cents": self.cost_cents,
            "is_reimbursable": self.is_reimbursable,
            "kind": self.kind,
            "order_id": self.order_id,
            "session_id": self.session_id,
        }


class InventoryTransaction(db.Model):
    """Append-only audit log of every quantity movement on an item."""
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        db.Index("ix_invtx_item_occurred", "menu_item_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    menu_item_id = db.Column(db.Integer, db.ForeignKey("menu_items.id"), nullable=False, index=True)

    type = db.Column(db.String(32), nullable=False, index=True)
    quantity_delta = db.Column(db.Integer, nullable=False)

    # Average cost of the units moved (receives: the lot cost)
    unit_cost_cents = db.Column(db.Integer, nullable=True)
    is_reimbursable = db.Column(db.Boolean, nullable=True)

    purchase_id = db.Column(db.Integer, nullable=True, index=True)
    order_id = db.Column(db.Integer, nullable=True, index=True)
    session_id = db.Column(db.Integer, nullable=True)
    lot_id = db.Column(db.Integer, nullable=True)

    note = db.Column(db.String(255), nullable=True)
    created_by = db.Column(db.String(128), nullable=True)

    occurred_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )

    menu_item = db.relationship("MenuItem")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "menu_item_id": self.menu_item_id,
            "menu_item_name": self.menu_item.name if self.menu_item else None,
            "type": self.type,
            "quantity_delta": self.quantity_delta,
            "unit_cost_cents": self.unit_cost_cents,
            "is_reimbursable": self.is_reimbursable,
            "purchase_id": self.purchase_id,
            "order_id": self.order_id,
            "session_id": self.session_id,
            "lot_id": self.lot_id,
            "note": self.note,
            "created_by": self.created_by,
            "occurred_at": to_utc_z(self.occurred_at),
        }


COUNT_STAGES = ("adhoc", "start", "end")


class InventoryCount(db.Model):
    """
    One physical count of one item.

    stage is "start" or "end" when the count was part of a session's stock
    check, "adhoc" otherwise. delta = actual - expected; a negative delta is
    booked as a Loss (loss_id) valued at the FIFO cost it drained.
    """
    __tablename__ = "inventory_counts"
    __table_args__ = (
        db.Index("ix_inventory_counts_session_stage", "session_id", "stage"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    menu_item_id = db.Column(db.Integer, db.ForeignKey("menu_items.id"), nullable=False, index=True)
    session_id = db.Column(db.Integer, db.ForeignKey("concession_sessions.id"), nullable=True, index=True)
    stage = db.Column(db.String(16), nullable=False, default="adhoc")

    expected_quantity = db.Column(db.Integer, nullable=False)
    actual_quantity = db.Column(db.Integer, nullable=False)
    delta = db.Column(db.Integer, nullable=False)

    loss_id = db.Column(db.Integer, db.ForeignKey("losses.id"), nullable=True)
    loss_cents = db.Column(db.Integer, nullable=False, default=0)

    counted_by = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    menu_item = db.relationship("MenuItem")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "menu_item_id": self.menu_item_id,
            "menu_item_name": self.menu_item.name if self.menu_item else None,
            "session_id": self.session_id,
            "stage": self.stage,
            "expected_quantity": self.expected_quantity,
            "actual_quantity": self.actual_quantity,
            "delta": self.delta,
            "loss_id": self.loss_id,
            "loss_cents": self.loss_cents,
            "counted_by": self.counted_by,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
