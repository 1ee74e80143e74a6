from __future__ import annotations

from ..extensions import db
from concessions.time_utils import to_utc_z, to_iso_date


class Purchase(db.Model):
    """
    Vendor receipt.

    Overhead (tax + delivery + other fees) is spread across the lines in
    proportion to line totals; CRV is added per unit on top. The resulting
    per-unit cost is what the receipt's lots carry.

    total_cents = subtotal + CRV + overhead.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_date", "purchase_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    vendor = db.Column(db.String(255), nullable=True)
    purchase_date = db.Column(db.Date, nullable=False)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    delivery_fee_cents = db.Column(db.Integer, nullable=False, default=0)
    other_fees_cents = db.Column(db.Integer, nullable=False, default=0)
    crv_total_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(128), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "PurchaseLine",
        backref="purchase",
        order_by="PurchaseLine.id",
        cascade="all, delete-orphan",
        lazy=True,
    )

    @property
    def overhead_cents(self) -> int:
        return self.tax_cents + self.delivery_fee_cents + self.other_fees_cents

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "vendor": self.vendor,
            "purchase_date": to_iso_date(self.purchase_date),
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "delivery_fee_cents": self.delivery_fee_cents,
            "other_fees_cents": self.other_fees_cents,
            "overhead_cents": self.overhead_cents,
            "crv_total_cents": self.crv_total_cents,
            "total_cents": self.total_cents,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "item_count": len(self.lines),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class PurchaseLine(db.Model):
    """
    One receipt line. menu_item_id is optional: unlinked (free-text) lines are
    kept for audit but never reach inventory.
    """
    __tablename__ = "purchase_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_purchase_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    menu_item_id = db.Column(db.Integer, db.ForeignKey("menu_items.id"), nullable=True, index=True)
    item_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)
    crv_per_unit_cents = db.Column(db.Integer, nullable=False, default=0)
    overhead_share_cents = db.Column(db.Integer, nullable=False, default=0)
    unit_cost_cents = db.Column(db.Integer, nullable=False)

    menu_item = db.relationship("MenuItem")

    @property
    def is_linked(self) -> bool:
        return self.menu_item_id is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "menu_item_id": self.menu_item_id,
            "menu_item_name": self.menu_item.name if self.menu_item else None,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "line_total_cents": self.line_total_cents,
            "crv_per_unit_cents": self.crv_per_unit_cents,
            "overhead_share_cents": self.overhead_share_cents,
            "unit_cost_cents": self.unit_cost_cents,
        }


class PurchaseTemplate(db.Model):
    """Saved shopping list; its lines pre-fill a new receipt."""
    __tablename__ = "purchase_templates"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    vendor = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    lines = db.relationship(
        "PurchaseTemplateLine",
        backref="template",
        order_by="PurchaseTemplateLine.id",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "vendor": self.vendor,
            "item_count": len(self.lines),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class PurchaseTemplateLine(db.Model):
    __tablename__ = "purchase_template_lines"
    __table_args__ = (
        db.CheckConstraint("default_quantity > 0", name="ck_purchase_template_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    template_id = db.Column(db.Integer, db.ForeignKey("purchase_templates.id"), nullable=False, index=True)
    menu_item_id = db.Column(db.Integer, db.ForeignKey("menu_items.id"), nullable=True)
    item_name = db.Column(db.String(255), nullable=False)
    default_quantity = db.Column(db.Integer, nullable=False, default=1)

    menu_item = db.relationship("MenuItem")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "template_id": self.template_id,
            "menu_item_id": self.menu_item_id,
            "menu_item_name": self.menu_item.name if self.menu_item else None,
            "item_name": self.item_name,
            "default_quantity": self.default_quantity,
        }
