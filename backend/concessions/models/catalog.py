from __future__ import annotations

from ..extensions import db
from concessions.time_utils import to_utc_z


class Program(db.Model):
    """
    Sponsoring program (club, team, class) that runs concession sessions.

    WHY: Programs are the ledger targets. Session profit is distributed to
    them, comps/discounts can be charged to them, losses can be settled
    against them.

    balance_cents is a running total kept in step with ProgramTransaction
    rows; it is only ever changed through program_ledger_service.
    """
    __tablename__ = "programs"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    balance_cents = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Program id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "balance_cents": self.balance_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class MenuItem(db.Model):
    """
    Catalog entry for the point of sale.

    A null price marks a category/container row (one level of sub-items via
    parent_id). Composite items have no lots of their own; selling one
    consumes its components instead.

    quantity_on_hand is NOT stored: it is SUM(quantity_remaining) over the
    item's lots (see inventory_service.get_quantity_on_hand).
    """
    __tablename__ = "menu_items"
    __table_args__ = (
        db.Index("ix_menu_items_parent_active", "parent_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    price_cents = db.Column(db.Integer, nullable=True)
    parent_id = db.Column(db.Integer, db.ForeignKey("menu_items.id"), nullable=True, index=True)

    is_supply = db.Column(db.Boolean, nullable=False, default=False)
    is_composite = db.Column(db.Boolean, nullable=False, default=False)
    track_inventory = db.Column(db.Boolean, nullable=False, default=True)

    # Latest received unit cost; reference only, FIFO costing uses lot costs
    unit_cost_cents = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    parent = db.relationship("MenuItem", remote_side=[id], backref=db.backref("sub_items", lazy=True))
    components = db.relationship(
        "MenuItemComponent",
        foreign_keys="MenuItemComponent.menu_item_id",
        order_by="MenuItemComponent.position",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<MenuItem id={self.id} name={self.name!r}>"

    @property
    def is_sellable(self) -> bool:
        return self.is_active and self.price_cents is not None

    def to_dict(self, quantity_on_hand: int | None = None) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "price_cents": self.price_cents,
            "parent_id": self.parent_id,
            "is_supply": self.is_supply,
            "is_composite": self.is_composite,
            "track_inventory": self.track_inventory,
            "unit_cost_cents": self.unit_cost_cents,
            "is_active": self.is_active,
            "components": [c.to_dict() for c in self.components] if self.is_composite else [],
            "created_at": to_utc_z(self.created_at),
        }
        if quantity_on_hand is not None:
            data["quantity_on_hand"] = quantity_on_hand
        return data


class MenuItemComponent(db.Model):
    """One (component, quantity-per-unit) entry of a composite item's recipe."""
    __tablename__ = "menu_item_components"
    __table_args__ = (
        db.UniqueConstraint("menu_item_id", "component_item_id", name="uq_menu_item_components_pair"),
        db.CheckConstraint("quantity > 0", name="ck_menu_item_components_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    menu_item_id = db.Column(db.Integer, db.ForeignKey("menu_items.id"), nullable=False, index=True)
    component_item_id = db.Column(db.Integer, db.ForeignKey("menu_items.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    position = db.Column(db.Integer, nullable=False, default=0)

    component = db.relationship("MenuItem", foreign_keys=[component_item_id])

    def to_dict(self) -> dict:
        return {
            "component_item_id": self.component_item_id,
            "component_name": self.component.name if self.component else None,
            "quantity": self.quantity,
            "position": self.position,
        }
