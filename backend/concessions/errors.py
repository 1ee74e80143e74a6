"""
Typed errors raised by the ledger services.

Every failure the core can produce is one of these. Blueprints map them to
HTTP statuses through the handler registered in create_app():

- Validation (bad input, unknown ids)            -> 400 / 404
- State (operation not allowed in this state)    -> 409
- Consistency (stock, lot reversal)              -> 409

Services roll back the unit of work before any of these escapes, so a caller
that catches one can rely on nothing having been written.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class. Carries a human message plus structured details."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(LedgerError):
    """400-level input problem."""


class InvalidDiscountError(ValidationError):
    """Discount outside [0, subtotal], or a comp whose discount is not the subtotal."""


class NotFoundError(LedgerError):
    status_code = 404


class SessionStateError(LedgerError):
    """Operation is not valid for the session's current status."""

    status_code = 409


class InsufficientStockError(LedgerError):
    status_code = 409

    def __init__(
        self,
        menu_item_id: int,
        requested: int,
        available: int,
        *,
        item_name: str | None = None,
        composite_item_id: int | None = None,
    ):
        label = item_name or f"item {menu_item_id}"
        super().__init__(
            f"Insufficient stock for {label}: requested {requested}, available {available}",
            details={
                "menu_item_id": menu_item_id,
                "item_name": item_name,
                "requested": requested,
                "available": available,
                "composite_item_id": composite_item_id,
            },
        )
        self.menu_item_id = menu_item_id
        self.requested = requested
        self.available = available
        self.composite_item_id = composite_item_id

    def for_composite(self, composite_item_id: int) -> "InsufficientStockError":
        """Same shortage, attributed to the composite item being resolved."""
        return InsufficientStockError(
            self.menu_item_id,
            self.requested,
            self.available,
            item_name=self.details.get("item_name"),
            composite_item_id=composite_item_id,
        )


class CannotReverseConsumedLotError(LedgerError):
    status_code = 409

    def __init__(self, purchase_id: int, lots: list[dict]):
        super().__init__(
            f"Purchase {purchase_id} cannot be reversed: {len(lots)} lot(s) already consumed",
            details={"purchase_id": purchase_id, "lots": lots},
        )
        self.lots = lots


class LockTimeoutError(LedgerError):
    """Gave up waiting on a session or ledger lock held by another request."""

    status_code = 503
