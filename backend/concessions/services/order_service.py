# Overview: Order placement; the only path by which a sale reaches inventory and the ledgers.

"""
Order Processing

FLOW (one DB transaction, under the session lock then the ledger lock):
1. Session must be active (re-read under lock)
2. Lines resolved against the catalog; unit price defaults to the menu price
3. Subtotal, discount (0 <= discount <= subtotal; a comp discounts everything)
4. Final total, tender and change (cash only; other methods tender exactly)
5. Stock consumed FIFO per line (composites through their recipe)
6. Order stored with its COGS split; session running totals advanced;
   a discount charged to another program is debited from that program
7. Payment routed: cashapp -> CashApp account, zelle -> Zelle log and
   reimbursement ledger, cash -> stays in the drawer until close

Any failure (notably InsufficientStockError) rolls the whole order back.

PRACTICE SESSIONS: same validation, order stored with is_test, but no
inventory, CashApp, Zelle or program ledger effect.
"""

from __future__ import annotations

from ..errors import InvalidDiscountError, NotFoundError, SessionStateError, ValidationError
from ..extensions import db
from ..models import ConcessionSession, Order, OrderLine
from ..models.orders import PAYMENT_METHODS
from . import cashapp_service
from .catalog_service import get_menu_item, get_program
from .composite_service import consume_item
from .concurrency import ledger_lock, run_with_retry, session_lock
from .inventory_service import consumption_cost
from .program_ledger_service import post_transaction
from .session_service import locked_session

CHARGE_TO_SESSION_PROGRAM = "session"


def _parse_items(items: list[dict]) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise ValidationError("An order needs at least one item")

    parsed = []
    for index, entry in enumerate(items):
        item_id = entry.get("menu_item_id")
        quantity = entry.get("quantity")
        unit_price = entry.get("unit_price_cents")
        if isinstance(item_id, bool) or not isinstance(item_id, int):
            raise ValidationError(f"items[{index}].menu_item_id must be an integer")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be a positive integer", {"menu_item_id": item_id})
        if unit_price is not None and (isinstance(unit_price, bool) or not isinstance(unit_price, int) or unit_price < 0):
            raise ValidationError(f"items[{index}].unit_price_cents must be a non-negative integer")
        parsed.append({"menu_item_id": item_id, "quantity": quantity, "unit_price_cents": unit_price})
    return parsed


def _price_lines(parsed: list[dict]) -> list[dict]:
    lines = []
    for entry in parsed:
        item = get_menu_item(entry["menu_item_id"])
        if not item.is_active:
            raise ValidationError(f"{item.name} is not active", {"menu_item_id": item.id})
        price = entry["unit_price_cents"]
        if price is None:
            price = item.price_cents
        if price is None:
            raise ValidationError(f"{item.name} has no price and cannot be sold", {"menu_item_id": item.id})
        lines.append({
            "item": item,
            "quantity": entry["quantity"],
            "unit_price_cents": price,
            "line_total_cents": price * entry["quantity"],
        })
    return lines


def _resolve_discount(subtotal: int, discount_cents: int | None, is_comp: bool) -> int:
    if is_comp:
        if discount_cents is None:
            return subtotal
        if discount_cents != subtotal:
            raise InvalidDiscountError(
                "A comp must discount the full subtotal",
                {"subtotal_cents": subtotal, "discount_cents": discount_cents},
            )
        return discount_cents

    discount = discount_cents or 0
    if discount < 0 or discount > subtotal:
        raise InvalidDiscountError(
            "Discount must be between 0 and the subtotal",
            {"subtotal_cents": subtotal, "discount_cents": discount},
        )
    return discount


def _resolve_tender(payment_method: str, final_total: int, amount_tendered_cents: int | None) -> tuple[int, int]:
    if payment_method != "cash":
        return final_total, 0
    if amount_tendered_cents is None:
        if final_total == 0:
            return 0, 0
        raise ValidationError("amount_tendered_cents is required for cash orders")
    if amount_tendered_cents < final_total:
        raise ValidationError(
            "Amount tendered is less than the order total",
            {"final_total_cents": final_total, "amount_tendered_cents": amount_tendered_cents},
        )
    return amount_tendered_cents, amount_tendered_cents - final_total


def _resolve_charge_target(session: ConcessionSession, discount_charged_to) -> int | None:
    if discount_charged_to is None or discount_charged_to == "" or discount_charged_to == "asb":
        return None
    if discount_charged_to == CHARGE_TO_SESSION_PROGRAM:
        return session.program_id
    if isinstance(discount_charged_to, bool) or not isinstance(discount_charged_to, int):
        raise ValidationError("discount_charged_to must be null, 'session' or a program id")
    return get_program(discount_charged_to, require_active=True).id


def place_order(
    session_id: int,
    items: list[dict],
    payment_method: str,
    *,
    amount_tendered_cents: int | None = None,
    discount_cents: int | None = None,
    discount_charged_to=None,
    discount_reason: str | None = None,
    is_comp: bool = False,
) -> tuple[Order, int]:
    """
    Record a sale. Returns (order, change_cents).

    discount_charged_to: None (ASB absorbs it), "session" (the session's own
    program) or a program id. Only a program other than the session's gets a
    charge on its account; the session's own program already bears the
    discount through the drawer count.
    """
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(
            f"Unknown payment method {payment_method!r}", {"allowed": list(PAYMENT_METHODS)}
        )
    parsed = _parse_items(items)

    def _op():
        with session_lock(session_id), ledger_lock():
            session = locked_session(session_id)
            if session.status != "active":
                raise SessionStateError(
                    f"Orders can only be placed in an active session (session is {session.status})",
                    {"session_id": session_id, "status": session.status},
                )

            lines = _price_lines(parsed)
            subtotal = sum(line["line_total_cents"] for line in lines)
            discount = _resolve_discount(subtotal, discount_cents, is_comp)
            final_total = subtotal - discount
            tendered, change = _resolve_tender(payment_method, final_total, amount_tendered_cents)
            charged_to = _resolve_charge_target(session, discount_charged_to) if discount > 0 else None

            order = Order(
                session_id=session.id,
                subtotal_cents=subtotal,
                discount_cents=discount,
                final_total_cents=final_total,
                payment_method=payment_method,
                amount_tendered_cents=tendered,
                change_cents=change,
                discount_charged_to_program_id=charged_to,
                discount_reason=discount_reason,
                is_comp=bool(is_comp),
                is_test=session.is_test,
            )
            for line in lines:
                order.lines.append(OrderLine(
                    menu_item_id=line["item"].id,
                    quantity=line["quantity"],
                    unit_price_cents=line["unit_price_cents"],
                    line_total_cents=line["line_total_cents"],
                ))
            db.session.add(order)
            db.session.flush()

            session.sales_total_cents += final_total
            session.discount_total_cents += discount
            session.order_count += 1

            if session.is_test:
                db.session.commit()
                return order, change

            consumptions = []
            for line in lines:
                consumptions.extend(
                    consume_item(line["item"].id, line["quantity"], "sale", order_id=order.id, session_id=session.id)
                )
            order.cogs_cents, order.cogs_reimbursable_cents = consumption_cost(consumptions)

            if charged_to is not None and charged_to != session.program_id:
                post_transaction(
                    charged_to,
                    -discount,
                    "charge",
                    session_id=session.id,
                    order_id=order.id,
                    note=discount_reason or f"Discount on order #{order.id}",
                )

            if payment_method == "cashapp" and final_total > 0:
                cashapp_service.credit_sale(final_total, order_id=order.id, session_id=session.id)
            elif payment_method == "zelle" and final_total > 0:
                cashapp_service.record_zelle(final_total, order_id=order.id, session_id=session.id)

            db.session.commit()
            return order, change

    return run_with_retry(_op)


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError(f"Order {order_id} not found", {"order_id": order_id})
    return order


def list_orders(session_id: int) -> list[Order]:
    if db.session.get(ConcessionSession, session_id) is None:
        raise NotFoundError(f"Session {session_id} not found", {"session_id": session_id})
    return (
        db.session.query(Order)
        .filter(Order.session_id == session_id)
        .order_by(Order.created_at.asc(), Order.id.asc())
        .all()
    )
