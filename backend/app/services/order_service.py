# Overview: Service-layer operations for order inquiries; creation, status workflow, listing.

"""
Order inquiry (quote request) service.

Creation builds the customer / address / order / items graph in one
transaction. Status changes run through stock_effect(): moving into
COMPLETED consumes stock for every line, moving out of COMPLETED gives it
back, anything else leaves stock alone. Any status may move to any other.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Address, Customer, OrderInquiry, OrderItem, ORDER_STATUSES
from ..models.orders import STATUS_COMPLETED, STATUS_RECEIVED
from ..validation import (
    MISSING,
    ConflictError,
    OrderNotFound,
    ValidationError,
    to_decimal_or_zero,
)
from . import stock_service
from .auth_service import normalize_email
from .catalog_items import current_catalog
from .concurrency import lock_for_update, run_in_transaction

CURRENCY = "USD"
CENTS = Decimal("0.01")
# Numeric(12, 2) on order_inquiries.subtotal / total
MAX_ORDER_TOTAL = Decimal("9999999999.99")
CREATE_ATTEMPTS = 2


class StockEffect(Enum):
    NONE = 0
    DECREMENT = -1
    INCREMENT = 1


def stock_effect(prev: str, next_status: str) -> StockEffect:
    """Stock side effect of moving an order from prev to next_status."""
    if prev != STATUS_COMPLETED and next_status == STATUS_COMPLETED:
        return StockEffect.DECREMENT
    if prev == STATUS_COMPLETED and next_status != STATUS_COMPLETED:
        return StockEffect.INCREMENT
    return StockEffect.NONE


def round2(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def calc_totals(items) -> dict:
    """
    subtotal == total == round-half-up(sum(quantity * unit_price), 2).

    items: iterable of mappings with "quantity" and "unit_price". Malformed
    numbers count as 0. Never raises.
    """
    subtotal = Decimal("0")
    for it in items:
        quantity = to_decimal_or_zero(it.get("quantity"))
        unit_price = to_decimal_or_zero(it.get("unit_price"))
        subtotal += quantity * unit_price
    subtotal = round2(subtotal)
    return {"subtotal": subtotal, "total": subtotal}


@dataclass
class HydratedLine:
    product_id: str
    variant_id: str | None
    variant_name: str | None
    quantity: int
    unit_price: Decimal

    def get(self, key, default=None):
        return getattr(self, key, default)


def hydrate_prices(items: list[dict]) -> list[HydratedLine]:
    """
    Resolve every submitted line and fill in a missing unit_price from the
    variant (when the line names one) or the product. Promotions are not
    consulted.

    Raises ProductNotFound, VariantNotFound, or ConflictError when a variant
    belongs to a different product. Performs no writes.
    """
    catalog = current_catalog()
    lines = []
    for it in items:
        resolved = catalog.resolve(it["product_id"], it.get("variant_id"))
        unit_price = it.get("unit_price")
        if unit_price is None:
            unit_price = resolved.catalog_price
        lines.append(
            HydratedLine(
                product_id=resolved.product.id,
                variant_id=resolved.variant.id if resolved.variant is not None else None,
                variant_name=resolved.variant_name,
                quantity=int(it["quantity"]),
                unit_price=round2(Decimal(unit_price)),
            )
        )
    return lines


def _upsert_customer(data: dict) -> Customer:
    email = normalize_email(data["email"])
    customer = _find_customer(email)
    if customer is None:
        customer = Customer(email=email)
        db.session.add(customer)

    customer.name = data["name"]
    # Omitted optional fields keep whatever the customer already had
    if data.get("phone") is not None:
        customer.phone = data["phone"]
    if data.get("company") is not None:
        customer.company = data["company"]
    customer.marketing_opt_in = bool(data.get("marketing_opt_in", False))
    return customer


def _create_address(customer: Customer, data: dict) -> Address:
    address = Address(
        customer=customer,
        line1=data["line1"],
        line2=data.get("line2"),
        district=data.get("district"),
        city=data["city"],
        state=data.get("state"),
        postal_code=data.get("postal_code"),
        country=data.get("country") or "US",
    )
    db.session.add(address)
    return address


def _find_customer(email: str) -> Customer | None:
    return db.session.query(Customer).filter_by(email=email).first()


def _persist_order(customer, address, lines, totals, note, recurrence) -> OrderInquiry:
    cust = _upsert_customer(customer)
    addr = _create_address(cust, address) if address else None

    order = OrderInquiry(
        customer=cust,
        address=addr,
        status=STATUS_RECEIVED,
        note=note,
        admin_note=None,
        recurrence=recurrence,
        customer_name=cust.name,
        customer_email=cust.email,
        customer_phone=cust.phone,
        subtotal=totals["subtotal"],
        total=totals["total"],
        currency=CURRENCY,
    )
    for position, line in enumerate(lines):
        order.items.append(
            OrderItem(
                position=position,
                product_id=line.product_id,
                variant_id=line.variant_id,
                variant_name=line.variant_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
            )
        )
    db.session.add(order)
    db.session.commit()
    return order


def create_order(
    customer: dict,
    address: dict | None,
    items: list[dict],
    note: str | None = None,
    recurrence: str | None = None,
) -> OrderInquiry:
    """
    Create an order inquiry with status RECEIVED.

    customer: name, email, phone?, company?, marketing_opt_in?
    address: line1, city, line2?, district?, state?, postal_code?, country?
    items: product_id, quantity, unit_price?, variant_id?

    Price hydration runs before the transaction, so a bad product or
    variant id leaves no customer/address rows behind. Everything else
    commits or rolls back together.
    """
    if not items:
        raise ValidationError("Invalid payload", details=[{"field": "items", "message": "must contain at least 1 item(s)"}])

    lines = hydrate_prices(items)
    totals = calc_totals(lines)
    if totals["total"] > MAX_ORDER_TOTAL:
        raise ValidationError(
            "Invalid payload",
            details=[{"field": "items", "message": f"order total must be <= {MAX_ORDER_TOTAL}"}],
        )

    # A concurrent first order from the same email can win the customer
    # insert; the second pass then finds and reuses that row.
    for attempt in range(CREATE_ATTEMPTS):
        try:
            order = _persist_order(customer, address, lines, totals, note, recurrence)
            break
        except IntegrityError as exc:
            db.session.rollback()
            if attempt == CREATE_ATTEMPTS - 1:
                raise ConflictError("Order could not be saved, please retry") from exc
        except Exception:
            db.session.rollback()
            raise

    return get_order(order.id)


def get_order(order_id: str) -> OrderInquiry:
    order = (
        db.session.query(OrderInquiry)
        .options(
            selectinload(OrderInquiry.customer),
            selectinload(OrderInquiry.address),
            selectinload(OrderInquiry.items).selectinload(OrderItem.product),
        )
        .filter(OrderInquiry.id == order_id)
        .first()
    )
    if order is None:
        raise OrderNotFound(f"Order {order_id} not found")
    return order


def set_order_status(order_id: str, next_status: str) -> OrderInquiry:
    """
    Move an order to next_status, applying the stock side effect in the
    same transaction.

    The order row is locked (where the database supports it) and versioned,
    so a duplicate concurrent completion either waits or fails its version
    check and re-reads COMPLETED on retry instead of consuming stock twice.
    """
    if next_status not in ORDER_STATUSES:
        raise ValidationError(
            "Invalid status",
            details=[{"field": "status", "message": f"must be one of: {', '.join(ORDER_STATUSES)}"}],
        )

    catalog = current_catalog()

    def _op():
        order = (
            lock_for_update(
                db.session.query(OrderInquiry)
                .options(selectinload(OrderInquiry.items))
                .filter(OrderInquiry.id == order_id)
            )
            .populate_existing()
            .first()
        )
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found")

        effect = stock_effect(order.status, next_status)
        if effect is not StockEffect.NONE:
            stock_service.apply_stock_delta(catalog.stock_lines(order.items), effect.value)

        order.status = next_status
        return order

    return run_in_transaction(_op)


def update_order_notes(order_id: str, note=MISSING, admin_note=MISSING) -> OrderInquiry:
    """Only the keys that were supplied are written; None clears a note."""
    order = db.session.get(OrderInquiry, order_id)
    if order is None:
        raise OrderNotFound(f"Order {order_id} not found")

    if note is not MISSING:
        order.note = note
    if admin_note is not MISSING:
        order.admin_note = admin_note
    db.session.commit()
    return order


def delete_order(order_id: str) -> None:
    """
    Physically remove an order and its items.

    COMPLETED orders are refused: their stock consumption would otherwise
    be lost from the ledger. Move them to another status first.
    """
    order = db.session.get(OrderInquiry, order_id)
    if order is None:
        raise OrderNotFound(f"Order {order_id} not found")
    if order.status == STATUS_COMPLETED:
        raise ConflictError("Completed orders cannot be deleted; change the status first.")

    db.session.delete(order)
    db.session.commit()


def list_orders(
    q: str | None = None,
    status: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> dict:
    """
    Newest-first listing with offset pagination.

    q matches (case-insensitive substring) the order id and the customer
    name/email/phone snapshot.
    """
    query = db.session.query(OrderInquiry)
    if status:
        query = query.filter(OrderInquiry.status == status)
    term = (q or "").strip()
    if term:
        query = query.filter(
            or_(
                OrderInquiry.id.icontains(term, autoescape=True),
                OrderInquiry.customer_name.icontains(term, autoescape=True),
                OrderInquiry.customer_email.icontains(term, autoescape=True),
                OrderInquiry.customer_phone.icontains(term, autoescape=True),
            )
        )

    total = query.count()
    rows = (
        query.options(
            selectinload(OrderInquiry.customer),
            selectinload(OrderInquiry.items),
        )
        .order_by(OrderInquiry.created_at.desc(), OrderInquiry.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return {
        "total": total,
        "page": page,
        "pageSize": page_size,
        "rows": [o.to_summary() for o in rows],
    }
