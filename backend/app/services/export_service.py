# Overview: CSV exports for orders and opt-in contacts.

"""
CSV exports.

Output is UTF-8 text prefixed with a BOM so spreadsheet tools detect the
encoding. Quoting follows the csv module defaults: fields holding a comma,
quote or newline are quoted and embedded quotes are doubled.

Orders export in two shapes:
- "orders" (default): one row per order, items flattened into one column
  as "Name (Variant) xQty @$Unit" joined by " | ".
- "items": one row per order item.
"""

from __future__ import annotations

import csv
import io
from decimal import Decimal

from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import OrderInquiry, OrderItem
from ..time_utils import to_utc_z
from .order_service import round2

BOM = "\ufeff"
EXPORT_MODES = ("orders", "items")

ORDER_HEADERS = [
    "orderId",
    "createdAt",
    "status",
    "customer_name",
    "customer_email",
    "customer_phone",
    "company",
    "opt_in",
    "addr_line1",
    "addr_line2",
    "district",
    "city",
    "state",
    "postalCode",
    "country",
    "items_count",
    "items",
    "note",
    "total_snapshot",
]

ITEM_HEADERS = [
    "orderId",
    "createdAt",
    "status",
    "customer_name",
    "customer_email",
    "product",
    "variant",
    "quantity",
    "unit_price",
    "line_total",
]

CONTACT_HEADERS = ["Name", "Email", "Phone", "CreatedAt"]


def _write(headers: list[str], rows) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return BOM + buf.getvalue()


def _dollars(value: Decimal) -> str:
    return f"${round2(value):.2f}"


def _item_label(item: OrderItem) -> str:
    name = item.product.name if item.product is not None else item.product_id
    variant = item.variant_name or (item.variant.name if item.variant is not None else None)
    unit = Decimal(item.unit_price or 0)
    unit_txt = f"@{_dollars(unit)}" if unit else "@-"
    label = f"{name} ({variant})" if variant else name
    return f"{label} x{item.quantity} {unit_txt}"


def _orders_for_export() -> list[OrderInquiry]:
    return (
        db.session.query(OrderInquiry)
        .options(
            selectinload(OrderInquiry.customer),
            selectinload(OrderInquiry.address),
            selectinload(OrderInquiry.items).selectinload(OrderItem.product),
            selectinload(OrderInquiry.items).selectinload(OrderItem.variant),
        )
        .order_by(OrderInquiry.created_at.desc(), OrderInquiry.id.desc())
        .all()
    )


def _order_row(order: OrderInquiry) -> list:
    customer = order.customer
    address = order.address
    total = sum((Decimal(it.unit_price or 0) * it.quantity for it in order.items), Decimal("0"))
    return [
        order.id,
        to_utc_z(order.created_at) or "",
        order.status or "",
        order.customer_name or (customer.name if customer else ""),
        order.customer_email or (customer.email if customer else ""),
        order.customer_phone or (customer.phone if customer else "") or "",
        (customer.company if customer else "") or "",
        "yes" if customer is not None and customer.marketing_opt_in else "no",
        address.line1 if address else "",
        (address.line2 if address else "") or "",
        (address.district if address else "") or "",
        (address.city if address else "") or "",
        (address.state if address else "") or "",
        (address.postal_code if address else "") or "",
        (address.country if address else "") or "",
        len(order.items),
        " | ".join(_item_label(it) for it in order.items),
        order.note or "",
        _dollars(total) if total else "",
    ]


def _item_rows(order: OrderInquiry):
    for it in order.items:
        unit = Decimal(it.unit_price or 0)
        yield [
            order.id,
            to_utc_z(order.created_at) or "",
            order.status or "",
            order.customer_name or "",
            order.customer_email or "",
            it.product.name if it.product is not None else it.product_id,
            it.variant_name or "",
            it.quantity,
            f"{round2(unit):.2f}",
            f"{round2(unit * it.quantity):.2f}",
        ]


def export_orders_csv(mode: str = "orders") -> str:
    orders = _orders_for_export()
    if mode == "items":
        return _write(ITEM_HEADERS, (row for o in orders for row in _item_rows(o)))
    return _write(ORDER_HEADERS, (_order_row(o) for o in orders))


def export_contacts_csv(customers) -> str:
    return _write(
        CONTACT_HEADERS,
        ([c.name or "", c.email or "", c.phone or "", to_utc_z(c.created_at) or ""] for c in customers),
    )
