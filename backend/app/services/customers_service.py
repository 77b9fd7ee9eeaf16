# Overview: Service-layer operations for customers; admin listing, detail, opt-in contacts.

from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Customer, OrderInquiry, OrderItem
from ..models.common import money
from ..time_utils import to_utc_z
from ..validation import CustomerNotFound

RECENT_ORDERS_LIMIT = 20


def list_customers(q: str | None = None, page: int = 1, page_size: int = 20) -> dict:
    """Newest-first customers with their addresses; q matches name, email or phone."""
    query = db.session.query(Customer)
    term = (q or "").strip()
    if term:
        query = query.filter(
            or_(
                Customer.name.icontains(term, autoescape=True),
                Customer.email.icontains(term, autoescape=True),
                Customer.phone.icontains(term, autoescape=True),
            )
        )

    total = query.count()
    rows = (
        query.options(selectinload(Customer.addresses))
        .order_by(Customer.created_at.desc(), Customer.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return {
        "total": total,
        "page": page,
        "pageSize": page_size,
        "rows": [c.to_dict(include_addresses=True) for c in rows],
    }


def get_customer_detail(customer_id: str) -> dict:
    """Customer, addresses and the last 20 orders (items with product refs)."""
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise CustomerNotFound(f"Customer {customer_id} not found")

    orders = (
        customer.orders.options(
            selectinload(OrderInquiry.address),
            selectinload(OrderInquiry.items).selectinload(OrderItem.product),
        )
        .limit(RECENT_ORDERS_LIMIT)
        .all()
    )
    data = customer.to_dict(include_addresses=True)
    data["orders"] = [
        {
            "id": o.id,
            "status": o.status,
            "total": money(o.total),
            "createdAt": to_utc_z(o.created_at),
            "address": o.address.to_dict() if o.address else None,
            "items": [it.to_dict() for it in o.items],
        }
        for o in orders
    ]
    return data


def list_opt_in_contacts() -> list[Customer]:
    return (
        db.session.query(Customer)
        .filter(Customer.marketing_opt_in.is_(True))
        .order_by(Customer.created_at.desc())
        .all()
    )
