# Overview: Flask API routes for order inquiries; parses input and returns JSON responses.

# backend/app/routes/orders.py
"""
Order inquiry (quote request) routes.

POST /orders is public: the storefront submits quote requests without an
account. Everything else is admin-only.

E-mail goes out after the order is committed. A mail failure is logged
and never changes the 201.
"""

from flask import Blueprint, Response, request

from ..decorators import require_admin
from ..models import ORDER_STATUSES
from ..services import export_service, mailer_service, order_service
from ..validation import PayloadValidator, ValidationError, read_pagination

orders_bp = Blueprint("orders", __name__, url_prefix="/orders")

MAX_QUANTITY = 100_000


def _read_customer(v: PayloadValidator) -> dict:
    cv = v.nested("customer", required=True)
    if cv is None:
        return {}
    return {
        "name": cv.string("name", required=True, min_len=2, max_len=255),
        "email": cv.email("email", required=True),
        "phone": cv.string("phone", max_len=64, default=None),
        "company": cv.string("company", max_len=255, default=None),
        "marketing_opt_in": cv.boolean("marketingOptIn", default=False) or False,
    }


def _read_address(v: PayloadValidator) -> dict | None:
    av = v.nested("address")
    if av is None:
        return None
    return {
        "line1": av.string("line1", required=True, min_len=2, max_len=255),
        "line2": av.string("line2", max_len=255, default=None),
        "district": av.string("district", max_len=120, default=None),
        "city": av.string("city", required=True, min_len=1, max_len=120),
        "state": av.string("state", max_len=120, default=None),
        "postal_code": av.string("postalCode", max_len=32, default=None),
        "country": av.string("country", max_len=64, default="US") or "US",
    }


def _read_items(v: PayloadValidator) -> list[dict]:
    entries = v.objects("items", required=True, min_items=1) or []
    return [
        {
            "product_id": iv.string("productId", required=True, min_len=1),
            "variant_id": iv.string("variantId", min_len=1, default=None),
            "quantity": iv.integer("quantity", required=True, minimum=1, maximum=MAX_QUANTITY),
            "unit_price": iv.decimal("unitPrice", default=None),
        }
        for iv in entries
    ]


@orders_bp.post("")
def create_order_route():
    """
    Body: {customer: {name, email, phone?, company?, marketingOptIn?},
           address?: {line1, city, line2?, district?, state?, postalCode?, country?},
           items: [{productId, quantity, unitPrice?, variantId?}], note?, recurrence?}
    """
    v = PayloadValidator(request.get_json(silent=True))
    customer = _read_customer(v)
    address = _read_address(v)
    items = _read_items(v)
    note = v.string("note", max_len=1000, default=None)
    recurrence = v.string("recurrence", max_len=64, default=None)
    v.check()

    order = order_service.create_order(customer, address, items, note=note, recurrence=recurrence)
    mailer_service.dispatch_new_order(order)
    return order.to_dict(), 201


@orders_bp.get("")
@require_admin
def list_orders_route():
    status = request.args.get("status") or None
    if status is not None and status not in ORDER_STATUSES:
        raise ValidationError(
            "Invalid query",
            details=[{"field": "status", "message": f"must be one of: {', '.join(ORDER_STATUSES)}"}],
        )
    page, page_size = read_pagination(request.args)
    return order_service.list_orders(q=request.args.get("q"), status=status, page=page, page_size=page_size)


@orders_bp.get("/export/csv")
@require_admin
def export_orders_csv_route():
    """?mode=items for one row per order item; one row per order otherwise."""
    mode = request.args.get("mode", "orders")
    if mode not in export_service.EXPORT_MODES:
        mode = "orders"
    filename = "order-items.csv" if mode == "items" else "orders.csv"
    return Response(
        export_service.export_orders_csv(mode),
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@orders_bp.get("/<order_id>")
@require_admin
def get_order_route(order_id: str):
    return order_service.get_order(order_id).to_dict()


@orders_bp.patch("/<order_id>/status")
@require_admin
def set_status_route(order_id: str):
    v = PayloadValidator(request.get_json(silent=True))
    status = v.choice("status", ORDER_STATUSES, required=True)
    v.check()
    order = order_service.set_order_status(order_id, status)
    return {"ok": True, "status": order.status}


@orders_bp.patch("/<order_id>/note")
@require_admin
def update_note_route(order_id: str):
    """Only keys present in the body are written; null clears."""
    v = PayloadValidator(request.get_json(silent=True))
    note = v.string("note", max_len=2000)
    admin_note = v.string("adminNote", max_len=4000)
    v.check()
    order_service.update_order_notes(order_id, note=note, admin_note=admin_note)
    return {"ok": True}


@orders_bp.delete("/<order_id>")
@require_admin
def delete_order_route(order_id: str):
    order_service.delete_order(order_id)
    return {"ok": True, "deleted": True}
