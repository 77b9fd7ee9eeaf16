# Overview: Flask API routes for customers (admin only).

from flask import Blueprint, Response, request

from ..decorators import require_admin
from ..services import customers_service, export_service
from ..validation import read_pagination

customers_bp = Blueprint("customers", __name__, url_prefix="/customers")


@customers_bp.get("")
@require_admin
def list_customers_route():
    page, page_size = read_pagination(request.args)
    return customers_service.list_customers(q=request.args.get("q"), page=page, page_size=page_size)


@customers_bp.get("/export/csv")
@require_admin
def export_contacts_route():
    """Marketing opt-in contacts."""
    csv_text = export_service.export_contacts_csv(customers_service.list_opt_in_contacts())
    return Response(
        csv_text,
        mimetype="text/csv",
        headers={"Content-Disposition": 'attachment; filename="contacts-optin.csv"'},
    )


@customers_bp.get("/<customer_id>")
@require_admin
def get_customer_route(customer_id: str):
    return customers_service.get_customer_detail(customer_id)
