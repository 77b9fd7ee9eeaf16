# Overview: Best-effort transactional e-mail for new order inquiries (Resend HTTP API via httpx).

"""
Mailer

Two messages go out for every new order inquiry:
- operator notification to COMPANY_ORDERS_EMAIL (reply-to: the customer)
- confirmation to the customer (reply-to: COMPANY_ORDERS_EMAIL)

Nothing in here raises to the caller. Every send returns a result dict
({"ok": bool, ...}) and problems are logged as warnings. A missing
RESEND_API_KEY disables sending entirely.
"""

from __future__ import annotations

import html
import re
from decimal import Decimal, InvalidOperation

import httpx
from flask import current_app

from ..time_utils import email_stamp

DEFAULT_FROM = "Listo365 <onboarding@resend.dev>"
DEFAULT_API_URL = "https://api.resend.com/emails"

FONT = "font-family:Inter,system-ui,Segoe UI,Roboto,Helvetica,Arial,sans-serif;max-width:680px;margin:0 auto;"
CELL = "padding:6px 8px;border-bottom:1px solid #eee;font-size:13px;"
HEAD = "padding:8px 10px;border-bottom:1px solid #eee;font-size:12px;color:#444;"
BOX = "flex:1;min-width:280px;border:1px solid #eee;border-radius:10px;padding:10px;"
LABEL = "font-size:12px;color:#666;font-weight:600;margin-bottom:6px;"


def format_money(value) -> str:
    try:
        amount = Decimal(value if value is not None else 0)
    except (InvalidOperation, TypeError, ValueError):
        amount = Decimal("0")
    if not amount.is_finite():
        amount = Decimal("0")
    return f"${amount:,.2f}"


def esc(value) -> str:
    return html.escape("" if value is None else str(value), quote=False)


def to_plain_text(markup: str) -> str:
    """Crude html -> text fallback for clients that skip the html part."""
    text = re.sub(r"<br\s*/?>", "\n", markup, flags=re.IGNORECASE)
    text = re.sub(r"</p>", "\n\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    text = text.replace("&nbsp;", " ")
    return html.unescape(text).strip()


def build_email_order(order) -> dict:
    """Flatten an OrderInquiry into the plain dict the templates read."""
    customer = order.customer
    address = order.address
    return {
        "id": order.id,
        "created_at": order.created_at,
        "status": order.status,
        "customer": {
            "name": order.customer_name or (customer.name if customer else ""),
            "email": order.customer_email or (customer.email if customer else ""),
            "phone": order.customer_phone or (customer.phone if customer else None),
            "company": customer.company if customer else None,
        },
        "address": address.to_dict() if address else None,
        "note": order.note,
        "subtotal": order.subtotal,
        "total": order.total,
        "items": [
            {
                "product_id": it.product_id,
                "product_name": it.product.name if it.product is not None else None,
                "variant_name": it.variant_name,
                "quantity": it.quantity,
                "unit_price": it.unit_price,
            }
            for it in order.items
        ],
    }


def _address_html(address: dict | None) -> str:
    if not address:
        return '<p style="margin:4px 0 0 0;font-size:13px;color:#666;">-</p>'
    city_line = ", ".join(p for p in (address.get("city"), address.get("state"), address.get("postalCode")) if p)
    parts = [esc(address.get("line1"))]
    if address.get("line2"):
        parts.append(esc(address["line2"]))
    parts.append(esc(city_line))
    parts.append(esc(address.get("country") or "US"))
    return '<p style="margin:4px 0 0 0;font-size:13px;color:#444;">' + "<br/>".join(parts) + "</p>"


def _item_row(item: dict) -> str:
    name = esc(item.get("product_name") or item["product_id"])
    if item.get("variant_name"):
        name += f' <span style="color:#666;">({esc(item["variant_name"])})</span>'
    unit = Decimal(item.get("unit_price") or 0)
    line_total = unit * item["quantity"]
    return (
        "<tr>"
        f'<td style="{CELL}">{name}</td>'
        f'<td style="{CELL}text-align:center;">{item["quantity"]}</td>'
        f'<td style="{CELL}text-align:right;">{format_money(unit)}</td>'
        f'<td style="{CELL}text-align:right;">{format_money(line_total)}</td>'
        "</tr>"
    )


def render_order_html(o: dict) -> str:
    """Inline-styled order summary shared by both messages."""
    customer = o["customer"]
    contact = [f'<div style="font-size:13px;color:#111;">{esc(customer["name"])}</div>',
               f'<div style="font-size:13px;color:#444;">{esc(customer["email"])}</div>']
    for key in ("phone", "company"):
        if customer.get(key):
            contact.append(f'<div style="font-size:13px;color:#444;">{esc(customer[key])}</div>')

    note_block = ""
    if o.get("note"):
        note_block = (
            '<div style="border:1px solid #eee;border-radius:10px;padding:10px;margin-top:16px;">'
            f'<div style="{LABEL}">Customer note</div>'
            f'<div style="font-size:13px;color:#222;white-space:pre-wrap;">{esc(o["note"])}</div>'
            "</div>"
        )

    created = email_stamp(o["created_at"])
    items = "".join(_item_row(it) for it in o["items"])

    return (
        f'<div style="{FONT}">'
        f'<h2 style="margin:0 0 8px 0;color:#111;">New Quote Request - #{esc(o["id"])}</h2>'
        f'<div style="font-size:12px;color:#666;margin-bottom:16px;">{created}</div>'
        '<table cellpadding="0" cellspacing="0" style="width:100%;border-collapse:collapse;border:1px solid #eee;">'
        '<thead><tr style="background:#fafafa;">'
        f'<th style="text-align:left;{HEAD}">Item</th>'
        f'<th style="text-align:center;{HEAD}">Qty</th>'
        f'<th style="text-align:right;{HEAD}">Unit</th>'
        f'<th style="text-align:right;{HEAD}">Total</th>'
        "</tr></thead>"
        f"<tbody>{items}</tbody>"
        "<tfoot>"
        f'<tr><td colspan="3" style="padding:10px;text-align:right;font-size:13px;">Subtotal</td>'
        f'<td style="padding:10px;text-align:right;font-weight:600;">{format_money(o["subtotal"])}</td></tr>'
        f'<tr><td colspan="3" style="padding:10px;text-align:right;font-size:13px;">Total</td>'
        f'<td style="padding:10px;text-align:right;font-weight:700;">{format_money(o["total"])}</td></tr>'
        "</tfoot></table>"
        '<div style="display:flex;gap:16px;margin-top:16px;flex-wrap:wrap;">'
        f'<div style="{BOX}"><div style="{LABEL}">Customer</div>{"".join(contact)}</div>'
        f'<div style="{BOX}"><div style="{LABEL}">Address</div>{_address_html(o.get("address"))}</div>'
        "</div>"
        f"{note_block}"
        "</div>"
    )


def render_confirmation_html(o: dict, summary_html: str) -> str:
    return (
        f'<div style="{FONT}">'
        f'<p>Hello {esc(o["customer"]["name"])},</p>'
        "<p>Thanks! We've received your request. Our team will get back to you shortly.</p>"
        '<hr style="border:none;border-top:1px solid #eee;margin:16px 0;"/>'
        f"{summary_html}"
        "</div>"
    )


class ResendMailer:
    """
    Thin client for the Resend e-mail API.

    transport is passed through to httpx.Client (tests hand in an
    httpx.MockTransport).
    """

    def __init__(self, api_key: str | None, api_url: str = DEFAULT_API_URL, sender: str = DEFAULT_FROM,
                 timeout: float = 10.0, transport: httpx.BaseTransport | None = None):
        self.api_key = api_key or ""
        self.api_url = api_url or DEFAULT_API_URL
        self.sender = sender or DEFAULT_FROM
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_config(cls, config) -> "ResendMailer":
        return cls(
            api_key=config.get("RESEND_API_KEY"),
            api_url=config.get("RESEND_API_URL") or DEFAULT_API_URL,
            sender=config.get("EMAIL_FROM") or DEFAULT_FROM,
            timeout=float(config.get("MAIL_TIMEOUT_SECONDS") or 10),
        )

    def send(self, to, subject: str, html_body: str, reply_to: str | None = None) -> dict:
        if not self.api_key:
            current_app.logger.warning("RESEND_API_KEY missing; e-mail disabled")
            return {"ok": False, "reason": "NO_API_KEY"}

        body = {
            "from": self.sender,
            "to": list(to) if isinstance(to, (list, tuple)) else [to],
            "subject": subject,
            "html": html_body,
            "text": to_plain_text(html_body),
        }
        if reply_to:
            body["reply_to"] = reply_to

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(
                    self.api_url,
                    json=body,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
        except httpx.HTTPError as e:
            current_app.logger.warning("Resend request failed: %s", e)
            return {"ok": False, "reason": "REQUEST_FAILED", "error": str(e)}

        try:
            payload = resp.json()
        except ValueError:
            payload = resp.text

        if resp.is_error:
            current_app.logger.warning("Resend error %s: %s", resp.status_code, payload)
            return {"ok": False, "status": resp.status_code, "body": payload}

        current_app.logger.info("Resend accepted message to %s", ", ".join(body["to"]))
        return {"ok": True, "body": payload}


class OrderNotifier:
    """Sends the operator and customer e-mails for a new order inquiry."""

    def __init__(self, mailer: ResendMailer, company_email: str | None = None):
        self.mailer = mailer
        self.company_email = company_email or ""

    def send_new_order_emails(self, order) -> list[dict]:
        o = build_email_order(order)
        summary = render_order_html(o)
        customer_email = o["customer"]["email"] or None
        results = []

        if not self.company_email:
            current_app.logger.warning("COMPANY_ORDERS_EMAIL not set; skipping operator e-mail")
        else:
            results.append(
                self.mailer.send(self.company_email, f"New Quote - #{o['id']}", summary, reply_to=customer_email)
            )

        if customer_email:
            results.append(
                self.mailer.send(
                    customer_email,
                    f"We received your quote request - #{o['id']}",
                    render_confirmation_html(o, summary),
                    reply_to=self.company_email or None,
                )
            )
        return results


def init_app(app) -> None:
    app.extensions["order_notifier"] = OrderNotifier(
        ResendMailer.from_config(app.config),
        company_email=app.config.get("COMPANY_ORDERS_EMAIL"),
    )


def dispatch_new_order(order) -> None:
    """Fire the new-order e-mails after commit. Never raises."""
    notifier = current_app.extensions.get("order_notifier")
    if notifier is None:
        return
    try:
        notifier.send_new_order_emails(order)
    except Exception:
        current_app.logger.exception("Failed to send e-mails for order %s", order.id)
