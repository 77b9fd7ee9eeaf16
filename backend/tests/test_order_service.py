"""
Order inquiry service: price hydration, aggregate creation, status
transitions with their stock side effect, notes, deletion and listing.
"""

from decimal import Decimal

import pytest

from app.extensions import db
from app.models import Address, Customer, OrderInquiry, OrderItem, Product, ProductVariant
from app.services import order_service
from app.services.order_service import StockEffect, stock_effect
from app.validation import ConflictError, OrderNotFound, ProductNotFound, ValidationError, VariantNotFound


CUSTOMER = {"name": "Jane Doe", "email": "Jane@X.com", "phone": "555-0100"}


def _stock(model, row_id):
    db.session.expire_all()
    return db.session.get(model, row_id).stock


def _counts():
    return (
        db.session.query(Customer).count(),
        db.session.query(Address).count(),
        db.session.query(OrderInquiry).count(),
        db.session.query(OrderItem).count(),
    )


class TestStockEffect:

    @pytest.mark.parametrize(
        "prev,next_status,expected",
        [
            ("RECEIVED", "COMPLETED", StockEffect.DECREMENT),
            ("IN_PROGRESS", "COMPLETED", StockEffect.DECREMENT),
            ("COMPLETED", "CANCELLED", StockEffect.INCREMENT),
            ("COMPLETED", "RECEIVED", StockEffect.INCREMENT),
            ("COMPLETED", "COMPLETED", StockEffect.NONE),
            ("RECEIVED", "IN_PROGRESS", StockEffect.NONE),
            ("REFUSED", "CANCELLED", StockEffect.NONE),
        ],
    )
    def test_effect_table(self, prev, next_status, expected):
        assert stock_effect(prev, next_status) is expected


class TestHydratePrices:

    def test_missing_unit_price_uses_product_price(self, db_session, make_product):
        product = make_product(price="12.50")
        lines = order_service.hydrate_prices([{"product_id": product.id, "quantity": 2}])
        assert lines[0].unit_price == Decimal("12.50")
        assert lines[0].variant_id is None

    def test_missing_unit_price_uses_variant_price(self, db_session, make_product, make_variant):
        product = make_product(price="12.50")
        variant = make_variant(product, name="20 L", price="40.00")
        lines = order_service.hydrate_prices(
            [{"product_id": product.id, "variant_id": variant.id, "quantity": 1}]
        )
        assert lines[0].unit_price == Decimal("40.00")
        assert lines[0].variant_name == "20 L"

    def test_submitted_price_is_kept(self, db_session, make_product):
        product = make_product(price="12.50")
        lines = order_service.hydrate_prices(
            [{"product_id": product.id, "quantity": 1, "unit_price": Decimal("9.99")}]
        )
        assert lines[0].unit_price == Decimal("9.99")

    def test_promotions_are_not_applied(self, db_session, make_product):
        from datetime import timedelta
        from app.models import Promotion
        from app.time_utils import utcnow

        product = make_product(price="40.00")
        db_session.add(Promotion(
            product_id=product.id, title="Half", percent_off=50,
            starts_at=utcnow() - timedelta(days=1), ends_at=utcnow() + timedelta(days=1),
        ))
        db_session.commit()

        lines = order_service.hydrate_prices([{"product_id": product.id, "quantity": 1}])
        assert lines[0].unit_price == Decimal("40.00")

    def test_variant_of_other_product_conflicts(self, db_session, make_product, make_variant):
        product = make_product()
        other = make_product()
        variant = make_variant(other)
        with pytest.raises(ConflictError):
            order_service.hydrate_prices(
                [{"product_id": product.id, "variant_id": variant.id, "quantity": 1}]
            )

    def test_variant_ignored_when_variants_disabled(self, app, db_session, make_product, monkeypatch):
        monkeypatch.setitem(app.config, "FEATURE_VARIANTS", False)
        product = make_product(price="7.00")
        lines = order_service.hydrate_prices(
            [{"product_id": product.id, "variant_id": "nope", "quantity": 1}]
        )
        assert lines[0].variant_id is None
        assert lines[0].unit_price == Decimal("7.00")


class TestCreateOrder:

    def test_creates_aggregate(self, db_session, make_product):
        product = make_product(price="12.99")
        order = order_service.create_order(
            CUSTOMER,
            {"line1": "1 Main St", "city": "Austin", "state": "TX", "postal_code": "78701"},
            [{"product_id": product.id, "quantity": 3}],
            note="Call first",
        )

        assert order.status == "RECEIVED"
        assert order.subtotal == Decimal("38.97")
        assert order.total == Decimal("38.97")
        assert order.currency == "USD"
        assert order.customer_email == "jane@x.com"
        assert order.customer_name == "Jane Doe"
        assert order.address.country == "US"
        assert [it.quantity for it in order.items] == [3]
        assert order.items[0].unit_price == Decimal("12.99")

    def test_customer_is_upserted_by_email(self, db_session, make_product):
        product = make_product()
        item = [{"product_id": product.id, "quantity": 1}]
        order_service.create_order(CUSTOMER, None, item)
        order_service.create_order(
            {"name": "Jane D.", "email": "jane@x.com", "company": "ACME", "marketing_opt_in": True}, None, item
        )

        customers = db_session.query(Customer).all()
        assert len(customers) == 1
        assert customers[0].name == "Jane D."
        assert customers[0].company == "ACME"
        assert customers[0].phone == "555-0100"
        assert customers[0].marketing_opt_in is True
        assert db_session.query(OrderInquiry).count() == 2

    def test_snapshot_does_not_follow_customer_edits(self, db_session, make_product):
        product = make_product()
        order = order_service.create_order(CUSTOMER, None, [{"product_id": product.id, "quantity": 1}])
        order.customer.name = "Someone Else"
        db_session.commit()
        assert order_service.get_order(order.id).customer_name == "Jane Doe"

    def test_unknown_variant_leaves_no_rows(self, db_session, make_product):
        product = make_product()
        with pytest.raises(VariantNotFound):
            order_service.create_order(
                CUSTOMER,
                {"line1": "1 Main St", "city": "Austin"},
                [{"product_id": product.id, "variant_id": "missing", "quantity": 1}],
            )
        assert _counts() == (0, 0, 0, 0)

    def test_unknown_product_leaves_no_rows(self, db_session):
        with pytest.raises(ProductNotFound):
            order_service.create_order(CUSTOMER, None, [{"product_id": "missing", "quantity": 1}])
        assert _counts() == (0, 0, 0, 0)

    def test_empty_items_rejected(self, db_session):
        with pytest.raises(ValidationError):
            order_service.create_order(CUSTOMER, None, [])

    def test_variant_name_snapshot(self, db_session, make_product, make_variant):
        product = make_product()
        variant = make_variant(product, name="1 Gal", price="15.00")
        order = order_service.create_order(
            CUSTOMER, None, [{"product_id": product.id, "variant_id": variant.id, "quantity": 2}]
        )
        variant.name = "Renamed"
        db_session.commit()
        item = order_service.get_order(order.id).items[0]
        assert item.variant_name == "1 Gal"
        assert order.total == Decimal("30.00")

    def test_total_overflow_rejected_before_writes(self, db_session, make_product):
        product = make_product()
        with pytest.raises(ValidationError) as exc:
            order_service.create_order(
                CUSTOMER, None, [{"product_id": product.id, "quantity": 2, "unit_price": Decimal("9999999999.99")}]
            )
        assert exc.value.details[0]["field"] == "items"
        assert _counts() == (0, 0, 0, 0)


# =============================================================================
# CUSTOMER INSERT RACE (same email, first order)
# =============================================================================

class TestCustomerInsertRace:

    def _customer_committed_elsewhere(self, db_session):
        db_session.add(Customer(email="jane@x.com", name="Jane (first tab)"))
        db_session.commit()

    def test_lost_customer_insert_is_retried(self, db_session, make_product, monkeypatch):
        product = make_product()
        self._customer_committed_elsewhere(db_session)
        real_find = order_service._find_customer
        calls = []

        def stale_then_real(email):
            calls.append(email)
            return None if len(calls) == 1 else real_find(email)

        monkeypatch.setattr(order_service, "_find_customer", stale_then_real)
        order = order_service.create_order(CUSTOMER, None, [{"product_id": product.id, "quantity": 1}])

        assert len(calls) == 2
        assert db_session.query(Customer).count() == 1
        assert order.customer.name == "Jane Doe"
        assert db_session.query(OrderInquiry).count() == 1

    def test_repeated_customer_collision_is_conflict(self, db_session, make_product, monkeypatch):
        product = make_product()
        self._customer_committed_elsewhere(db_session)
        monkeypatch.setattr(order_service, "_find_customer", lambda email: None)

        with pytest.raises(ConflictError):
            order_service.create_order(
                CUSTOMER, {"line1": "1 Main St", "city": "Austin"}, [{"product_id": product.id, "quantity": 1}]
            )
        assert _counts() == (1, 0, 0, 0)

    def test_customer_collision_over_http_is_409(self, client, db_session, make_product, notifier, monkeypatch):
        product = make_product()
        self._customer_committed_elsewhere(db_session)
        monkeypatch.setattr(order_service, "_find_customer", lambda email: None)

        resp = client.post("/orders", json={
            "customer": {"name": "Jane", "email": "jane@x.com"},
            "items": [{"productId": product.id, "quantity": 1}],
        })
        assert resp.status_code == 409
        assert resp.json["error"] == "conflict"
        assert notifier.orders == []


class TestSetOrderStatus:

    def _order(self, make_product, quantity=4, stock=10):
        product = make_product(stock=stock)
        order = order_service.create_order(CUSTOMER, None, [{"product_id": product.id, "quantity": quantity}])
        return product, order

    def test_stock_round_trip(self, db_session, make_product):
        product, order = self._order(make_product)

        order_service.set_order_status(order.id, "COMPLETED")
        assert _stock(Product, product.id) == 6

        order_service.set_order_status(order.id, "CANCELLED")
        assert _stock(Product, product.id) == 10

    def test_completing_twice_applies_once(self, db_session, make_product):
        product, order = self._order(make_product)
        order_service.set_order_status(order.id, "COMPLETED")
        order_service.set_order_status(order.id, "COMPLETED")
        assert _stock(Product, product.id) == 6

    def test_non_completed_transitions_leave_stock(self, db_session, make_product):
        product, order = self._order(make_product)
        for status in ("IN_PROGRESS", "REFUSED", "RECEIVED", "CANCELLED"):
            order_service.set_order_status(order.id, status)
        assert _stock(Product, product.id) == 10

    def test_any_to_any_transition_allowed(self, db_session, make_product):
        _product, order = self._order(make_product)
        assert order_service.set_order_status(order.id, "CANCELLED").status == "CANCELLED"
        assert order_service.set_order_status(order.id, "COMPLETED").status == "COMPLETED"

    def test_variant_stock_moves_with_product(self, db_session, make_product, make_variant):
        product = make_product(stock=10)
        variant = make_variant(product, stock=8)
        order = order_service.create_order(
            CUSTOMER, None, [{"product_id": product.id, "variant_id": variant.id, "quantity": 3}]
        )
        order_service.set_order_status(order.id, "COMPLETED")
        assert _stock(Product, product.id) == 7
        assert _stock(ProductVariant, variant.id) == 5

        order_service.set_order_status(order.id, "RECEIVED")
        assert _stock(Product, product.id) == 10
        assert _stock(ProductVariant, variant.id) == 8

    def test_stock_may_go_negative(self, db_session, make_product):
        product, order = self._order(make_product, quantity=5, stock=2)
        order_service.set_order_status(order.id, "COMPLETED")
        assert _stock(Product, product.id) == -3

    def test_invalid_status(self, db_session, make_product):
        _product, order = self._order(make_product)
        with pytest.raises(ValidationError):
            order_service.set_order_status(order.id, "SHIPPED")

    def test_unknown_order(self, db_session):
        with pytest.raises(OrderNotFound):
            order_service.set_order_status("missing", "COMPLETED")

    def test_bumps_version(self, db_session, make_product):
        _product, order = self._order(make_product)
        before = order.version_id
        order_service.set_order_status(order.id, "IN_PROGRESS")
        db_session.expire_all()
        assert db_session.get(OrderInquiry, order.id).version_id == before + 1


class TestNotesAndDelete:

    def test_only_supplied_notes_are_written(self, db_session, make_product):
        product = make_product()
        order = order_service.create_order(CUSTOMER, None, [{"product_id": product.id, "quantity": 1}], note="n1")

        order_service.update_order_notes(order.id, admin_note="internal")
        db_session.expire_all()
        stored = db_session.get(OrderInquiry, order.id)
        assert stored.note == "n1"
        assert stored.admin_note == "internal"

        order_service.update_order_notes(order.id, note=None)
        db_session.expire_all()
        stored = db_session.get(OrderInquiry, order.id)
        assert stored.note is None
        assert stored.admin_note == "internal"

    def test_delete_removes_items(self, db_session, make_product):
        product = make_product()
        order = order_service.create_order(CUSTOMER, None, [{"product_id": product.id, "quantity": 1}])
        order_service.delete_order(order.id)
        assert db_session.query(OrderInquiry).count() == 0
        assert db_session.query(OrderItem).count() == 0

    def test_completed_order_cannot_be_deleted(self, db_session, make_product):
        product = make_product()
        order = order_service.create_order(CUSTOMER, None, [{"product_id": product.id, "quantity": 1}])
        order_service.set_order_status(order.id, "COMPLETED")
        with pytest.raises(ConflictError):
            order_service.delete_order(order.id)


class TestListOrders:

    def test_search_and_pagination(self, db_session, make_product):
        product = make_product()
        item = [{"product_id": product.id, "quantity": 1}]
        for i in range(3):
            order_service.create_order({"name": f"Buyer {i}", "email": f"buyer{i}@x.com"}, None, item)
        order_service.create_order({"name": "Zed", "email": "zed@y.com", "phone": "999"}, None, item)

        result = order_service.list_orders(q="BUYER", page=1, page_size=2)
        assert result["total"] == 3
        assert result["page"] == 1
        assert result["pageSize"] == 2
        assert len(result["rows"]) == 2

        assert order_service.list_orders(q="999")["total"] == 1
        assert order_service.list_orders(page=3, page_size=2)["rows"] == []

    def test_status_filter(self, db_session, make_product):
        product = make_product()
        item = [{"product_id": product.id, "quantity": 1}]
        first = order_service.create_order(CUSTOMER, None, item)
        order_service.create_order(CUSTOMER, None, item)
        order_service.set_order_status(first.id, "IN_PROGRESS")

        result = order_service.list_orders(status="IN_PROGRESS")
        assert result["total"] == 1
        assert result["rows"][0]["id"] == first.id
