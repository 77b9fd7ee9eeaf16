"""
Categories, promotions, customers and the system endpoints.
"""

from datetime import timedelta, timezone

from app.models import Category, Customer, Promotion
from app.services import order_service
from app.time_utils import to_utc_z, utcnow


def _window(start_days=-1, end_days=7):
    now = utcnow()
    return to_utc_z(now + timedelta(days=start_days)), to_utc_z(now + timedelta(days=end_days))


# =============================================================================
# SYSTEM
# =============================================================================


class TestSystem:

    def test_banner(self, client):
        assert client.get("/").json == {"ok": True, "service": "listo-backend"}

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["ok"] is True
        assert resp.json["checks"]["database"]["status"] == "healthy"
        assert resp.json["variants"] is True

    def test_unknown_route(self, client):
        resp = client.get("/nope")
        assert resp.status_code == 404
        assert resp.json == {"error": "not_found", "path": "/nope"}

    def test_cors_echoes_origin(self, client):
        resp = client.get("/", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"


# =============================================================================
# CATEGORIES
# =============================================================================


class TestCategories:

    def test_seed_is_idempotent(self, client, db_session, admin_headers):
        first = client.post("/categories/seed", headers=admin_headers)
        second = client.post("/categories/seed", headers=admin_headers)
        assert first.json == second.json == {"ok": True, "count": 13}
        assert db_session.query(Category).count() == 13

        roots = client.get("/categories").json
        assert [r["name"] for r in roots] == [
            "Bathroom Cleaners",
            "Carpet Care",
            "Cleaners/Degreasers",
            "Floor Care",
            "Glass Cleaners",
        ]
        floor = roots[3]
        assert [c["name"] for c in floor["children"]] == [
            "Floor Finishes",
            "Floor Strippers",
            "Neutral & Specialty Cleaners",
        ]
        assert floor["children"][2]["slug"] == "neutral-specialty-cleaners"

    def test_create_root_and_child(self, client, db_session, admin_headers):
        root = client.post("/categories", json={"name": "Kitchen"}, headers=admin_headers)
        assert root.status_code == 201
        assert root.json["slug"] == "kitchen"
        assert root.json["parent"] is None

        child = client.post("/categories", json={"name": "Oven Cleaners", "parentId": root.json["id"]},
                            headers=admin_headers)
        assert child.status_code == 201
        assert child.json["parentId"] == root.json["id"]
        assert child.json["parent"]["slug"] == "kitchen"

    def test_nesting_is_one_level(self, client, db_session, admin_headers):
        root = client.post("/categories", json={"name": "Kitchen"}, headers=admin_headers).json
        child = client.post("/categories", json={"name": "Ovens", "parentId": root["id"]}, headers=admin_headers).json

        resp = client.post("/categories", json={"name": "Grills", "parentId": child["id"]}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["details"][0]["field"] == "parentId"

    def test_unknown_parent(self, client, db_session, admin_headers):
        resp = client.post("/categories", json={"name": "Ovens", "parentId": "missing"}, headers=admin_headers)
        assert resp.status_code == 404

    def test_duplicate_slug(self, client, db_session, admin_headers):
        client.post("/categories", json={"name": "Glass Care"}, headers=admin_headers)
        resp = client.post("/categories", json={"name": "glass  care!"}, headers=admin_headers)
        assert resp.status_code == 409
        assert resp.json["error"] == "conflict"

    def test_name_required(self, client, db_session, admin_headers):
        resp = client.post("/categories", json={"name": "x"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "validation_error"


# =============================================================================
# PROMOTIONS
# =============================================================================


class TestPromotions:

    def _create(self, client, headers, product, **overrides):
        starts, ends = _window()
        body = {"productId": product.id, "title": "Spring sale", "percentOff": 20, "startsAt": starts, "endsAt": ends}
        body.update(overrides)
        return client.post("/promotions", json=body, headers=headers)

    def test_create_and_list_active(self, client, db_session, make_product, admin_headers):
        product = make_product(name="Bleach", price="50.00", visible_price=True)
        resp = self._create(client, admin_headers, product)
        assert resp.status_code == 201
        assert resp.json["percentOff"] == 20
        assert resp.json["priceOff"] is None
        assert resp.json["active"] is True

        listing = client.get("/promotions").json
        assert len(listing) == 1
        assert listing[0]["product"]["sale"]["salePrice"] == 40.0

    def test_public_list_keeps_hidden_price_hidden(self, client, db_session, make_product, admin_headers):
        product = make_product(name="Quote Only", price="50.00")
        self._create(client, admin_headers, product)

        promo = client.get("/promotions").json[0]
        assert "price" not in promo["product"]
        assert "sale" not in promo["product"]

    def test_list_skips_inactive_and_out_of_window(self, client, db_session, make_product, admin_headers):
        product = make_product()
        past_start, past_end = _window(-10, -2)
        self._create(client, admin_headers, product, title="Old", startsAt=past_start, endsAt=past_end)
        self._create(client, admin_headers, product, title="Paused", active=False)
        self._create(client, admin_headers, product, title="Live")

        assert [p["title"] for p in client.get("/promotions").json] == ["Live"]

    def test_exactly_one_discount(self, client, db_session, make_product, admin_headers):
        product = make_product()
        both = self._create(client, admin_headers, product, priceOff=5)
        neither = self._create(client, admin_headers, product, percentOff=None)
        assert both.status_code == neither.status_code == 400
        assert both.json["details"][0]["field"] == "percentOff"

    def test_percent_range(self, client, db_session, make_product, admin_headers):
        resp = self._create(client, admin_headers, make_product(), percentOff=95)
        assert resp.status_code == 400

    def test_window_must_be_ordered(self, client, db_session, make_product, admin_headers):
        starts, ends = _window(5, 1)
        resp = self._create(client, admin_headers, make_product(), startsAt=starts, endsAt=ends)
        assert resp.status_code == 400
        assert resp.json["details"][0]["field"] == "endsAt"

    def test_unknown_product(self, client, db_session, admin_headers):
        starts, ends = _window()
        resp = client.post("/promotions", json={
            "productId": "missing", "title": "Ghost", "priceOff": 3, "startsAt": starts, "endsAt": ends,
        }, headers=admin_headers)
        assert resp.status_code == 404

    def test_update_switches_discount_type(self, client, db_session, make_product, admin_headers):
        promo = self._create(client, admin_headers, make_product()).json

        resp = client.patch(f"/promotions/{promo['id']}", json={"priceOff": 5}, headers=admin_headers)
        assert resp.status_code == 400

        resp = client.patch(f"/promotions/{promo['id']}", json={"percentOff": None, "priceOff": 5, "title": "Flat"},
                            headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["percentOff"] is None
        assert resp.json["priceOff"] == 5.0
        assert resp.json["title"] == "Flat"

    def test_window_columns_are_naive(self):
        for column in (Promotion.__table__.c.starts_at, Promotion.__table__.c.ends_at):
            assert column.type.timezone is False

    def test_offset_window_stored_as_utc(self, client, db_session, make_product, admin_headers):
        plus_two = timezone(timedelta(hours=2))
        starts = (utcnow() - timedelta(hours=1)).replace(microsecond=0)
        ends = starts + timedelta(hours=3)
        resp = self._create(
            client, admin_headers, make_product(),
            startsAt=starts.replace(tzinfo=timezone.utc).astimezone(plus_two).isoformat(),
            endsAt=ends.replace(tzinfo=timezone.utc).astimezone(plus_two).isoformat(),
        )
        assert resp.status_code == 201
        assert resp.json["startsAt"] == to_utc_z(starts)

        db_session.expire_all()
        stored = db_session.get(Promotion, resp.json["id"])
        assert stored.starts_at.tzinfo is None
        assert (stored.starts_at, stored.ends_at) == (starts, ends)
        assert [p["id"] for p in client.get("/promotions").json] == [resp.json["id"]]

    def test_delete(self, client, db_session, make_product, admin_headers):
        promo = self._create(client, admin_headers, make_product()).json
        assert client.delete(f"/promotions/{promo['id']}", headers=admin_headers).json == {"ok": True}
        assert db_session.query(Promotion).count() == 0
        assert client.delete(f"/promotions/{promo['id']}", headers=admin_headers).status_code == 404


# =============================================================================
# CUSTOMERS
# =============================================================================


class TestCustomers:

    def _order(self, product, name, email, **customer):
        return order_service.create_order(
            {"name": name, "email": email, **customer},
            {"line1": "1 Main St", "city": "Austin"},
            [{"product_id": product.id, "quantity": 1}],
        )

    def test_list_and_search(self, client, db_session, make_product, admin_headers):
        product = make_product()
        self._order(product, "Ana Silva", "ana@x.com", phone="555-1111")
        self._order(product, "Bruno Costa", "bruno@y.com")

        listing = client.get("/customers", headers=admin_headers).json
        assert listing["total"] == 2
        assert listing["page"] == 1
        assert listing["pageSize"] == 20
        assert all(len(row["addresses"]) == 1 for row in listing["rows"])

        found = client.get("/customers?q=555-11", headers=admin_headers).json
        assert [r["email"] for r in found["rows"]] == ["ana@x.com"]

        paged = client.get("/customers?pageSize=1&page=2", headers=admin_headers).json
        assert paged["total"] == 2
        assert len(paged["rows"]) == 1

    def test_detail_with_orders(self, client, db_session, make_product, admin_headers):
        product = make_product(name="Stripper")
        order = self._order(product, "Ana Silva", "ana@x.com")
        self._order(product, "Ana S.", "ANA@x.com")
        customer = db_session.query(Customer).one()

        detail = client.get(f"/customers/{customer.id}", headers=admin_headers).json
        assert detail["name"] == "Ana S."
        assert len(detail["addresses"]) == 2
        assert len(detail["orders"]) == 2
        assert order.id in {o["id"] for o in detail["orders"]}
        assert detail["orders"][0]["items"][0]["product"]["name"] == "Stripper"

    def test_unknown_customer(self, client, db_session, admin_headers):
        assert client.get("/customers/missing", headers=admin_headers).status_code == 404
