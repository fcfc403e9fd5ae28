"""
Order placement and visibility tests.

Verifies:
- Server recomputes the price snapshot; a mismatching client total is refused
- Snapshot survives later material price changes
- Payment outcome per method (COD unpaid, others paid with a reference)
- Customers see only their own orders (others' orders are 404)
- Design file must be the customer's own upload; file and template are exclusive
"""

import io
import re
from decimal import Decimal

import pytest

from tarpprint.models import AuditLogEntry, Order, OrderStatusUpdate
from tarpprint.services import order_service
from tarpprint.services.pricing_service import calculate_price

from conftest import order_payload


ORDER_NUMBER_RE = re.compile(r"^TP-\d{6}-[0-9A-Z]{4}$")


def _upload(client, headers, name="design.png", content=b"\x89PNG fake image"):
    resp = client.post(
        "/api/uploads",
        data={"file": (io.BytesIO(content), name)},
        headers=headers,
        content_type="multipart/form-data",
    )
    assert resp.status_code == 201, resp.json
    return resp.json


# =============================================================================
# CREATION
# =============================================================================


class TestCreateOrder:

    def test_create_order_snapshot(self, client, customer_headers, customer, mesh_vinyl, db_session):
        resp = client.post("/api/orders", headers=customer_headers, json=order_payload(mesh_vinyl))
        assert resp.status_code == 201
        order = resp.json["order"]
        assert order["total_price"] == 2520.0
        assert order["status"] == "pending"
        assert order["customer_id"] == customer.id
        assert ORDER_NUMBER_RE.match(order["order_number"])

        history = db_session.query(OrderStatusUpdate).filter_by(order_id=order["id"]).all()
        assert len(history) == 1
        assert history[0].from_status is None
        assert history[0].to_status == "pending"

    def test_matching_client_total_accepted(self, client, customer_headers, mesh_vinyl):
        resp = client.post(
            "/api/orders",
            headers=customer_headers,
            json=order_payload(mesh_vinyl, total_price=2520.00),
        )
        assert resp.status_code == 201

    def test_mismatched_client_total_conflict(self, client, customer_headers, mesh_vinyl, db_session):
        resp = client.post(
            "/api/orders",
            headers=customer_headers,
            json=order_payload(mesh_vinyl, total_price=100),
        )
        assert resp.status_code == 409
        assert resp.json["details"]["expected"] == 2520.0
        assert db_session.query(Order).count() == 0

    def test_snapshot_not_recomputed_after_price_change(
        self, client, customer_headers, admin_headers, mesh_vinyl
    ):
        created = client.post("/api/orders", headers=customer_headers, json=order_payload(mesh_vinyl)).json["order"]

        resp = client.patch(
            f"/api/catalog/materials/{mesh_vinyl.id}",
            headers=admin_headers,
            json={"price_per_sqm": "999.00"},
        )
        assert resp.status_code == 200

        fetched = client.get(f"/api/orders/{created['id']}", headers=customer_headers).json
        assert fetched["total_price"] == 2520.0

    def test_template_surcharge_applied(self, client, customer_headers, standard_vinyl, catalog, db_session):
        template = catalog["templates"]["Birthday Celebration"]
        resp = client.post(
            "/api/orders",
            headers=customer_headers,
            json=order_payload(standard_vinyl, width=1, height=1, quantity=2, template_id=template.id),
        )
        assert resp.status_code == 201
        # 1 x 1 x 2 x 180 + 2 x 50
        assert resp.json["order"]["total_price"] == 460.0

        db_session.expire_all()
        assert db_session.get(type(template), template.id).usage_count == 1

    @pytest.mark.parametrize(
        "overrides",
        [
            {"width": 0.4},
            {"height": 11},
            {"quantity": 0},
            {"quantity": 101},
            {"width": "wide"},
            {"material_id": None},
            {"payment_method": None},
            {"payment_method": "bitcoin"},
            {"discount": 10},
            {"total_price": "NaN"},
            {"total_price": "Infinity"},
        ],
    )
    def test_invalid_order_rejected(self, client, customer_headers, standard_vinyl, overrides, db_session):
        resp = client.post("/api/orders", headers=customer_headers, json=order_payload(standard_vinyl, **overrides))
        assert resp.status_code == 400
        assert db_session.query(Order).count() == 0

    def test_unknown_material_404(self, client, customer_headers, standard_vinyl):
        resp = client.post(
            "/api/orders",
            headers=customer_headers,
            json=order_payload(standard_vinyl, material_id=99999),
        )
        assert resp.status_code == 404

    def test_unavailable_material_rejected(self, client, customer_headers, standard_vinyl, db_session):
        standard_vinyl.available = False
        db_session.commit()
        resp = client.post("/api/orders", headers=customer_headers, json=order_payload(standard_vinyl))
        assert resp.status_code == 400

    def test_order_creation_audited(self, client, customer_headers, customer, standard_vinyl, db_session):
        order_id = client.post("/api/orders", headers=customer_headers, json=order_payload(standard_vinyl)).json["order"]["id"]
        entry = db_session.query(AuditLogEntry).filter_by(table_name="orders", record_id=order_id).one()
        assert entry.action == "CREATE"
        assert entry.user_id == customer.id

    def test_staff_cannot_place_orders(self, client, staff_headers, standard_vinyl):
        resp = client.post("/api/orders", headers=staff_headers, json=order_payload(standard_vinyl))
        assert resp.status_code == 403


# =============================================================================
# PAYMENT OUTCOMES
# =============================================================================


class TestOrderPayment:

    def test_cod_order_unpaid(self, client, customer_headers, standard_vinyl):
        resp = client.post(
            "/api/orders",
            headers=customer_headers,
            json=order_payload(standard_vinyl, payment_method="cod"),
        )
        order = resp.json["order"]
        assert order["is_paid"] is False
        assert order["payment_method"] == "cod"
        assert order["payment_reference"] is None

    @pytest.mark.parametrize(
        "method,prefix",
        [("gcash", "GC"), ("paymaya", "PM"), ("bank_transfer", "BT"), ("credit_card", "CC")],
    )
    def test_prepaid_methods_paid_with_reference(self, client, customer_headers, standard_vinyl, method, prefix):
        resp = client.post(
            "/api/orders",
            headers=customer_headers,
            json=order_payload(standard_vinyl, payment_method=method),
        )
        order = resp.json["order"]
        assert order["is_paid"] is True
        assert re.match(rf"^{prefix}\d{{10}}$", order["payment_reference"])

    def test_supplied_reference_kept(self, client, customer_headers, standard_vinyl):
        resp = client.post(
            "/api/orders",
            headers=customer_headers,
            json=order_payload(
                standard_vinyl,
                payment_method="bank_transfer",
                payment_details={"reference_number": "BPI-778812"},
            ),
        )
        assert resp.json["order"]["payment_reference"] == "BPI-778812"


# =============================================================================
# DESIGN SOURCE
# =============================================================================


class TestDesignSource:

    def test_order_with_own_upload(self, client, customer_headers, standard_vinyl):
        upload = _upload(client, customer_headers)
        resp = client.post(
            "/api/orders",
            headers=customer_headers,
            json=order_payload(standard_vinyl, file_url=upload["file_url"]),
        )
        assert resp.status_code == 201
        assert resp.json["order"]["file_url"] == upload["file_url"]
        assert resp.json["order"]["file_name"] == "design.png"

    def test_order_with_foreign_upload_rejected(
        self, client, customer_headers, other_customer_headers, standard_vinyl
    ):
        upload = _upload(client, other_customer_headers)
        resp = client.post(
            "/api/orders",
            headers=customer_headers,
            json=order_payload(standard_vinyl, file_url=upload["file_url"]),
        )
        assert resp.status_code == 400

    def test_file_and_template_exclusive(self, client, customer_headers, standard_vinyl, catalog):
        upload = _upload(client, customer_headers)
        template = catalog["templates"]["Grand Opening"]
        resp = client.post(
            "/api/orders",
            headers=customer_headers,
            json=order_payload(standard_vinyl, file_url=upload["file_url"], template_id=template.id),
        )
        assert resp.status_code == 400


# =============================================================================
# VISIBILITY
# =============================================================================


class TestOrderVisibility:

    def test_customer_sees_only_own_orders(
        self, client, customer_headers, other_customer_headers, staff_headers, standard_vinyl
    ):
        mine = client.post("/api/orders", headers=customer_headers, json=order_payload(standard_vinyl)).json["order"]
        theirs = client.post("/api/orders", headers=other_customer_headers, json=order_payload(standard_vinyl)).json["order"]

        listed = client.get("/api/orders", headers=customer_headers).json
        assert [o["id"] for o in listed["items"]] == [mine["id"]]

        assert client.get(f"/api/orders/{theirs['id']}", headers=customer_headers).status_code == 404
        assert client.get(f"/api/orders/{theirs['id']}/history", headers=customer_headers).status_code == 404

        staff_listed = client.get("/api/orders", headers=staff_headers).json
        assert staff_listed["count"] == 2

    def test_filter_search_and_sort(self, client, customer_headers, staff_headers, standard_vinyl, mesh_vinyl):
        cheap = client.post(
            "/api/orders", headers=customer_headers, json=order_payload(standard_vinyl, quantity=1)
        ).json["order"]
        pricey = client.post("/api/orders", headers=customer_headers, json=order_payload(mesh_vinyl)).json["order"]

        by_price = client.get("/api/orders?sort=price-high", headers=staff_headers).json["items"]
        assert [o["id"] for o in by_price] == [pricey["id"], cheap["id"]]

        found = client.get(f"/api/orders?search={cheap['order_number'].lower()}", headers=staff_headers).json
        assert [o["id"] for o in found["items"]] == [cheap["id"]]

        by_name = client.get("/api/orders", query_string={"search": "dela cruz"}, headers=staff_headers).json
        assert by_name["count"] == 2

        assert client.get("/api/orders?status=pending", headers=staff_headers).json["count"] == 2
        assert client.get("/api/orders?status=completed", headers=staff_headers).json["count"] == 0
        assert client.get("/api/orders?status=bogus", headers=staff_headers).status_code == 400
        assert client.get("/api/orders?sort=bogus", headers=staff_headers).status_code == 400

    def test_order_detail_includes_allowed_statuses(self, client, customer_headers, standard_vinyl):
        order = client.post("/api/orders", headers=customer_headers, json=order_payload(standard_vinyl)).json["order"]
        detail = client.get(f"/api/orders/{order['id']}", headers=customer_headers).json
        assert detail["allowed_statuses"] == ["cancelled", "processing"]
        assert detail["review"] is None


# =============================================================================
# MESSAGES
# =============================================================================


class TestOrderMessages:

    def test_owner_and_staff_exchange_messages(self, client, customer_headers, staff_headers, standard_vinyl):
        order = client.post("/api/orders", headers=customer_headers, json=order_payload(standard_vinyl)).json["order"]

        resp = client.post(
            f"/api/orders/{order['id']}/messages",
            headers=customer_headers,
            json={"content": "Can you make the logo bigger?"},
        )
        assert resp.status_code == 201
        client.post(f"/api/orders/{order['id']}/messages", headers=staff_headers, json={"content": "Sure!"})

        thread = client.get(f"/api/orders/{order['id']}/messages", headers=customer_headers).json
        assert [m["content"] for m in thread["items"]] == ["Can you make the logo bigger?", "Sure!"]

    def test_other_customer_cannot_read_thread(
        self, client, customer_headers, other_customer_headers, standard_vinyl
    ):
        order = client.post("/api/orders", headers=customer_headers, json=order_payload(standard_vinyl)).json["order"]
        resp = client.get(f"/api/orders/{order['id']}/messages", headers=other_customer_headers)
        assert resp.status_code == 404

    def test_empty_message_rejected(self, client, customer_headers, standard_vinyl):
        order = client.post("/api/orders", headers=customer_headers, json=order_payload(standard_vinyl)).json["order"]
        resp = client.post(f"/api/orders/{order['id']}/messages", headers=customer_headers, json={"content": "  "})
        assert resp.status_code == 400


# =============================================================================
# ORDER NUMBERS
# =============================================================================


class TestOrderNumbers:

    def test_format(self):
        from datetime import datetime
        number = order_service.generate_order_number(datetime(2024, 4, 15, 8, 30))
        assert number.startswith("TP-240415-")
        assert ORDER_NUMBER_RE.match(number)

    def test_collisions_exhaust_attempts(self, db_session, customer, standard_vinyl, monkeypatch):
        order_service.create_order(customer=customer, payload=order_payload(standard_vinyl))
        taken = db_session.query(Order).one().order_number
        monkeypatch.setattr(order_service, "generate_order_number", lambda now=None: taken)

        with pytest.raises(order_service.OrderError) as exc:
            order_service.create_order(customer=customer, payload=order_payload(standard_vinyl))
        assert exc.value.status_code == 409

    def test_price_is_decimal_snapshot(self, db_session, customer, mesh_vinyl):
        order = order_service.create_order(customer=customer, payload=order_payload(mesh_vinyl))
        assert order.total_price == Decimal("2520.00")

    def test_dimensions_stored_at_priced_precision(self, db_session, customer, standard_vinyl):
        order = order_service.create_order(
            customer=customer,
            payload=order_payload(standard_vinyl, width=1.255, height=2, quantity=1),
        )
        db_session.expire_all()
        stored = db_session.get(Order, order.id)
        assert stored.width_m == Decimal("1.26")
        # 1.26 x 2 x 180
        assert stored.total_price == Decimal("453.60")
        assert stored.total_price == calculate_price(stored.width_m, stored.height_m, stored.quantity, 180)
