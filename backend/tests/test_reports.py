"""
Sales report tests.

Verifies:
- Aggregation over an inclusive date range (orders of every status)
- Zero-order ranges produce zeros and empty breakdowns
- Reports persist, list newest first, and are admin-generated only
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from tarpprint.models import AuditLogEntry, Order
from tarpprint.services import order_service, reporting_service
from tarpprint.services.reporting_service import ReportError
from tarpprint.time_utils import utcnow

from conftest import order_payload


@pytest.fixture
def todays_orders(db_session, customer, other_customer, standard_vinyl, mesh_vinyl, catalog):
    grand_opening = catalog["templates"]["Grand Opening"]
    orders = [
        order_service.create_order(customer=customer, payload=order_payload(mesh_vinyl)),
        order_service.create_order(
            customer=customer,
            payload=order_payload(standard_vinyl, quantity=1, payment_method="cod", template_id=grand_opening.id),
        ),
        order_service.create_order(customer=other_customer, payload=order_payload(mesh_vinyl, payment_method="paymaya")),
    ]
    return orders


class TestAggregation:

    def test_report_totals(self, db_session, todays_orders, admin):
        today = utcnow().date().isoformat()
        report = reporting_service.generate_sales_report(
            report_type="daily", start_date=today, end_date=today, actor=admin,
        )
        # 2520 + 540 + 2520
        assert report.total_orders == 3
        assert report.total_revenue == Decimal("5580.00")
        assert report.total_customers == 2
        assert report.popular_materials == [
            {"name": "Mesh Vinyl", "count": 2},
            {"name": "Standard Vinyl", "count": 1},
        ]
        assert report.payment_methods_breakdown == {"cod": 1, "gcash": 1, "paymaya": 1}
        assert report.top_templates == [{"name": "Grand Opening", "count": 1}]

    def test_cancelled_orders_counted(self, db_session, todays_orders, staff):
        order_service.update_status(order_id=todays_orders[0].id, new_status="cancelled", actor=staff)
        today = utcnow().date().isoformat()
        report = reporting_service.generate_sales_report(report_type="daily", start_date=today, end_date=today)
        assert report.total_orders == 3

    def test_end_date_inclusive(self, db_session, todays_orders):
        late = todays_orders[0]
        end_of_day = datetime.combine(utcnow().date(), datetime.max.time()).replace(microsecond=0)
        late.created_at = end_of_day
        db_session.commit()

        today = utcnow().date().isoformat()
        report = reporting_service.generate_sales_report(report_type="daily", start_date=today, end_date=today)
        assert report.total_orders == 3

    def test_orders_outside_range_excluded(self, db_session, todays_orders):
        todays_orders[0].created_at = utcnow() - timedelta(days=10)
        db_session.commit()
        today = utcnow().date().isoformat()
        report = reporting_service.generate_sales_report(report_type="weekly", start_date=today, end_date=today)
        assert report.total_orders == 2

    def test_zero_order_report(self, db_session):
        report = reporting_service.generate_sales_report(
            report_type="monthly", start_date="2020-01-01", end_date="2020-01-31",
        )
        assert report.total_orders == 0
        assert report.total_revenue == Decimal("0.00")
        assert report.total_customers == 0
        assert report.popular_materials == []
        assert report.payment_methods_breakdown == {}
        assert report.top_templates == []

    def test_top_ties_ordered_by_name(self):
        class _Named:
            def __init__(self, name):
                self.name = name

        class _Stub:
            def __init__(self, customer_id, material, method):
                self.total_price = Decimal("10")
                self.customer_id = customer_id
                self.material = _Named(material)
                self.payment_method = method
                self.template = None

        summary = reporting_service.aggregate_orders([
            _Stub(1, "Mesh Vinyl", None),
            _Stub(2, "Backlit Film", "gcash"),
        ])
        assert [m["name"] for m in summary["popular_materials"]] == ["Backlit Film", "Mesh Vinyl"]
        assert summary["payment_methods_breakdown"] == {"Not Specified": 1, "gcash": 1}

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"report_type": "hourly", "start_date": "2024-01-01", "end_date": "2024-01-02"},
            {"report_type": "daily", "start_date": "2024-02-01", "end_date": "2024-01-01"},
            {"report_type": "daily", "start_date": "yesterday", "end_date": "2024-01-01"},
            {"report_type": "daily", "start_date": "2024-01-01xyz", "end_date": "2024-01-02"},
            {"report_type": "daily", "start_date": None, "end_date": "2024-01-01"},
        ],
    )
    def test_invalid_parameters(self, db_session, kwargs):
        with pytest.raises(ReportError):
            reporting_service.generate_sales_report(**kwargs)


class TestReportRoutes:

    def test_admin_generates_and_lists(self, client, admin_headers, staff_headers, db_session):
        resp = client.post("/api/reports/sales", headers=admin_headers, json={
            "report_type": "monthly", "start_date": "2024-05-01", "end_date": "2024-05-31",
        })
        assert resp.status_code == 201
        report_id = resp.json["report"]["id"]
        assert resp.json["report"]["total_revenue"] == 0.0

        listed = client.get("/api/reports/sales", headers=staff_headers).json
        assert [r["id"] for r in listed["items"]] == [report_id]

        fetched = client.get(f"/api/reports/sales/{report_id}", headers=staff_headers)
        assert fetched.status_code == 200
        assert fetched.json["start_date"] == "2024-05-01"

        assert db_session.query(AuditLogEntry).filter_by(table_name="sales_reports").count() == 1

    def test_staff_cannot_generate(self, client, staff_headers):
        resp = client.post("/api/reports/sales", headers=staff_headers, json={
            "report_type": "daily", "start_date": "2024-05-01", "end_date": "2024-05-01",
        })
        assert resp.status_code == 403

    def test_customer_cannot_view(self, client, customer_headers):
        assert client.get("/api/reports/sales", headers=customer_headers).status_code == 403

    def test_list_limit(self, client, admin_headers, db_session):
        for day in ("01", "02", "03"):
            client.post("/api/reports/sales", headers=admin_headers, json={
                "report_type": "daily", "start_date": f"2024-05-{day}", "end_date": f"2024-05-{day}",
            })
        listed = client.get("/api/reports/sales?limit=2", headers=admin_headers).json
        assert listed["count"] == 2
        assert listed["items"][0]["start_date"] == "2024-05-03"

    def test_unknown_report_404(self, client, admin_headers):
        assert client.get("/api/reports/sales/99999", headers=admin_headers).status_code == 404

    def test_bad_range_400(self, client, admin_headers):
        resp = client.post("/api/reports/sales", headers=admin_headers, json={
            "report_type": "daily", "start_date": "2024-05-10", "end_date": "2024-05-01",
        })
        assert resp.status_code == 400
