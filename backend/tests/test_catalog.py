"""
Catalog tests.

Verifies:
- Default materials and templates are seeded idempotently
- Public reads (materials, templates, payment methods, live estimate)
- Material writes are admin-only, validated and audited
"""

import pytest

from tarpprint.models import AuditLogEntry, Material
from tarpprint.services import catalog_service


class TestSeed:

    def test_seed_is_idempotent(self, db_session):
        first = catalog_service.seed_catalog()
        second = catalog_service.seed_catalog()
        assert first == {"materials": 4, "templates": 4}
        assert second == {"materials": 0, "templates": 0}


class TestMaterials:

    def test_list_materials_public(self, client, catalog):
        resp = client.get("/api/catalog/materials")
        assert resp.status_code == 200
        names = {m["name"] for m in resp.json["items"]}
        assert names == {"Standard Vinyl", "Heavy Duty Vinyl", "Mesh Vinyl", "Backlit Film"}

    def test_available_filter(self, client, standard_vinyl, db_session):
        standard_vinyl.available = False
        db_session.commit()
        resp = client.get("/api/catalog/materials?available=true")
        assert "Standard Vinyl" not in {m["name"] for m in resp.json["items"]}
        assert resp.json["count"] == 3

    def test_get_material(self, client, mesh_vinyl):
        resp = client.get(f"/api/catalog/materials/{mesh_vinyl.id}")
        assert resp.status_code == 200
        assert resp.json["price_per_sqm"] == 280.0
        assert client.get("/api/catalog/materials/99999").status_code == 404

    def test_admin_creates_material(self, client, admin_headers, db_session):
        resp = client.post("/api/catalog/materials", headers=admin_headers, json={
            "name": "Canvas",
            "description": "Matte canvas for indoor displays",
            "price_per_sqm": "320.50",
        })
        assert resp.status_code == 201
        assert resp.json["price_per_sqm"] == 320.5
        assert resp.json["available"] is True
        assert db_session.query(AuditLogEntry).filter_by(table_name="materials", action="CREATE").count() == 1

    def test_duplicate_material_name_conflict(self, client, admin_headers, catalog):
        resp = client.post("/api/catalog/materials", headers=admin_headers, json={
            "name": "mesh vinyl",
            "price_per_sqm": 100,
        })
        assert resp.status_code == 409

    @pytest.mark.parametrize(
        "body",
        [
            {"name": "Free", "price_per_sqm": 0},
            {"name": "Negative", "price_per_sqm": -5},
            {"name": "Words", "price_per_sqm": "cheap"},
            {"price_per_sqm": 100},
            {"name": "Extra", "price_per_sqm": 100, "id": 7},
        ],
    )
    def test_invalid_material_rejected(self, client, admin_headers, body, db_session):
        resp = client.post("/api/catalog/materials", headers=admin_headers, json=body)
        assert resp.status_code == 400
        assert db_session.query(Material).count() == 0

    def test_update_material_audits_changed_fields(self, client, admin_headers, standard_vinyl, db_session):
        resp = client.patch(
            f"/api/catalog/materials/{standard_vinyl.id}",
            headers=admin_headers,
            json={"price_per_sqm": 200, "available": False},
        )
        assert resp.status_code == 200
        assert resp.json["price_per_sqm"] == 200.0
        assert resp.json["available"] is False

        entry = db_session.query(AuditLogEntry).filter_by(table_name="materials", action="UPDATE").one()
        assert entry.old_values == {"price_per_sqm": 180.0, "available": True}

    def test_update_unknown_material_404(self, client, admin_headers, db_session):
        resp = client.patch("/api/catalog/materials/99999", headers=admin_headers, json={"available": False})
        assert resp.status_code == 404

    def test_staff_cannot_manage_catalog(self, client, staff_headers, standard_vinyl):
        resp = client.patch(
            f"/api/catalog/materials/{standard_vinyl.id}",
            headers=staff_headers,
            json={"available": False},
        )
        assert resp.status_code == 403


class TestTemplates:

    def test_list_templates(self, client, catalog):
        resp = client.get("/api/catalog/templates")
        assert resp.status_code == 200
        assert resp.json["count"] == 4
        assert resp.json["categories"] == ["Business", "Events", "Promotions", "Real Estate"]

    def test_filter_by_category_and_search(self, client, catalog):
        events = client.get("/api/catalog/templates?category=Events").json["items"]
        assert [t["name"] for t in events] == ["Birthday Celebration"]

        found = client.get("/api/catalog/templates?search=discount").json["items"]
        assert [t["name"] for t in found] == ["Flash Sale"]

    def test_sort_by_price(self, client, catalog):
        items = client.get("/api/catalog/templates?sort=price-high").json["items"]
        assert items[0]["name"] == "Birthday Celebration"

    def test_bad_sort_rejected(self, client, catalog):
        assert client.get("/api/catalog/templates?sort=random").status_code == 400

    def test_inactive_template_hidden(self, client, catalog, db_session):
        template = catalog["templates"]["Flash Sale"]
        template.is_active = False
        db_session.commit()
        assert client.get("/api/catalog/templates").json["count"] == 3
        assert client.get(f"/api/catalog/templates/{template.id}").status_code == 404


class TestReferenceData:

    def test_payment_methods(self, client, db_session):
        items = client.get("/api/catalog/payment-methods").json["items"]
        assert [m["id"] for m in items] == ["gcash", "paymaya", "bank_transfer", "credit_card", "cod"]


class TestEstimate:

    def test_estimate(self, client, mesh_vinyl):
        resp = client.post("/api/catalog/estimate", json={
            "width": 2, "height": 1.5, "quantity": 3, "material_id": mesh_vinyl.id,
        })
        assert resp.status_code == 200
        assert resp.json["total_price"] == 2520.0
        assert resp.json["material"]["name"] == "Mesh Vinyl"
        assert resp.json["template_id"] is None

    def test_estimate_with_template(self, client, standard_vinyl, catalog):
        template = catalog["templates"]["For Sale by Owner"]
        resp = client.post("/api/catalog/estimate", json={
            "width": 1, "height": 1, "quantity": 2,
            "material_id": standard_vinyl.id, "template_id": template.id,
        })
        assert resp.json["surcharge"] == 50.0
        assert resp.json["total_price"] == 410.0

    def test_estimate_out_of_bounds(self, client, standard_vinyl):
        resp = client.post("/api/catalog/estimate", json={
            "width": 20, "height": 1, "quantity": 1, "material_id": standard_vinyl.id,
        })
        assert resp.status_code == 400
        assert "width" in resp.json["details"]
