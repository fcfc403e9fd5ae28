# Overview: Flask API routes for catalog operations; parses input and returns JSON responses.

"""
Catalog routes: materials, templates, statuses, payment methods and the
public live price estimate.

SECURITY: Reads are public (the ordering form needs them before login).
Material writes require MANAGE_CATALOG.
"""
from flask import Blueprint, request, g, jsonify, current_app

from ..models import Material
from ..services import catalog_service
from ..services.catalog_service import CatalogError
from ..services.order_service import OrderError, price_order
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_material,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_permission

MATERIAL_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "price_per_sqm", "available"},
    required_on_create={"name", "price_per_sqm"},
)

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")


@catalog_bp.get("/materials")
def list_materials_route():
    """
    Query params:
    - available: "true" to hide unavailable materials
    """
    available_only = request.args.get("available", "").lower() in {"1", "true", "yes"}
    materials = catalog_service.list_materials(available_only=available_only)
    return {"items": [m.to_dict() for m in materials], "count": len(materials)}


@catalog_bp.get("/materials/<int:material_id>")
def get_material_route(material_id: int):
    material = catalog_service.get_material(material_id)
    if material is None:
        return {"error": "Material not found"}, 404
    return material.to_dict()


@catalog_bp.post("/materials")
@require_auth
@require_permission("MANAGE_CATALOG")
def create_material_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Material, payload=payload, policy=MATERIAL_POLICY, partial=False)
        enforce_rules_material(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = catalog_service.create_material(patch=patch, actor=g.current_user)
    except ConflictError as e:
        return {"error": str(e)}, 409

    return created.to_dict(), 201


@catalog_bp.patch("/materials/<int:material_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def update_material_route(material_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Material, payload=payload, policy=MATERIAL_POLICY, partial=True)
        enforce_rules_material(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = catalog_service.update_material(material_id=material_id, patch=patch, actor=g.current_user)
    except ConflictError as e:
        return {"error": str(e)}, 409

    if updated is None:
        return {"error": "Material not found"}, 404
    return updated.to_dict(), 200


@catalog_bp.get("/templates")
def list_templates_route():
    """
    Query params:
    - search: substring of name or description
    - category: Business, Events, Promotions, Real Estate (or "all")
    - sort: popular (default), rating, newest, price-low, price-high
    """
    try:
        templates = catalog_service.list_templates(
            search=request.args.get("search"),
            category=request.args.get("category"),
            sort=request.args.get("sort"),
        )
    except CatalogError as e:
        return {"error": str(e)}, e.status_code
    return {
        "items": [t.to_dict() for t in templates],
        "count": len(templates),
        "categories": list(catalog_service.TEMPLATE_CATEGORIES),
    }


@catalog_bp.get("/templates/<int:template_id>")
def get_template_route(template_id: int):
    template = catalog_service.get_template(template_id)
    if template is None:
        return {"error": "Template not found"}, 404
    return template.to_dict()


@catalog_bp.get("/statuses")
def list_statuses_route():
    return {"items": catalog_service.list_statuses()}


@catalog_bp.get("/payment-methods")
def list_payment_methods_route():
    return {"items": catalog_service.list_payment_methods()}


@catalog_bp.post("/estimate")
def estimate_route():
    """
    Live price for the order form.

    Body: {width, height, quantity, material_id, template_id?}
    Applies the same bounds as order creation.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        _, _, _, material, template, estimate = price_order(
            width=data.get("width"),
            height=data.get("height"),
            quantity=data.get("quantity"),
            material_id=data.get("material_id"),
            template_id=data.get("template_id"),
        )
    except OrderError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to estimate price")
        return jsonify({"error": "Internal server error"}), 500

    result = estimate.to_dict()
    result["material"] = material.to_dict()
    result["template_id"] = template.id if template else None
    return jsonify(result)
