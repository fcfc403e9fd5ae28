# Overview: Flask API routes for the back-office customer list.

from flask import Blueprint, request, jsonify

from ..services import customer_service
from ..decorators import require_auth, require_permission


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def list_customers_route():
    """Query params: search (name or email substring)."""
    customers = customer_service.list_customers(search=request.args.get("search"))
    return jsonify({"items": customers, "count": len(customers)})


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def get_customer_route(customer_id: int):
    customer = customer_service.get_customer(customer_id)
    if customer is None:
        return jsonify({"error": "Customer not found"}), 404
    return jsonify(customer)
