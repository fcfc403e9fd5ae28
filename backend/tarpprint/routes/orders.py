# Overview: Flask API routes for order operations; parses input and returns JSON responses.

"""
Order routes.

SECURITY: All routes require authentication.
- Customers create orders and see only their own (others' orders are 404)
- Staff/admin see every order and change status (UPDATE_ORDER_STATUS)
  and payment flags (UPDATE_PAYMENT_STATUS)
- Messages are visible to the order owner and to staff/admin
"""
from flask import Blueprint, request, g, jsonify, current_app

from ..services import order_service
from ..services.order_service import OrderError
from ..services.permission_service import user_has_permission, log_permission_denied
from ..decorators import require_auth, require_permission, require_any_permission


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _order_error(e: OrderError):
    body = {"error": str(e)}
    if e.details:
        body["details"] = e.details
    return jsonify(body), e.status_code


@orders_bp.post("")
@require_auth
@require_permission("PLACE_ORDER")
def create_order_route():
    """
    Place an order.

    Body: {width, height, quantity, material_id, template_id?, design_notes?,
           file_url?, file_name?, total_price?, payment_method,
           payment_details?}
    """
    payload = request.get_json(silent=True)
    try:
        order = order_service.create_order(customer=g.current_user, payload=payload)
    except OrderError as e:
        return _order_error(e)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"success": True, "order": order.to_dict()}), 201


@orders_bp.get("")
@require_auth
@require_any_permission("VIEW_OWN_ORDERS", "VIEW_ALL_ORDERS")
def list_orders_route():
    """
    Query params:
    - status: one of the five statuses, or "all"
    - search: order number or customer name
    - sort: newest (default), oldest, price-high, price-low
    """
    try:
        orders = order_service.list_orders(
            viewer=g.current_user,
            status=request.args.get("status"),
            search=request.args.get("search"),
            sort=request.args.get("sort"),
        )
    except OrderError as e:
        return _order_error(e)

    return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)})


@orders_bp.get("/<int:order_id>")
@require_auth
@require_any_permission("VIEW_OWN_ORDERS", "VIEW_ALL_ORDERS")
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(viewer=g.current_user, order_id=order_id)
    except OrderError as e:
        return _order_error(e)

    data = order.to_dict()
    data["review"] = order.review.to_dict() if order.review else None
    data["allowed_statuses"] = sorted(order_service.allowed_transitions(order.status))
    return jsonify(data)


@orders_bp.patch("/<int:order_id>/status")
@require_auth
@require_permission("UPDATE_ORDER_STATUS")
def update_status_route(order_id: int):
    """Body: {status, note?}"""
    data = request.get_json(silent=True) or {}
    try:
        order = order_service.update_status(
            order_id=order_id,
            new_status=data.get("status"),
            actor=g.current_user,
            note=data.get("note"),
        )
    except OrderError as e:
        return _order_error(e)
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"success": True, "order": order.to_dict()})


@orders_bp.patch("/<int:order_id>/payment")
@require_auth
@require_permission("UPDATE_PAYMENT_STATUS")
def update_payment_route(order_id: int):
    """Body: {is_paid, payment_method?, payment_reference?}"""
    data = request.get_json(silent=True) or {}
    try:
        order = order_service.update_payment(
            order_id=order_id,
            is_paid=data.get("is_paid"),
            actor=g.current_user,
            payment_method=data.get("payment_method"),
            payment_reference=data.get("payment_reference"),
        )
    except OrderError as e:
        return _order_error(e)
    except Exception:
        current_app.logger.exception("Failed to update order payment")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"success": True, "order": order.to_dict()})


@orders_bp.put("/update")
@require_auth
def compat_update_route():
    """
    Single-endpoint update used by older clients.

    Body: {order_id, status?, note?, is_paid?, payment_method?, payment_reference?}
    Each part is checked against its own permission.
    """
    data = request.get_json(silent=True) or {}
    order_id = data.get("order_id")
    if isinstance(order_id, bool) or not isinstance(order_id, int):
        return jsonify({"error": "order_id is required"}), 400

    wants_status = "status" in data
    wants_payment = "is_paid" in data
    if not wants_status and not wants_payment:
        return jsonify({"error": "Nothing to update: provide status and/or is_paid"}), 400

    user = g.current_user
    for wanted, code in ((wants_status, "UPDATE_ORDER_STATUS"), (wants_payment, "UPDATE_PAYMENT_STATUS")):
        if wanted and not user_has_permission(user, code):
            log_permission_denied(user, code, resource=request.path)
            return jsonify({"error": "Permission denied", "required_permission": code}), 403

    try:
        order = None
        if wants_status:
            order = order_service.update_status(
                order_id=order_id,
                new_status=data.get("status"),
                actor=user,
                note=data.get("note"),
            )
        if wants_payment:
            order = order_service.update_payment(
                order_id=order_id,
                is_paid=data.get("is_paid"),
                actor=user,
                payment_method=data.get("payment_method"),
                payment_reference=data.get("payment_reference"),
            )
    except OrderError as e:
        return _order_error(e)
    except Exception:
        current_app.logger.exception("Failed to update order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"success": True, "order": order.to_dict()})


@orders_bp.get("/<int:order_id>/history")
@require_auth
@require_any_permission("VIEW_OWN_ORDERS", "VIEW_ALL_ORDERS")
def order_history_route(order_id: int):
    try:
        order = order_service.get_order(viewer=g.current_user, order_id=order_id)
    except OrderError as e:
        return _order_error(e)

    history = order_service.list_history(order)
    return jsonify({"items": [h.to_dict() for h in history], "count": len(history)})


@orders_bp.get("/<int:order_id>/messages")
@require_auth
@require_permission("SEND_MESSAGES")
def list_messages_route(order_id: int):
    try:
        order = order_service.get_order(viewer=g.current_user, order_id=order_id)
    except OrderError as e:
        return _order_error(e)

    messages = order_service.list_messages(order)
    return jsonify({"items": [m.to_dict() for m in messages], "count": len(messages)})


@orders_bp.post("/<int:order_id>/messages")
@require_auth
@require_permission("SEND_MESSAGES")
def add_message_route(order_id: int):
    """Body: {content}"""
    data = request.get_json(silent=True) or {}
    try:
        order = order_service.get_order(viewer=g.current_user, order_id=order_id)
        message = order_service.add_message(order=order, sender=g.current_user, content=data.get("content"))
    except OrderError as e:
        return _order_error(e)

    return jsonify({"success": True, "message": message.to_dict()}), 201
