# Overview: Flask API routes for order reviews.

from flask import Blueprint, request, g, jsonify

from ..services import review_service, order_service
from ..services.order_service import OrderError
from ..services.review_service import ReviewError
from ..decorators import require_auth, require_permission, require_any_permission


reviews_bp = Blueprint("reviews", __name__, url_prefix="/api/reviews")


@reviews_bp.get("")
@require_auth
@require_any_permission("VIEW_OWN_ORDERS", "VIEW_ALL_ORDERS")
def list_reviews_route():
    """
    Query params: order_id (required for customers, who only see reviews
    of their own orders).
    """
    order_id = request.args.get("order_id", type=int)
    if order_id is not None:
        try:
            order_service.get_order(viewer=g.current_user, order_id=order_id)
        except OrderError as e:
            return jsonify({"error": str(e)}), e.status_code
    elif g.current_user.role == "customer":
        return jsonify({"error": "order_id is required"}), 400

    reviews = review_service.list_reviews(order_id=order_id)
    return jsonify({"items": [r.to_dict() for r in reviews], "count": len(reviews)})


@reviews_bp.post("")
@require_auth
@require_permission("WRITE_REVIEW")
def create_review_route():
    """
    Body: {order_id, overall_rating, quality_rating?, service_rating?,
           delivery_rating?, comment?, photos?}
    """
    try:
        review = review_service.create_review(
            customer=g.current_user,
            payload=request.get_json(silent=True),
        )
    except ReviewError as e:
        return jsonify({"error": str(e)}), e.status_code

    return jsonify({"success": True, "review": review.to_dict()}), 201
