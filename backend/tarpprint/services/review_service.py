# Overview: Service-layer operations for reviews of completed orders.

"""
Order Reviews

One review per order, written by the customer who owns it, once the order
is completed. Writing a review refreshes the template's rating_average
when the order used a template.
"""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Order, OrderStatus, Review, Template, User
from . import audit_service
from tarpprint.time_utils import utcnow


MAX_PHOTOS = 5
MAX_COMMENT_LENGTH = 2000
RATING_FIELDS = ("overall_rating", "quality_rating", "service_rating", "delivery_rating")
REVIEW_FIELDS = set(RATING_FIELDS) | {"order_id", "comment", "photos"}


class ReviewError(Exception):
    """Raised for review operation errors; status_code maps to the HTTP response."""
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def _rating(name: str, value, required: bool) -> int | None:
    if value is None:
        if required:
            raise ReviewError(f"{name} is required")
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ReviewError(f"{name} must be an integer from 1 to 5")
    if not 1 <= value <= 5:
        raise ReviewError(f"{name} must be an integer from 1 to 5")
    return value


def _photos(value) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(p, str) and p.strip() for p in value):
        raise ReviewError("photos must be a list of URLs")
    if len(value) > MAX_PHOTOS:
        raise ReviewError(f"At most {MAX_PHOTOS} photos are allowed")
    return [p.strip() for p in value]


def _refresh_template_rating(template_id: int) -> None:
    average = (
        db.session.query(func.avg(Review.overall_rating))
        .join(Order, Order.id == Review.order_id)
        .filter(Order.template_id == template_id)
        .scalar()
    )
    template = db.session.get(Template, template_id)
    if template is not None:
        template.rating_average = float(average or 0.0)


def create_review(*, customer: User, payload: dict) -> Review:
    """
    Raises:
        ReviewError: bad payload (400), not the owner / unknown order (404),
            order not completed or already reviewed (409)
    """
    if not isinstance(payload, dict):
        raise ReviewError("Invalid JSON payload")
    unknown = sorted(set(payload) - REVIEW_FIELDS)
    if unknown:
        raise ReviewError(f"Field not allowed: {', '.join(unknown)}")

    order_id = payload.get("order_id")
    if isinstance(order_id, bool) or not isinstance(order_id, int):
        raise ReviewError("order_id is required")

    order = db.session.get(Order, order_id)
    if order is None or order.customer_id != customer.id:
        raise ReviewError("Order not found", status_code=404)
    if order.status != OrderStatus.COMPLETED:
        raise ReviewError("Only completed orders can be reviewed", status_code=409)
    if order.review is not None:
        raise ReviewError("This order has already been reviewed", status_code=409)

    ratings = {
        name: _rating(name, payload.get(name), required=(name == "overall_rating"))
        for name in RATING_FIELDS
    }

    comment = payload.get("comment")
    if comment is not None:
        if not isinstance(comment, str):
            raise ReviewError("comment must be text")
        comment = comment.strip() or None
        if comment and len(comment) > MAX_COMMENT_LENGTH:
            raise ReviewError(f"comment exceeds max length {MAX_COMMENT_LENGTH}")

    review = Review(
        order_id=order.id,
        customer_id=customer.id,
        comment=comment,
        photos=_photos(payload.get("photos")),
        created_at=utcnow(),
        **ratings,
    )
    db.session.add(review)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ReviewError("This order has already been reviewed", status_code=409)

    if order.template_id is not None:
        _refresh_template_rating(order.template_id)

    audit_service.record(
        "CREATE",
        "reviews",
        review.id,
        actor=customer,
        new_values={"order_id": order.id, "overall_rating": review.overall_rating},
        commit=False,
    )
    db.session.commit()
    return review


def list_reviews(order_id: int | None = None) -> list[Review]:
    query = db.session.query(Review)
    if order_id is not None:
        query = query.filter(Review.order_id == order_id)
    return query.order_by(Review.created_at.desc(), Review.id.desc()).all()
