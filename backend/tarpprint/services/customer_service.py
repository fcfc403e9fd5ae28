# Overview: Service-layer operations for the back-office customer list.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Order, User
from tarpprint.money import money_to_json


def _customer_row(user: User, order_count: int, total_spent) -> dict:
    data = user.to_dict()
    data["order_count"] = int(order_count or 0)
    data["total_spent"] = money_to_json(total_spent or 0)
    return data


def list_customers(search: str | None = None) -> list[dict]:
    """
    Customers with their order count and lifetime spend, newest first.

    search is a case-insensitive substring match on name or email.
    """
    stats = (
        db.session.query(
            Order.customer_id.label("customer_id"),
            func.count(Order.id).label("order_count"),
            func.coalesce(func.sum(Order.total_price), 0).label("total_spent"),
        )
        .group_by(Order.customer_id)
        .subquery()
    )

    query = (
        db.session.query(User, stats.c.order_count, stats.c.total_spent)
        .outerjoin(stats, stats.c.customer_id == User.id)
        .filter(User.role == "customer")
    )

    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            db.or_(
                func.lower(User.name).like(pattern),
                func.lower(User.email).like(pattern),
            )
        )

    rows = query.order_by(User.created_at.desc(), User.id.desc()).all()
    return [_customer_row(user, count, spent) for user, count, spent in rows]


def get_customer(customer_id: int) -> dict | None:
    """One customer with their orders (newest first), or None."""
    user = db.session.get(User, customer_id)
    if user is None or user.role != "customer":
        return None

    orders = (
        db.session.query(Order)
        .filter_by(customer_id=user.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    total = sum((o.total_price for o in orders), 0)
    data = _customer_row(user, len(orders), total)
    data["orders"] = [o.to_dict(include_customer=False) for o in orders]
    return data
