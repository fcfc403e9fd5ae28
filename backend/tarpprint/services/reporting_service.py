# Overview: Service-layer operations for reporting; sales aggregates persisted as snapshots.

from __future__ import annotations

from collections import Counter
from datetime import date, datetime, time
from decimal import Decimal

from flask import current_app, has_app_context

from ..extensions import db
from ..models import Order, SalesReport, User
from . import audit_service
from tarpprint.money import money_to_json, quantize_money
from tarpprint.time_utils import parse_iso_datetime, utcnow


REPORT_TYPES = ("daily", "weekly", "monthly")

TOP_N = 5

DEFAULT_LIST_LIMIT = 10

NOT_SPECIFIED = "Not Specified"
UNKNOWN_MATERIAL = "Unknown"


class ReportError(Exception):
    """Raised when report generation fails."""
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def _parse_date(name: str, value) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ReportError(f"{name} is required")
    try:
        return parse_iso_datetime(value).date()
    except ValueError:
        raise ReportError(f"{name} must be a YYYY-MM-DD date")


def _top(counter: Counter, limit: int = TOP_N) -> list[dict]:
    """Most frequent first; equal counts ordered by name."""
    ranked = sorted(counter.items(), key=lambda item: (-item[1], item[0]))
    return [{"name": name, "count": count} for name, count in ranked[:limit]]


def aggregate_orders(orders) -> dict:
    """Pure aggregation over already-loaded orders."""
    revenue = Decimal("0")
    customers = set()
    materials: Counter = Counter()
    methods: Counter = Counter()
    templates: Counter = Counter()

    for order in orders:
        revenue += order.total_price or Decimal("0")
        customers.add(order.customer_id)
        materials[order.material.name if order.material else UNKNOWN_MATERIAL] += 1
        methods[order.payment_method or NOT_SPECIFIED] += 1
        if order.template is not None:
            templates[order.template.name] += 1

    return {
        "total_orders": len(orders),
        "total_revenue": quantize_money(revenue),
        "total_customers": len(customers),
        "popular_materials": _top(materials),
        "payment_methods_breakdown": dict(sorted(methods.items())),
        "top_templates": _top(templates),
    }


def generate_sales_report(
    *,
    report_type: str,
    start_date,
    end_date,
    actor: User | None = None,
) -> SalesReport:
    """
    Aggregate orders created in [start_date 00:00, end_date 23:59:59] and
    persist the result as a new SalesReport.

    report_type is a label only; it does not bin the range. Orders of every
    status are counted. An empty range yields zeros and empty breakdowns.
    """
    if report_type not in REPORT_TYPES:
        raise ReportError(f"report_type must be one of {', '.join(REPORT_TYPES)}")

    start = _parse_date("start_date", start_date)
    end = _parse_date("end_date", end_date)
    if start > end:
        raise ReportError("start_date must be on or before end_date")

    start_dt = datetime.combine(start, time.min)
    end_dt = datetime.combine(end, time(23, 59, 59, 999999))

    orders = (
        db.session.query(Order)
        .filter(Order.created_at >= start_dt, Order.created_at <= end_dt)
        .all()
    )
    summary = aggregate_orders(orders)

    report = SalesReport(
        report_type=report_type,
        start_date=start,
        end_date=end,
        total_orders=summary["total_orders"],
        total_revenue=summary["total_revenue"],
        total_customers=summary["total_customers"],
        popular_materials=summary["popular_materials"],
        payment_methods_breakdown=summary["payment_methods_breakdown"],
        top_templates=summary["top_templates"],
        generated_by_user_id=actor.id if actor else None,
        created_at=utcnow(),
    )
    db.session.add(report)
    db.session.flush()

    audit_service.record(
        "CREATE",
        "sales_reports",
        report.id,
        actor=actor,
        new_values={
            "report_type": report_type,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "total_orders": summary["total_orders"],
            "total_revenue": money_to_json(summary["total_revenue"]),
        },
        commit=False,
    )
    db.session.commit()

    if has_app_context():
        current_app.logger.info(
            "Generated %s sales report %s..%s (%d orders)",
            report_type, start, end, summary["total_orders"],
        )
    return report


def list_reports(limit: int = DEFAULT_LIST_LIMIT) -> list[SalesReport]:
    if limit < 1:
        raise ReportError("limit must be >= 1")
    return (
        db.session.query(SalesReport)
        .order_by(SalesReport.created_at.desc(), SalesReport.id.desc())
        .limit(limit)
        .all()
    )


def get_report(report_id: int) -> SalesReport | None:
    return db.session.get(SalesReport, report_id)
