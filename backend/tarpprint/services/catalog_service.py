# backend/tarpprint/services/catalog_service.py
"""
Catalog Service

Reference data the ordering flow reads: materials (with their per-square-
meter rate), design templates, the fixed order statuses and the payment
methods. Only materials are editable, and only by admins.
"""
from __future__ import annotations

from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Material, Template, OrderStatus, User
from ..validation import ConflictError
from . import audit_service
from .payment_service import list_payment_methods as _list_payment_methods
from tarpprint.money import money_to_json
from tarpprint.time_utils import utcnow

MATERIAL_MUTABLE_FIELDS = {"name", "description", "price_per_sqm", "available"}

TEMPLATE_CATEGORIES = ("Business", "Events", "Promotions", "Real Estate")

TEMPLATE_SORTS = ("popular", "rating", "newest", "price-low", "price-high")

DEFAULT_MATERIALS = (
    ("Standard Vinyl", "Durable vinyl for indoor and short-term outdoor use", "180.00"),
    ("Heavy Duty Vinyl", "Thick, weatherproof vinyl for long-term outdoor display", "250.00"),
    ("Mesh Vinyl", "Perforated vinyl that lets wind through, for fences and scaffolding", "280.00"),
    ("Backlit Film", "Translucent film for lightboxes and illuminated signage", "350.00"),
)

DEFAULT_TEMPLATES = (
    ("Grand Opening", "Bold announcement layout for store openings", "Business", "0.00"),
    ("Birthday Celebration", "Colorful banner with name and age placeholders", "Events", "50.00"),
    ("Flash Sale", "High-contrast discount banner", "Promotions", "0.00"),
    ("For Sale by Owner", "Property listing with contact strip", "Real Estate", "25.00"),
)


class CatalogError(Exception):
    """Raised for catalog lookups that cannot be satisfied."""
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


# =============================================================================
# MATERIALS
# =============================================================================

def list_materials(available_only: bool = False) -> list[Material]:
    query = db.session.query(Material)
    if available_only:
        query = query.filter(Material.available.is_(True))
    return query.order_by(Material.name.asc(), Material.id.asc()).all()


def get_material(material_id: int) -> Material | None:
    return db.session.get(Material, material_id)


def _material_snapshot(material: Material, fields) -> dict:
    snapshot = {}
    for field in fields:
        value = getattr(material, field)
        snapshot[field] = money_to_json(value) if field == "price_per_sqm" else value
    return snapshot


def create_material(*, patch: dict, actor: User | None = None) -> Material:
    """Create a material from a validated patch. Raises ConflictError on duplicate name."""
    existing = db.session.query(Material).filter(
        db.func.lower(Material.name) == patch["name"].lower()
    ).first()
    if existing:
        raise ConflictError("Material name already exists")

    material = Material(**{k: v for k, v in patch.items() if k in MATERIAL_MUTABLE_FIELDS})
    if material.available is None:
        material.available = True
    material.created_at = utcnow()
    db.session.add(material)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Material name already exists")

    audit_service.record(
        "CREATE",
        "materials",
        material.id,
        actor=actor,
        new_values=_material_snapshot(material, MATERIAL_MUTABLE_FIELDS),
        commit=False,
    )
    db.session.commit()
    return material


def update_material(*, material_id: int, patch: dict, actor: User | None = None) -> Material | None:
    """Apply a validated patch. Returns None if the material does not exist."""
    material = db.session.get(Material, material_id)
    if material is None:
        return None

    if "name" in patch:
        clash = db.session.query(Material).filter(
            db.func.lower(Material.name) == patch["name"].lower(),
            Material.id != material_id,
        ).first()
        if clash:
            raise ConflictError("Material name already exists")

    changed = [k for k, v in patch.items() if k in MATERIAL_MUTABLE_FIELDS and getattr(material, k) != v]
    if not changed:
        return material

    old_values = _material_snapshot(material, changed)
    for k in changed:
        setattr(material, k, patch[k])

    audit_service.record(
        "UPDATE",
        "materials",
        material.id,
        actor=actor,
        old_values=old_values,
        new_values=_material_snapshot(material, changed),
        commit=False,
    )
    db.session.commit()
    return material


# =============================================================================
# TEMPLATES
# =============================================================================

def list_templates(
    *,
    search: str | None = None,
    category: str | None = None,
    sort: str | None = None,
) -> list[Template]:
    """
    Active templates only.

    sort: popular (usage_count desc, default), rating, newest,
    price-low, price-high.
    """
    sort = sort or "popular"
    if sort not in TEMPLATE_SORTS:
        raise CatalogError(f"sort must be one of {', '.join(TEMPLATE_SORTS)}")

    query = db.session.query(Template).filter(Template.is_active.is_(True))

    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            db.or_(
                db.func.lower(Template.name).like(pattern),
                db.func.lower(Template.description).like(pattern),
            )
        )

    if category and category.lower() != "all":
        query = query.filter(Template.category == category)

    order_by = {
        "popular": (Template.usage_count.desc(),),
        "rating": (Template.rating_average.desc(),),
        "newest": (Template.created_at.desc(),),
        "price-low": (Template.price_modifier.asc(),),
        "price-high": (Template.price_modifier.desc(),),
    }[sort]
    return query.order_by(*order_by, Template.id.asc()).all()


def get_template(template_id: int, active_only: bool = True) -> Template | None:
    template = db.session.get(Template, template_id)
    if template is None or (active_only and not template.is_active):
        return None
    return template


# =============================================================================
# STATIC REFERENCE DATA
# =============================================================================

def list_statuses() -> list[dict]:
    return [
        {"value": status, "label": status.capitalize(), "color": OrderStatus.COLORS[status], "ordinal": index}
        for index, status in enumerate(OrderStatus.ALL)
    ]


def list_payment_methods() -> list[dict]:
    return _list_payment_methods()


def seed_catalog() -> dict:
    """
    Insert the default materials and templates that are missing.

    Idempotent: existing rows (matched by name) are left alone.
    """
    now = utcnow()
    created_materials = 0
    for name, description, price in DEFAULT_MATERIALS:
        if db.session.query(Material).filter_by(name=name).first():
            continue
        db.session.add(Material(
            name=name,
            description=description,
            price_per_sqm=Decimal(price),
            available=True,
            created_at=now,
        ))
        created_materials += 1

    created_templates = 0
    for name, description, category, modifier in DEFAULT_TEMPLATES:
        if db.session.query(Template).filter_by(name=name).first():
            continue
        db.session.add(Template(
            name=name,
            description=description,
            category=category,
            price_modifier=Decimal(modifier),
            rating_average=0.0,
            usage_count=0,
            is_active=True,
            created_at=now,
        ))
        created_templates += 1

    db.session.commit()
    return {"materials": created_materials, "templates": created_templates}
