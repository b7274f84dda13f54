# backend/tillpoint/services/products_service.py
"""
Products Service

Catalogue maintenance and scan lookup. Stock is not editable through
apply_product_patch once a product exists; stock moves only through
checkout/void (conditional writes) or restock_product.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFound, ValidationError
from ..extensions import db
from ..models import Product, SaleItem
from ..validation import parse_quantity
from . import stock_service

log = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {"barcode", "name", "description", "price_cents", "category", "is_active"}


@dataclass(frozen=True)
class ScanRequest:
    """Parsed terminal input: "query" or "query*qty"."""
    query: str
    quantity: int = 1


def parse_scan_input(text: str | None) -> ScanRequest:
    """
    Split "coffee*3" into ScanRequest("coffee", 3).

    A quantity that is not a positive integer is a ValidationError.
    """
    raw = (text or "").strip()
    if not raw:
        raise ValidationError("Scan input is empty")

    if "*" not in raw:
        return ScanRequest(query=raw)

    query, _, qty_text = raw.partition("*")
    query = query.strip()
    if not query:
        raise ValidationError("Scan input is missing a product")
    return ScanRequest(query=query, quantity=parse_quantity(qty_text))


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_products(search: str | None = None, include_inactive: bool = False) -> list[Product]:
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(or_(
            func.lower(Product.barcode).like(pattern),
            func.lower(Product.name).like(pattern),
            func.lower(Product.category).like(pattern),
        ))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


def find_by_scan(query: str) -> Product | None:
    """Exact (case-insensitive) barcode match first, then first name containing query."""
    needle = query.strip().lower()
    if not needle:
        return None

    product = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), func.lower(Product.barcode) == needle)
        .first()
    )
    if product:
        return product

    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), func.lower(Product.name).like(f"%{needle}%"))
        .order_by(Product.name.asc(), Product.id.asc())
        .first()
    )


def _commit_or_conflict(barcode: str | None) -> None:
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError(f"Barcode '{barcode}' already exists") from exc


def create_product(patch: dict) -> Product:
    barcode = patch.get("barcode")
    if barcode and db.session.query(Product).filter_by(barcode=barcode).first():
        raise ConflictError(f"Barcode '{barcode}' already exists")

    product = Product(stock=patch.get("stock") or 0)
    apply_product_patch(product, patch)
    db.session.add(product)
    _commit_or_conflict(barcode)
    log.info("Product %s created (%s)", product.id, product.barcode)
    return product


def update_product(product_id: int, patch: dict) -> Product | None:
    product = db.session.get(Product, product_id)
    if not product:
        return None

    if "stock" in patch:
        raise ValidationError("stock cannot be edited directly; use restock")

    barcode = patch.get("barcode")
    if barcode and barcode != product.barcode:
        if db.session.query(Product).filter_by(barcode=barcode).first():
            raise ConflictError(f"Barcode '{barcode}' already exists")

    apply_product_patch(product, patch)
    _commit_or_conflict(barcode)
    return product


def restock_product(product_id: int, quantity: int) -> Product:
    """Add received units with a single atomic increment."""
    quantity = parse_quantity(quantity)
    if not stock_service.increment_stock(product_id, quantity):
        db.session.rollback()
        raise NotFound("Product not found", details={"product_id": product_id})
    db.session.commit()
    product = db.session.get(Product, product_id)
    db.session.refresh(product)
    return product


def delete_product(product_id: int) -> str | None:
    """
    Remove a product from the catalogue.

    Returns "deleted" when no sale item references it, "deactivated" when
    history exists (the row is kept so sale items stay resolvable), or None
    if the product does not exist.
    """
    product = db.session.get(Product, product_id)
    if not product:
        return None

    referenced = db.session.query(SaleItem.id).filter_by(product_id=product_id).first() is not None
    if referenced:
        product.is_active = False
        db.session.commit()
        log.info("Product %s deactivated (has sale history)", product_id)
        return "deactivated"

    db.session.delete(product)
    db.session.commit()
    log.info("Product %s deleted", product_id)
    return "deleted"
