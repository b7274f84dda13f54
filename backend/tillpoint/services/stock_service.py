# Overview: Product Store access and the stock validator.

"""
Stock access for the transaction core.

Stock invariants:
- products.stock >= 0 at all times (CHECK constraint + conditional writes).
- Decrements are a single UPDATE ... WHERE stock >= qty evaluated by the
  database; success is read from rowcount. There is no read-then-write
  in application code.
- check_availability always reads the current row, never a cart-time value.
  It is a fast-fail pre-check; the conditional decrement at commit time is
  the only enforcement point under concurrency.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select, update

from ..errors import InsufficientStock, NotFound
from ..extensions import db
from ..models import Product


@dataclass(frozen=True)
class ProductSnapshot:
    """Price and stock of a product as observed at one instant."""
    id: int
    name: str
    price_cents: int
    stock: int
    is_active: bool = True


def get_product(product_id: int) -> ProductSnapshot | None:
    """Read a fresh snapshot straight from the products table."""
    row = db.session.execute(
        select(
            Product.id,
            Product.name,
            Product.price_cents,
            Product.stock,
            Product.is_active,
        ).where(Product.id == product_id)
    ).first()
    if row is None:
        return None
    return ProductSnapshot(
        id=row.id,
        name=row.name,
        price_cents=row.price_cents,
        stock=row.stock,
        is_active=row.is_active,
    )


def check_availability(product_id: int, requested_qty: int) -> int:
    """
    Return the live stock for product_id when it covers requested_qty.

    Raises InsufficientStock otherwise (a missing or inactive product has
    zero available).
    """
    snapshot = get_product(product_id)
    available = snapshot.stock if snapshot is not None and snapshot.is_active else 0
    if available < requested_qty:
        raise InsufficientStock(product_id, requested_qty, available)
    return available


def require_product(product_id: int) -> ProductSnapshot:
    snapshot = get_product(product_id)
    if snapshot is None or not snapshot.is_active:
        raise NotFound("Product not found", details={"product_id": product_id})
    return snapshot


def try_decrement_stock(product_id: int, qty: int) -> bool:
    """
    Conditionally remove qty units. True only if the row still had >= qty.

    Runs inside the caller's open unit of work; nothing is committed here.
    """
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= qty)
        .values(stock=Product.stock - qty)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def increment_stock(product_id: int, qty: int) -> bool:
    """Atomically add qty units. False if the product row does not exist."""
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + qty)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
