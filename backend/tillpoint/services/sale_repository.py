# Overview: Sale Repository; stages and reads Sale/SaleItem rows inside the caller's unit of work.

from __future__ import annotations

from typing import Iterable

from sqlalchemy import update

from ..extensions import db
from ..models import Sale, SaleItem, SALE_STATUS_COMPLETED, SALE_STATUS_VOID
from ..time_utils import utcnow


def insert_sale(
    *,
    total_cents: int,
    cash_cents: int,
    change_cents: int,
    user_id: int | None,
    lines: Iterable,
) -> Sale:
    """
    Stage a COMPLETED sale and one SaleItem per line, then flush to get ids.

    lines are CartLine-like (product_id, name, unit_price_cents, quantity,
    subtotal_cents). Nothing is committed here.
    """
    sale = Sale(
        created_at=utcnow(),
        total_cents=total_cents,
        cash_cents=cash_cents,
        change_cents=change_cents,
        user_id=user_id,
        status=SALE_STATUS_COMPLETED,
    )
    db.session.add(sale)
    db.session.flush()

    for line in lines:
        db.session.add(SaleItem(
            sale_id=sale.id,
            product_id=line.product_id,
            product_name=line.name,
            quantity=line.quantity,
            unit_price_cents=line.unit_price_cents,
            subtotal_cents=line.subtotal_cents,
        ))
    db.session.flush()
    return sale


def get_sale(sale_id: int) -> Sale | None:
    return db.session.get(Sale, sale_id)


def get_sale_items(sale_id: int) -> list[SaleItem]:
    return (
        db.session.query(SaleItem)
        .filter(SaleItem.sale_id == sale_id)
        .order_by(SaleItem.id.asc())
        .all()
    )


def mark_void(sale_id: int, user_id: int | None) -> bool:
    """
    Conditionally move a sale from COMPLETED to VOID.

    False when the sale is missing or already VOID; of two concurrent
    callers exactly one sees True.
    """
    result = db.session.execute(
        update(Sale)
        .where(Sale.id == sale_id, Sale.status == SALE_STATUS_COMPLETED)
        .values(status=SALE_STATUS_VOID, voided_at=utcnow(), voided_by_user_id=user_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
