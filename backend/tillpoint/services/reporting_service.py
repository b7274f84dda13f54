# Overview: Service-layer operations for reporting; sales listings and revenue aggregates.

from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import func

from ..errors import NotFound, ValidationError
from ..extensions import db
from ..models import Sale, SaleItem, SALE_STATUS_COMPLETED, SALE_STATUS_VOID
from ..time_utils import day_bounds, utcnow

VALID_STATUSES = (SALE_STATUS_COMPLETED, SALE_STATUS_VOID)


def list_sales(status: str | None = None, limit: int = 100) -> list[Sale]:
    """Sales newest first, optionally filtered by status."""
    if limit < 1 or limit > 1000:
        raise ValidationError("limit must be between 1 and 1000")

    query = db.session.query(Sale)
    if status:
        status = status.upper()
        if status not in VALID_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(VALID_STATUSES)}")
        query = query.filter(Sale.status == status)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).all()


def get_sale_detail(sale_id: int) -> dict:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFound("Sale not found", details={"sale_id": sale_id})
    return sale.to_dict(include_items=True)


def today_summary(today: date | None = None) -> dict:
    """Revenue and count of COMPLETED sales created today (UTC)."""
    today = today or utcnow().date()
    start, end = day_bounds(today)

    revenue, count = db.session.query(
        func.coalesce(func.sum(Sale.total_cents), 0),
        func.count(Sale.id),
    ).filter(
        Sale.status == SALE_STATUS_COMPLETED,
        Sale.created_at >= start,
        Sale.created_at < end,
    ).one()

    return {
        "date": today.isoformat(),
        "revenue_cents": int(revenue),
        "sales_count": int(count),
    }


def top_products(limit: int = 5) -> list[dict]:
    """Best sellers by quantity across COMPLETED sales."""
    qty = func.sum(SaleItem.quantity).label("total_quantity")
    rows = (
        db.session.query(
            SaleItem.product_id,
            func.max(SaleItem.product_name).label("product_name"),
            qty,
            func.sum(SaleItem.subtotal_cents).label("revenue_cents"),
        )
        .join(Sale, Sale.id == SaleItem.sale_id)
        .filter(Sale.status == SALE_STATUS_COMPLETED)
        .group_by(SaleItem.product_id)
        .order_by(qty.desc(), SaleItem.product_id.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "product_id": row.product_id,
            "product_name": row.product_name,
            "total_quantity": int(row.total_quantity),
            "revenue_cents": int(row.revenue_cents),
        }
        for row in rows
    ]


def daily_sales(days: int = 7, today: date | None = None) -> list[dict]:
    """
    COMPLETED revenue per calendar day for the last `days` days, oldest
    first, including days with no sales.
    """
    if days < 1 or days > 366:
        raise ValidationError("days must be between 1 and 366")

    today = today or utcnow().date()
    first_day = today - timedelta(days=days - 1)
    start, _ = day_bounds(first_day)
    _, end = day_bounds(today)

    day_expr = func.date(Sale.created_at)
    rows = (
        db.session.query(
            day_expr.label("day"),
            func.coalesce(func.sum(Sale.total_cents), 0).label("revenue_cents"),
            func.count(Sale.id).label("sales_count"),
        )
        .filter(
            Sale.status == SALE_STATUS_COMPLETED,
            Sale.created_at >= start,
            Sale.created_at < end,
        )
        .group_by(day_expr)
        .all()
    )
    by_day = {str(row.day): row for row in rows}

    result = []
    for offset in range(days):
        day = (first_day + timedelta(days=offset)).isoformat()
        row = by_day.get(day)
        result.append({
            "date": day,
            "revenue_cents": int(row.revenue_cents) if row else 0,
            "sales_count": int(row.sales_count) if row else 0,
        })
    return result
