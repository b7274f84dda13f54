from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

SALE_STATUS_COMPLETED = "COMPLETED"
SALE_STATUS_VOID = "VOID"


class Sale(db.Model):
    """
    Committed sale (append-only audit record).

    LIFECYCLE: rows are created COMPLETED by checkout and may move once to
    VOID. They are never deleted or moved back; corrections are new sales.

    created_at is the single canonical timestamp used by listings and by
    the "today" revenue/count queries.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("status IN ('COMPLETED', 'VOID')", name="ck_sales_status"),
        db.Index("ix_sales_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    # Money (all amounts in cents)
    total_cents = db.Column(db.Integer, nullable=False)
    cash_cents = db.Column(db.Integer, nullable=False)
    change_cents = db.Column(db.Integer, nullable=False)

    # User attribution
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_COMPLETED)

    # Void audit trail
    voided_at = db.Column(db.DateTime, nullable=True)
    voided_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    items = db.relationship("SaleItem", back_populates="sale", lazy=True, order_by="SaleItem.id")

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "created_at": to_utc_z(self.created_at),
            "total_cents": self.total_cents,
            "cash_cents": self.cash_cents,
            "change_cents": self.change_cents,
            "user_id": self.user_id,
            "status": self.status,
            "voided_at": to_utc_z(self.voided_at) if self.voided_at else None,
            "voided_by_user_id": self.voided_by_user_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    Line item as committed. Immutable after insert, including across void.

    product_name and unit_price_cents are snapshots, so repricing or
    deactivating the product never rewrites history.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "subtotal_cents": self.subtotal_cents,
        }
