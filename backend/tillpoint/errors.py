# Overview: Error taxonomy shared by the cart, stock validator and transaction coordinator.

"""
Transaction error taxonomy.

Every failure the core reports is a TransactionError subclass so callers can
branch on the kind:

- retryable=True  (StockConflict, PersistenceError): re-validate and retry.
- retryable=False (ValidationError, InsufficientStock, InsufficientCash,
  NotFound, CartBusy): correct the input or wait for the pending checkout.

status_code is the HTTP status the API layer answers with.
"""

from __future__ import annotations


class TransactionError(Exception):
    """Base class for checkout/void/edit failures."""

    kind = "transaction_error"
    status_code = 400
    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "kind": self.kind,
            "retryable": self.retryable,
            "details": self.details,
        }


class ValidationError(TransactionError):
    """Input rejected before any storage access (empty cart, bad quantity, bad money)."""

    kind = "validation_error"
    status_code = 400


class InsufficientStock(TransactionError):
    kind = "insufficient_stock"
    status_code = 422

    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for product {product_id}: requested {requested}, available {available}",
            details={"product_id": product_id, "requested": requested, "available": available},
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class InsufficientCash(TransactionError):
    kind = "insufficient_cash"
    status_code = 422

    def __init__(self, total_cents: int, tendered_cents: int):
        super().__init__(
            "Insufficient cash tendered",
            details={
                "total_cents": total_cents,
                "tendered_cents": tendered_cents,
                "shortfall_cents": total_cents - tendered_cents,
            },
        )
        self.total_cents = total_cents
        self.tendered_cents = tendered_cents


class StockConflict(TransactionError):
    """Conditional stock decrement failed at commit time; nothing was written."""

    kind = "stock_conflict"
    status_code = 409
    retryable = True

    def __init__(self, product_id: int, requested: int):
        super().__init__(
            f"Stock for product {product_id} changed during checkout",
            details={"product_id": product_id, "requested": requested},
        )
        self.product_id = product_id
        self.requested = requested


class CartBusy(TransactionError):
    """The cart is claimed by a checkout that has not finished yet."""

    kind = "cart_busy"
    status_code = 409

    def __init__(self, message: str = "A checkout is already in progress for this cart"):
        super().__init__(message)


class PersistenceError(TransactionError):
    """Storage or connectivity failure; the unit of work was rolled back."""

    kind = "persistence_error"
    status_code = 503
    retryable = True


class NotFound(TransactionError):
    kind = "not_found"
    status_code = 404


class ConflictError(TransactionError):
    """Catalogue uniqueness conflict (e.g., duplicate barcode)."""

    kind = "conflict"
    status_code = 409


class InvalidTransition(TransactionError):
    """A transaction attempt was asked to move to a state it cannot reach."""

    kind = "invalid_transition"
    status_code = 500
