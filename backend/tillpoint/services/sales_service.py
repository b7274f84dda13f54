# Overview: Transaction coordinator; checkout, void and edit-reload as all-or-nothing units of work.

"""
Sales Service - transaction coordinator

Checkout:  NEW -> VALIDATING -> COMMITTING -> COMMITTED
Void:      COMMITTED -> VOIDING -> VOID
FAILED is reachable from VALIDATING, COMMITTING and VOIDING and always
means nothing was persisted by that attempt.

Invariants:
- A sale, all of its items and all of its stock decrements are written in
  one database transaction or not at all.
- Stock is decremented only by the conditional UPDATE in stock_service;
  a failed condition on any line aborts the whole checkout (StockConflict).
- A sale moves COMPLETED -> VOID at most once. The status flip is itself a
  conditional UPDATE, so a second (or concurrent) void is rejected with
  NotFound and restores no stock.
- One cart yields at most one sale per checkout: the cart is claimed before
  validation, so a concurrent second checkout fails with CartBusy and a
  later one finds the cart empty.
- Sales and sale items are never deleted or rewritten. Edit-reload voids
  the original and seeds a cart; the corrected checkout is a new sale.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field

from ..errors import (
    InsufficientCash,
    InvalidTransition,
    NotFound,
    PersistenceError,
    StockConflict,
    TransactionError,
    ValidationError,
)
from ..extensions import db
from ..models import Sale
from . import sale_repository, stock_service
from .cart import Cart
from .concurrency import run_with_retry
from .session_service import SessionContext

log = logging.getLogger(__name__)


class TransactionState(str, enum.Enum):
    NEW = "NEW"
    VALIDATING = "VALIDATING"
    COMMITTING = "COMMITTING"
    COMMITTED = "COMMITTED"
    VOIDING = "VOIDING"
    VOID = "VOID"
    FAILED = "FAILED"


_TRANSITIONS: dict[TransactionState, frozenset[TransactionState]] = {
    TransactionState.NEW: frozenset({TransactionState.VALIDATING}),
    TransactionState.VALIDATING: frozenset({TransactionState.COMMITTING, TransactionState.FAILED}),
    TransactionState.COMMITTING: frozenset({TransactionState.COMMITTED, TransactionState.FAILED}),
    TransactionState.COMMITTED: frozenset({TransactionState.VOIDING}),
    TransactionState.VOIDING: frozenset({TransactionState.VOID, TransactionState.FAILED}),
    TransactionState.VOID: frozenset(),
    TransactionState.FAILED: frozenset(),
}


@dataclass
class TransactionAttempt:
    """State history of one checkout or void attempt."""
    operation: str
    state: TransactionState = TransactionState.NEW
    history: list[TransactionState] = field(default_factory=list)
    error: TransactionError | None = None
    sale_id: int | None = None

    def __post_init__(self):
        if not self.history:
            self.history.append(self.state)

    def advance(self, target: TransactionState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransition(
                f"{self.operation}: cannot move from {self.state.value} to {target.value}",
                details={"from": self.state.value, "to": target.value},
            )
        log.debug("%s sale=%s %s -> %s", self.operation, self.sale_id, self.state.value, target.value)
        self.state = target
        self.history.append(target)

    def fail(self, error: TransactionError) -> None:
        self.error = error
        self.advance(TransactionState.FAILED)

    @property
    def terminal(self) -> bool:
        return not _TRANSITIONS[self.state]


@dataclass(frozen=True)
class VoidedItem:
    """Copy of a committed sale item taken inside the void transaction."""
    product_id: int
    product_name: str
    unit_price_cents: int
    quantity: int


def checkout(
    cart: Cart,
    cash_tendered_cents: int,
    context: SessionContext,
    attempt: TransactionAttempt | None = None,
) -> Sale:
    """
    Turn the cart into a COMPLETED sale, decrementing stock for every line.

    The cart is claimed for the duration of the call. On success it is
    cleared and the new Sale is returned. On any failure the claim is
    released, the cart is left intact and nothing is persisted:
    - CartBusy: another checkout of this cart is still running
    - ValidationError: empty cart or malformed cash amount
    - InsufficientCash: cash_tendered_cents < cart total
    - InsufficientStock: live stock no longer covers a line (pre-check)
    - StockConflict: a conditional decrement failed at commit time
    - PersistenceError: storage failure; the unit of work rolled back
    """
    attempt = attempt or TransactionAttempt("checkout")
    attempt.advance(TransactionState.VALIDATING)

    try:
        lines = cart.claim()
    except TransactionError as exc:
        attempt.fail(exc)
        log.info("Checkout rejected (%s): %s", exc.kind, exc)
        raise

    committed = False
    try:
        sale = _commit_claimed(lines, cash_tendered_cents, context, attempt)
        committed = True
    finally:
        cart.release(clear=committed)

    log.info(
        "Sale %s committed by user %s: %d lines, total=%d cash=%d change=%d",
        sale.id, context.user_id, len(lines), sale.total_cents, sale.cash_cents, sale.change_cents,
    )
    return sale


def _commit_claimed(
    lines: tuple,
    cash_tendered_cents: int,
    context: SessionContext,
    attempt: TransactionAttempt,
) -> Sale:
    try:
        if isinstance(cash_tendered_cents, bool) or not isinstance(cash_tendered_cents, int):
            raise ValidationError("cash_tendered must be an amount in cents")

        total_cents = sum(line.subtotal_cents for line in lines)
        if cash_tendered_cents < total_cents:
            raise InsufficientCash(total_cents, cash_tendered_cents)
        change_cents = cash_tendered_cents - total_cents

        for line in lines:
            stock_service.check_availability(line.product_id, line.quantity)
    except TransactionError as exc:
        attempt.fail(exc)
        log.info("Checkout rejected (%s): %s", exc.kind, exc)
        raise

    attempt.advance(TransactionState.COMMITTING)

    def _op() -> Sale:
        sale = sale_repository.insert_sale(
            total_cents=total_cents,
            cash_cents=cash_tendered_cents,
            change_cents=change_cents,
            user_id=context.user_id,
            lines=lines,
        )
        for line in lines:
            if not stock_service.try_decrement_stock(line.product_id, line.quantity):
                raise StockConflict(line.product_id, line.quantity)
        db.session.commit()
        return sale

    try:
        sale = run_with_retry(_op)
    except TransactionError as exc:
        attempt.fail(exc)
        if isinstance(exc, StockConflict):
            log.warning("Checkout conflict on product %s, rolled back", exc.product_id)
        else:
            log.error("Checkout rolled back (%s): %s", exc.kind, exc)
        raise

    attempt.sale_id = sale.id
    attempt.advance(TransactionState.COMMITTED)
    return sale


def _void(
    sale_id: int,
    context: SessionContext,
    attempt: TransactionAttempt | None,
) -> tuple[Sale, list[VoidedItem]]:
    attempt = attempt or TransactionAttempt("void", state=TransactionState.COMMITTED)
    attempt.sale_id = sale_id
    attempt.advance(TransactionState.VOIDING)

    def _op() -> list[VoidedItem]:
        # Status flip first: it is the gate that makes a second void a no-op.
        if not sale_repository.mark_void(sale_id, context.user_id):
            raise NotFound(
                f"Sale {sale_id} not found or already void",
                details={"sale_id": sale_id},
            )

        voided = []
        for item in sale_repository.get_sale_items(sale_id):
            if not stock_service.increment_stock(item.product_id, item.quantity):
                raise PersistenceError(
                    f"Product {item.product_id} missing while restoring stock",
                    details={"sale_id": sale_id, "product_id": item.product_id},
                )
            voided.append(VoidedItem(
                product_id=item.product_id,
                product_name=item.product_name,
                unit_price_cents=item.unit_price_cents,
                quantity=item.quantity,
            ))

        db.session.commit()
        return voided

    try:
        items = run_with_retry(_op)
    except TransactionError as exc:
        attempt.fail(exc)
        log.info("Void of sale %s rejected (%s): %s", sale_id, exc.kind, exc)
        raise

    attempt.advance(TransactionState.VOID)
    log.info("Sale %s voided by user %s, %d items restocked", sale_id, context.user_id, len(items))
    return sale_repository.get_sale(sale_id), items


def void_sale(
    sale_id: int,
    context: SessionContext,
    attempt: TransactionAttempt | None = None,
) -> Sale:
    """
    Void a COMPLETED sale and restore the stock its items consumed.

    Raises NotFound when the sale does not exist or is already VOID.
    """
    sale, _ = _void(sale_id, context, attempt)
    return sale


def edit_reload(
    sale_id: int,
    context: SessionContext,
    attempt: TransactionAttempt | None = None,
) -> Cart:
    """
    Void sale_id and return a fresh cart seeded with its former items.

    Void failures propagate unchanged and no cart is produced. The cart is
    tagged with source_sale_id for display only; checking it out creates a
    new sale while the original stays VOID.
    """
    _, items = _void(sale_id, context, attempt)
    return Cart.from_sale_items(items, source_sale_id=sale_id)
