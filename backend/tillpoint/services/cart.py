# Overview: In-memory per-session cart; quantity merge, stock gating and exact totals.

"""
Cart

One line per product; re-adding a product merges quantities. Unit prices
are snapshotted when the line is first added and are not refreshed by
later adds. Money is integer cents, so total() is exact.

Every quantity increase goes through the stock validator (live read).
A rejected mutation leaves the cart exactly as it was.

A checkout claims the cart first; until it releases the claim the cart
rejects mutations and further checkouts with CartBusy.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Callable, Iterable

from ..errors import CartBusy, InsufficientCash, ValidationError
from . import stock_service


@dataclass(frozen=True)
class CartLine:
    product_id: int
    name: str
    unit_price_cents: int
    quantity: int

    @property
    def subtotal_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "unit_price_cents": self.unit_price_cents,
            "quantity": self.quantity,
            "subtotal_cents": self.subtotal_cents,
        }


class Cart:
    def __init__(
        self,
        availability: Callable[[int, int], int] | None = None,
        source_sale_id: int | None = None,
    ):
        # availability(product_id, qty) raises InsufficientStock on shortfall
        self._availability = availability or stock_service.check_availability
        self._lines: list[CartLine] = []
        # Set by edit-reload; informational only, never persisted
        self.source_sale_id = source_sale_id
        # Guards _lines and _claimed; request threads and worker threads share a cart
        self._lock = threading.RLock()
        self._claimed = False

    @classmethod
    def from_sale_items(
        cls,
        items: Iterable,
        source_sale_id: int,
        availability: Callable[[int, int], int] | None = None,
    ) -> "Cart":
        """
        Seed a cart from committed sale items (objects with product_id,
        product_name, unit_price_cents, quantity). Committed prices are kept.
        """
        cart = cls(availability=availability, source_sale_id=source_sale_id)
        for item in items:
            index = cart._index_of(item.product_id)
            if index is None:
                cart._lines.append(CartLine(
                    product_id=item.product_id,
                    name=item.product_name,
                    unit_price_cents=item.unit_price_cents,
                    quantity=item.quantity,
                ))
            else:
                line = cart._lines[index]
                cart._lines[index] = replace(line, quantity=line.quantity + item.quantity)
        return cart

    @property
    def lines(self) -> tuple[CartLine, ...]:
        with self._lock:
            return tuple(self._lines)

    @property
    def claimed(self) -> bool:
        return self._claimed

    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def _index_of(self, product_id: int) -> int | None:
        for i, line in enumerate(self._lines):
            if line.product_id == product_id:
                return i
        return None

    def _ensure_unclaimed(self) -> None:
        if self._claimed:
            raise CartBusy()

    def claim(self) -> tuple[CartLine, ...]:
        """
        Reserve the cart for one checkout and return the lines it will commit.

        While claimed, every mutation and any second claim raise CartBusy.
        An empty cart cannot be claimed (ValidationError). The claimant must
        call release() exactly once.
        """
        with self._lock:
            self._ensure_unclaimed()
            if not self._lines:
                raise ValidationError("Cart is empty")
            self._claimed = True
            return tuple(self._lines)

    def release(self, *, clear: bool = False) -> None:
        """End a claim; clear=True empties the cart (the checkout committed)."""
        with self._lock:
            if clear:
                self._lines.clear()
                self.source_sale_id = None
            self._claimed = False

    def add_item(self, product, qty: int) -> CartLine:
        """
        Add qty of product (anything with id, name, price_cents).

        Raises ValidationError for qty <= 0, InsufficientStock when the
        merged quantity exceeds live stock, and CartBusy during a checkout.
        """
        if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            raise ValidationError("Quantity must be a positive integer", details={"quantity": qty})

        with self._lock:
            self._ensure_unclaimed()
            index = self._index_of(product.id)
            if index is None:
                self._availability(product.id, qty)
                line = CartLine(
                    product_id=product.id,
                    name=product.name,
                    unit_price_cents=product.price_cents,
                    quantity=qty,
                )
                self._lines.append(line)
                return line

            current = self._lines[index]
            merged = current.quantity + qty
            self._availability(product.id, merged)
            line = replace(current, quantity=merged)
            self._lines[index] = line
            return line

    def adjust_quantity(self, line_index: int, delta: int) -> CartLine | None:
        """
        Change a line's quantity by delta. Returns the new line, or None
        when the line was removed (resulting quantity <= 0).
        """
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise ValidationError("delta must be an integer")

        with self._lock:
            self._ensure_unclaimed()
            if line_index < 0 or line_index >= len(self._lines):
                raise ValidationError("No cart line at index", details={"line_index": line_index})

            current = self._lines[line_index]
            new_qty = current.quantity + delta

            if new_qty <= 0:
                del self._lines[line_index]
                return None

            if delta > 0:
                self._availability(current.product_id, new_qty)

            line = replace(current, quantity=new_qty)
            self._lines[line_index] = line
            return line

    def total(self) -> int:
        with self._lock:
            return sum(line.subtotal_cents for line in self._lines)

    def cash_change(self, cash_tendered_cents: int) -> int:
        total = self.total()
        if cash_tendered_cents < total:
            raise InsufficientCash(total, cash_tendered_cents)
        return cash_tendered_cents - total

    def clear(self) -> None:
        with self._lock:
            self._ensure_unclaimed()
            self._lines.clear()
            self.source_sale_id = None

    def to_dict(self) -> dict:
        with self._lock:
            return {
                "lines": [line.to_dict() for line in self._lines],
                "total_cents": self.total(),
                "source_sale_id": self.source_sale_id,
                "checkout_pending": self._claimed,
            }


class CartRegistry:
    """
    Process-local map of session id -> Cart.

    Each session owns exactly one cart; carts are never shared between
    sessions. The lock only guards the mapping itself.
    """

    def __init__(self, cart_factory: Callable[[], Cart] = Cart):
        self._carts: dict[int, Cart] = {}
        self._lock = threading.Lock()
        self._factory = cart_factory

    def get(self, session_id: int) -> Cart:
        with self._lock:
            cart = self._carts.get(session_id)
            if cart is None:
                cart = self._factory()
                self._carts[session_id] = cart
            return cart

    def replace(self, session_id: int, cart: Cart) -> Cart:
        with self._lock:
            self._carts[session_id] = cart
            return cart

    def discard(self, session_id: int) -> None:
        with self._lock:
            self._carts.pop(session_id, None)

    def prune(self, live_session_ids: Iterable[int]) -> int:
        """Drop every cart whose session is not in live_session_ids; returns how many."""
        keep = set(live_session_ids)
        with self._lock:
            stale = [sid for sid in self._carts if sid not in keep]
            for sid in stale:
                del self._carts[sid]
            return len(stale)

    def __contains__(self, session_id: int) -> bool:
        with self._lock:
            return session_id in self._carts

    def reset(self) -> None:
        with self._lock:
            self._carts.clear()
