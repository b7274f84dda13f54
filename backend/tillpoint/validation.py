from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError


# Maximum price: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

# Largest quantity a single cart line may request
MAX_LINE_QUANTITY = 100_000


@dataclass(frozen=True)
class ModelValidationPolicy:
    """Which fields a client may write, and which a create must include."""
    writable_fields: set[str]
    required_on_create: set[str] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _parse_int_text(key: str, value: str) -> int:
    stripped = value.strip()
    if not stripped:
        raise ValidationError(f"{key} must be an integer")
    # Reject scientific notation (e.g., "1e15") and decimals (e.g., "12.5")
    if "e" in stripped.lower():
        raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
    if "." in stripped:
        raise ValidationError(f"{key} must be an integer (no decimals)")
    try:
        return int(stripped)
    except ValueError:
        raise ValidationError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be an integer")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            return _parse_int_text(col.key, value)
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def _check_text(key: str, col, val: str) -> None:
    if val == "" and not col.nullable:
        raise ValidationError(f"{key} cannot be blank")
    limit = getattr(col.type, "length", None)
    if limit and len(val) > limit:
        raise ValidationError(f"{key} exceeds max length {limit}")


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Turn a JSON body into a patch dict for `model`.

    Keys outside policy.writable_fields are rejected, values are coerced to
    the column type, and NOT NULL text columns may not be blank. With
    partial=False every field in policy.required_on_create must be present.
    """
    payload = {} if payload is None else payload
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted((policy.required_on_create or set()) - payload.keys())
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = _columns_by_key(model)
    for key in payload:
        if key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {key}")
        if key not in columns:
            raise ValidationError(f"Unknown field: {key}")

    patch: dict = {}
    for key, raw in payload.items():
        col = columns[key]
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
            continue

        value = _coerce_value(col, raw)
        if isinstance(value, str):
            _check_text(key, col, value)
        patch[key] = value

    return patch


def enforce_rules_product(patch: dict) -> None:
    """Business rules that are not captured by SQLAlchemy metadata alone."""
    if patch.get("price_cents") is not None:
        price = patch["price_cents"]
        if price < 0:
            raise ValidationError("price_cents must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"price_cents cannot exceed {MAX_PRICE_CENTS}")

    if patch.get("stock") is not None and patch["stock"] < 0:
        raise ValidationError("stock must be >= 0")


def parse_quantity(value: Any, *, field: str = "quantity") -> int:
    """
    Parse a cart quantity from JSON or text input.

    Accepts ints and digit strings; rejects bools, floats, decimals,
    scientific notation, zero and negatives.
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        qty = value
    elif isinstance(value, str):
        qty = _parse_int_text(field, value)
    else:
        raise ValidationError(f"{field} must be an integer")

    if qty <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    if qty > MAX_LINE_QUANTITY:
        raise ValidationError(f"{field} cannot exceed {MAX_LINE_QUANTITY}")
    return qty


def parse_delta(value: Any) -> int:
    """Parse a signed, non-zero quantity adjustment."""
    if isinstance(value, bool) or value is None:
        raise ValidationError("delta must be an integer")
    if isinstance(value, int):
        delta = value
    elif isinstance(value, str):
        delta = _parse_int_text("delta", value)
    else:
        raise ValidationError("delta must be an integer")
    if delta == 0:
        raise ValidationError("delta must be non-zero")
    return delta


def parse_money(value: Any, *, field: str = "amount") -> int:
    """
    Convert a money amount ("30.00", "30", 30, 30.5) to integer cents.

    Floats are routed through their shortest repr so 30.1 becomes 3010,
    but anything with more than two fractional digits is rejected rather
    than rounded.
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, float):
        value = repr(value)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValidationError(f"{field} is required")
    if not isinstance(value, (int, str, Decimal)):
        raise ValidationError(f"{field} must be a number")

    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    if amount < 0:
        raise ValidationError(f"{field} must be >= 0")

    cents = amount * 100
    if cents != cents.to_integral_value():
        raise ValidationError(f"{field} cannot have more than two decimal places")
    return int(cents)
