from decimal import Decimal

import pytest

from tillpoint.errors import ValidationError
from tillpoint.models import Product
from tillpoint.services.products_service import ScanRequest, parse_scan_input
from tillpoint.validation import (
    ModelValidationPolicy,
    parse_delta,
    parse_money,
    parse_quantity,
    validate_payload,
)


@pytest.mark.parametrize("raw, cents", [
    ("30.00", 3000),
    ("30", 3000),
    (30, 3000),
    ("0.1", 10),
    (25.5, 2550),
    (0.1, 10),
    (Decimal("12.34"), 1234),
    (" 7.05 ", 705),
])
def test_parse_money(raw, cents):
    assert parse_money(raw) == cents


@pytest.mark.parametrize("raw", [None, "", "abc", "-1", "1.234", True, [], "NaN", "Infinity"])
def test_parse_money_rejects(raw):
    with pytest.raises(ValidationError):
        parse_money(raw)


@pytest.mark.parametrize("raw, qty", [(1, 1), ("3", 3), (" 12 ", 12)])
def test_parse_quantity(raw, qty):
    assert parse_quantity(raw) == qty


@pytest.mark.parametrize("raw", [0, -2, "0", "1.5", "1e3", 2.0, True, None, "two", 10**9])
def test_parse_quantity_rejects(raw):
    with pytest.raises(ValidationError):
        parse_quantity(raw)


def test_parse_delta():
    assert parse_delta(-1) == -1
    assert parse_delta("2") == 2
    with pytest.raises(ValidationError):
        parse_delta(0)
    with pytest.raises(ValidationError):
        parse_delta(False)


def test_parse_scan_input():
    assert parse_scan_input("coffee") == ScanRequest("coffee", 1)
    assert parse_scan_input(" coffee*3 ") == ScanRequest("coffee", 3)


@pytest.mark.parametrize("raw", ["", "   ", "*3", "coffee*", "coffee*x", "coffee*0", "coffee*-1"])
def test_parse_scan_input_rejects(raw):
    with pytest.raises(ValidationError):
        parse_scan_input(raw)


POLICY = ModelValidationPolicy(
    writable_fields={"barcode", "name", "price_cents", "stock"},
    required_on_create={"barcode", "name"},
)


def test_validate_payload_coerces_and_filters():
    patch = validate_payload(
        model=Product,
        payload={"barcode": " 123 ", "name": "Tea", "price_cents": "450"},
        policy=POLICY,
        partial=False,
    )
    assert patch == {"barcode": "123", "name": "Tea", "price_cents": 450}


def test_validate_payload_rejects_missing_and_unknown():
    with pytest.raises(ValidationError, match="Missing required fields: barcode"):
        validate_payload(model=Product, payload={"name": "Tea"}, policy=POLICY, partial=False)
    with pytest.raises(ValidationError, match="Field not allowed: id"):
        validate_payload(model=Product, payload={"id": 3}, policy=POLICY, partial=True)
    with pytest.raises(ValidationError):
        validate_payload(model=Product, payload={"price_cents": 4.5}, policy=POLICY, partial=True)
    with pytest.raises(ValidationError, match="name cannot be blank"):
        validate_payload(model=Product, payload={"name": "  "}, policy=POLICY, partial=True)
