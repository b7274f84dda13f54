import pytest

from tillpoint.errors import ConflictError, NotFound, ValidationError
from tillpoint.models import Product
from tillpoint.services import products_service, sales_service, stock_service
from tillpoint.services.cart import Cart


def test_list_products_hides_inactive(db_session, make_product):
    active = make_product("Apple")
    hidden = make_product("Banana")
    hidden.is_active = False
    db_session.commit()

    assert [p.id for p in products_service.list_products()] == [active.id]
    assert {p.id for p in products_service.list_products(include_inactive=True)} == {active.id, hidden.id}


def test_list_products_search(make_product):
    make_product("Whole Milk", category="Dairy")
    make_product("Sourdough", category="Bakery")

    assert [p.name for p in products_service.list_products(search="dairy")] == ["Whole Milk"]
    assert [p.name for p in products_service.list_products(search="DOUGH")] == ["Sourdough"]


def test_find_by_scan_prefers_barcode(make_product):
    by_name = make_product("Code 123 Bar")
    by_barcode = make_product("Something", barcode="123")

    assert products_service.find_by_scan("123").id == by_barcode.id
    assert products_service.find_by_scan("code").id == by_name.id
    assert products_service.find_by_scan("missing") is None
    assert products_service.find_by_scan("  ") is None


def test_find_by_scan_skips_inactive(db_session, make_product):
    product = make_product("Coffee", barcode="777")
    product.is_active = False
    db_session.commit()
    assert products_service.find_by_scan("777") is None


@pytest.mark.parametrize(
    "text,query,quantity",
    [
        ("coffee", "coffee", 1),
        ("coffee*3", "coffee", 3),
        (" 8991001000011 * 2 ", "8991001000011", 2),
    ],
)
def test_parse_scan_input(text, query, quantity):
    scan = products_service.parse_scan_input(text)
    assert (scan.query, scan.quantity) == (query, quantity)


@pytest.mark.parametrize("text", ["", "   ", None, "*2", "coffee*", "coffee*x", "coffee*-1"])
def test_parse_scan_input_rejects(text):
    with pytest.raises(ValidationError):
        products_service.parse_scan_input(text)


def test_create_product_with_initial_stock(db_session):
    product = products_service.create_product(
        {"barcode": "A1", "name": "Apple", "price_cents": 120, "stock": 7}
    )
    assert product.id is not None
    assert product.stock == 7
    assert product.is_active is True


def test_create_duplicate_barcode(make_product):
    make_product("Apple", barcode="A1")
    with pytest.raises(ConflictError):
        products_service.create_product({"barcode": "A1", "name": "Other", "price_cents": 1})


def test_update_product(make_product):
    product = make_product("Apple", price_cents=100)
    updated = products_service.update_product(product.id, {"name": "Green Apple", "price_cents": 150})
    assert (updated.name, updated.price_cents) == ("Green Apple", 150)
    assert products_service.update_product(9999, {"name": "x"}) is None


def test_update_rejects_stock_and_duplicate_barcode(make_product):
    product = make_product("Apple", barcode="A1")
    make_product("Pear", barcode="P1")

    with pytest.raises(ValidationError):
        products_service.update_product(product.id, {"stock": 99})
    with pytest.raises(ConflictError):
        products_service.update_product(product.id, {"barcode": "P1"})


def test_restock(make_product, stock_of):
    product = make_product("Apple", stock=2)
    restocked = products_service.restock_product(product.id, 5)
    assert restocked.stock == 7
    assert stock_of(product.id) == 7

    with pytest.raises(ValidationError):
        products_service.restock_product(product.id, 0)
    with pytest.raises(NotFound):
        products_service.restock_product(9999, 1)


def test_restock_goes_through_conditional_increment(make_product, stock_of, monkeypatch):
    product = make_product("Apple", stock=2)
    calls = []
    real_increment = stock_service.increment_stock

    def recording_increment(product_id, qty):
        calls.append((product_id, qty))
        return real_increment(product_id, qty)

    monkeypatch.setattr(stock_service, "increment_stock", recording_increment)
    products_service.restock_product(product.id, 3)

    assert calls == [(product.id, 3)]
    assert stock_of(product.id) == 5


def test_delete_unreferenced_product(db_session, make_product):
    product = make_product("Apple")
    product_id = product.id
    assert products_service.delete_product(product_id) == "deleted"
    assert db_session.get(Product, product_id) is None
    assert products_service.delete_product(product_id) is None


def test_delete_sold_product_deactivates(db_session, make_product, cashier_ctx):
    product = make_product("Apple", stock=3)
    cart = Cart()
    cart.add_item(product, 1)
    sales_service.checkout(cart, 1000, cashier_ctx)

    assert products_service.delete_product(product.id) == "deactivated"
    kept = db_session.get(Product, product.id)
    assert kept is not None
    assert kept.is_active is False
