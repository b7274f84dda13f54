from datetime import timedelta

import pytest

from tillpoint.errors import NotFound, ValidationError
from tillpoint.services import reporting_service, sales_service
from tillpoint.services.cart import Cart
from tillpoint.time_utils import utcnow


@pytest.fixture
def sell(cashier_ctx):
    def _sell(*lines):
        cart = Cart()
        for product, qty in lines:
            cart.add_item(product, qty)
        return sales_service.checkout(cart, cart.total(), cashier_ctx)
    return _sell


def test_list_sales_newest_first(make_product, sell):
    product = make_product("Coffee", stock=20)
    first = sell((product, 1))
    second = sell((product, 1))

    sales = reporting_service.list_sales()
    assert [s.id for s in sales] == [second.id, first.id]


def test_list_sales_filters_status(make_product, sell, cashier_ctx):
    product = make_product("Coffee", stock=20)
    kept = sell((product, 1))
    voided = sell((product, 1))
    sales_service.void_sale(voided.id, cashier_ctx)

    assert [s.id for s in reporting_service.list_sales(status="completed")] == [kept.id]
    assert [s.id for s in reporting_service.list_sales(status="VOID")] == [voided.id]


@pytest.mark.parametrize("kwargs", [{"status": "PENDING"}, {"limit": 0}, {"limit": 5000}])
def test_list_sales_rejects_bad_arguments(db_session, kwargs):
    with pytest.raises(ValidationError):
        reporting_service.list_sales(**kwargs)


def test_sale_detail(make_product, sell):
    product = make_product("Coffee", price_cents=700, stock=5)
    sale = sell((product, 3))

    detail = reporting_service.get_sale_detail(sale.id)
    assert detail["total_cents"] == 2100
    assert detail["items"][0]["product_name"] == "Coffee"

    with pytest.raises(NotFound):
        reporting_service.get_sale_detail(9999)


def test_today_summary_excludes_void(make_product, sell, cashier_ctx):
    product = make_product("Coffee", price_cents=1000, stock=10)
    sell((product, 2))
    voided = sell((product, 1))
    sales_service.void_sale(voided.id, cashier_ctx)

    summary = reporting_service.today_summary()
    assert summary["revenue_cents"] == 2000
    assert summary["sales_count"] == 1


def test_today_summary_other_day_is_empty(make_product, sell):
    sell((make_product("Coffee", stock=5), 1))
    summary = reporting_service.today_summary(today=utcnow().date() - timedelta(days=3))
    assert summary == {
        "date": (utcnow().date() - timedelta(days=3)).isoformat(),
        "revenue_cents": 0,
        "sales_count": 0,
    }


def test_top_products(make_product, sell):
    coffee = make_product("Coffee", price_cents=500, stock=20)
    tea = make_product("Tea", price_cents=300, stock=20)
    sell((coffee, 1), (tea, 4))
    sell((coffee, 2))

    top = reporting_service.top_products(limit=5)
    assert [(row["product_name"], row["total_quantity"]) for row in top] == [("Tea", 4), ("Coffee", 3)]
    assert top[1]["revenue_cents"] == 1500


def test_daily_sales_zero_fills(make_product, sell):
    sell((make_product("Coffee", price_cents=1000, stock=5), 2))
    today = utcnow().date()

    days = reporting_service.daily_sales(days=3, today=today)
    assert [d["date"] for d in days] == [
        (today - timedelta(days=2)).isoformat(),
        (today - timedelta(days=1)).isoformat(),
        today.isoformat(),
    ]
    assert [d["revenue_cents"] for d in days] == [0, 0, 2000]
    assert days[-1]["sales_count"] == 1


def test_daily_sales_rejects_bad_range(db_session):
    with pytest.raises(ValidationError):
        reporting_service.daily_sales(days=0)
