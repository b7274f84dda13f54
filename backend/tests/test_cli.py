from tillpoint.cli import DEMO_PRODUCTS
from tillpoint.models import Product, Sale, User, SALE_STATUS_VOID
from tillpoint.services import sales_service
from tillpoint.services.cart import Cart


def test_init_is_idempotent(app, db_session):
    result = app.test_cli_runner().invoke(args=["system", "init"])
    assert result.exit_code == 0
    assert "Database schema ready" in result.output


def test_reset_db_requires_confirmation(app, db_session, make_product):
    make_product("Coffee")
    result = app.test_cli_runner().invoke(args=["system", "reset-db"])
    assert "Refusing" in result.output
    assert db_session.query(Product).count() == 1


def test_create_and_list_users(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create", "--username", "maria", "--password", "Password123", "--role", "admin",
    ])
    assert "PASS Created user maria" in result.output

    listing = runner.invoke(args=["users", "list"])
    assert "maria" in listing.output
    assert "ADMIN" in listing.output


def test_create_user_weak_password(app, db_session):
    result = app.test_cli_runner().invoke(args=[
        "users", "create", "--username", "maria", "--password", "weak", "--role", "cashier",
    ])
    assert "FAIL" in result.output


def test_seed_products_skips_existing(app, db_session):
    runner = app.test_cli_runner()
    first = runner.invoke(args=["products", "seed"])
    second = runner.invoke(args=["products", "seed"])
    assert f"Seeded {len(DEMO_PRODUCTS)} products" in first.output
    assert "Seeded 0 products" in second.output
    assert db_session.query(Product).count() == len(DEMO_PRODUCTS)


def test_void_sale_command(app, db_session, make_product, cashier, cashier_ctx, stock_of):
    product = make_product("Coffee", stock=3)
    cart = Cart()
    cart.add_item(product, 2)
    sale_id = sales_service.checkout(cart, 5000, cashier_ctx).id

    result = app.test_cli_runner().invoke(args=["sales", "void", str(sale_id), "--username", "cashier"])
    assert f"PASS Sale {sale_id} is now VOID" in result.output
    assert stock_of(product.id) == 3

    db_session.expire_all()
    assert db_session.get(Sale, sale_id).status == SALE_STATUS_VOID

    again = app.test_cli_runner().invoke(args=["sales", "void", str(sale_id), "--username", "cashier"])
    assert "FAIL" in again.output


def test_update_deactivate_and_reactivate_user(app, db_session, cashier):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["users", "update", str(cashier.id), "--role", "admin", "--full-name", "Dana K"])
    assert "PASS Updated user cashier" in result.output
    assert db_session.get(User, cashier.id).role == "ADMIN"

    result = runner.invoke(args=["users", "deactivate", str(cashier.id)])
    assert "PASS Deactivated user" in result.output
    assert "inactive" not in runner.invoke(args=["users", "list"]).output
    assert "inactive" in runner.invoke(args=["users", "list", "--all"]).output

    result = runner.invoke(args=["users", "deactivate", str(cashier.id)])
    assert "FAIL" in result.output

    result = runner.invoke(args=["users", "reactivate", str(cashier.id)])
    assert "PASS Reactivated user cashier" in result.output


def test_update_unknown_user(app, db_session):
    result = app.test_cli_runner().invoke(args=["users", "update", "9999", "--full-name", "Nobody"])
    assert "FAIL" in result.output
