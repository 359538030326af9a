import io
from decimal import Decimal
from types import SimpleNamespace

import pytest
from werkzeug.datastructures import FileStorage
from werkzeug.security import generate_password_hash

from app import create_app
from database import get_db
from models import Category, MenuItem, PaymentMethod, User, Role

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "DATABASE_URL": f"sqlite:///{tmp_path / 'test.db'}",
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "ADMIN_SECRET_CODE": "let-me-in",
    })
    yield app
    app.extensions["db_engine"].dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def new_session(app):
    """獨立的資料庫 session，用來檢查請求之後的資料"""
    sessions = []

    def factory():
        db = app.extensions["db_session"]()
        sessions.append(db)
        return db

    yield factory
    for db in sessions:
        db.close()


@pytest.fixture
def db(app):
    with app.app_context():
        yield get_db()


@pytest.fixture
def seed(app):
    with app.extensions["db_session"]() as db:
        coffee = Category(category_name="Coffee")
        snack = Category(category_name="Snack")
        main = Category(category_name="Main-Course")
        db.add_all([coffee, snack, main])
        db.flush()

        latte = MenuItem(name="Kopi Susu", price=Decimal("20000"), category_id=coffee.category_id)
        fries = MenuItem(name="French Fries", price=Decimal("15000"), category_id=snack.category_id)
        old = MenuItem(name="Old Brew", price=Decimal("18000"), category_id=coffee.category_id, is_active=False)
        rice = MenuItem(name="Nasi Goreng", price=Decimal("35000"), category_id=main.category_id)
        db.add_all([latte, fries, old, rice])

        cod = PaymentMethod(method_name="COD", is_cash=True)
        transfer = PaymentMethod(method_name="Transfer Bank", is_cash=False)
        voucher = PaymentMethod(method_name="Voucher", is_cash=True, is_active=False)
        db.add_all([cod, transfer, voucher])

        customer = User(
            name="Budi", email="budi@example.com",
            password=generate_password_hash("kopi123"), role=Role.CUSTOMER.value,
        )
        admin = User(
            name="Admin", email="admin@example.com",
            password=generate_password_hash("admin123"), role=Role.ADMIN.value,
        )
        db.add_all([customer, admin])
        db.commit()

        return SimpleNamespace(
            coffee_id=coffee.category_id,
            snack_id=snack.category_id,
            main_id=main.category_id,
            latte_id=latte.menu_id,
            fries_id=fries.menu_id,
            old_id=old.menu_id,
            rice_id=rice.menu_id,
            cod_id=cod.method_id,
            transfer_id=transfer.method_id,
            voucher_id=voucher.method_id,
            customer_id=customer.user_id,
            admin_id=admin.user_id,
        )


def make_image(filename="proof.png", content=PNG_BYTES, content_type="image/png"):
    return FileStorage(stream=io.BytesIO(content), filename=filename, content_type=content_type)


def login(client, email, password, login_as="customer"):
    return client.post("/auth/login", data={
        "email": email, "password": password, "login_as": login_as,
    })


@pytest.fixture
def customer_client(client, seed):
    login(client, "budi@example.com", "kopi123")
    return client


@pytest.fixture
def admin_client(client, seed):
    login(client, "admin@example.com", "admin123", login_as="admin")
    return client


def flashes(client):
    with client.session_transaction() as sess:
        return list(sess.get("_flashes", []))
