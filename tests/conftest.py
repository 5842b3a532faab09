import pytest
from werkzeug.security import generate_password_hash

from storefront import create_app
from storefront.config import TestingConfig
from storefront.store import get_store

PASSWORD = "secret123"


@pytest.fixture(params=["sql", "mock"])
def backend(request):
    return request.param


@pytest.fixture
def app(backend, tmp_path):
    app = create_app({
        **{k: getattr(TestingConfig, k) for k in dir(TestingConfig) if k.isupper()},
        "STORE_BACKEND": backend,
        "MOCK_DATA_DIR": str(tmp_path / "mock_data"),
    })
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def run(app):
    """run(fn) -> fn(store) inside an app context."""
    def _run(fn):
        with app.app_context():
            return fn(get_store())
    return _run


@pytest.fixture
def make_user(run):
    def _make(username, role="customer", password=PASSWORD, **extra):
        return run(lambda s: s.users.insert({
            "username": username,
            "email": f"{username}@example.com",
            "password_hash": generate_password_hash(password),
            "role": role,
            **extra,
        }))
    return _make


@pytest.fixture
def login():
    def _login(client, username, password=PASSWORD):
        resp = client.post("/users/login", json={"username": username, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return resp
    return _login


@pytest.fixture
def catalog(run):
    """Two categories and a handful of products; product 5 costs 10000."""
    def _seed(s):
        phones = s.categories.insert({"category_name": "Phones", "description": "Mobile"})
        books = s.categories.insert({"category_name": "Books"})
        rows = [
            {"category_id": phones["category_id"], "product_name": "Alpha Phone", "price": 15000, "stock": 5},
            {"category_id": phones["category_id"], "product_name": "Beta Phone", "price": 25000, "stock": 3,
             "status": "inactive"},
            {"category_id": books["category_id"], "product_name": "Python Book", "price": 5000, "stock": 10},
            {"category_id": books["category_id"], "product_name": "Phone Repair Book", "price": 7000, "stock": 2},
            {"category_id": books["category_id"], "product_name": "Notebook", "price": 10000, "stock": 50},
        ]
        products = [s.products.insert({**r, "old_price": r["price"]}) for r in rows]
        return {"categories": [phones, books], "products": products}
    return run(_seed)
