import os

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

os.environ.setdefault("ENVIRONMENT", "test")

from database import Settings  # noqa: E402
from main import create_app  # noqa: E402
from schemas import Product  # noqa: E402
from stores import InventoryStore, OrderStore  # noqa: E402


@pytest.fixture()
def settings():
    return Settings()


@pytest.fixture()
def db(settings):
    client = mongomock.MongoClient()
    yield client[settings.database_name]
    client.close()


@pytest.fixture()
def inventory(db, settings):
    return InventoryStore(db, settings.product_collection)


@pytest.fixture()
def order_store(db, settings):
    return OrderStore(db, settings.order_collection)


@pytest.fixture()
def add_product(db, settings):
    """Helper: insert a product document and return its ObjectId."""

    def _add(name="Romper", category="boys", sizes=None, **extra):
        doc = Product(
            name=name,
            category=category,
            sizes=sizes if sizes is not None else [{"size": "S", "stock": 5}, {"size": "M", "stock": 3}],
            **extra,
        ).model_dump()
        return db[settings.product_collection].insert_one(doc).inserted_id

    return _add


@pytest.fixture()
def stock_of(db, settings):
    def _stock(product_id: ObjectId, size: str) -> int:
        product = db[settings.product_collection].find_one({"_id": product_id})
        return next(s["stock"] for s in product["sizes"] if s["size"] == size)

    return _stock


@pytest.fixture()
def client(db, settings):
    app = create_app(db=db, settings=settings)
    return TestClient(app)


def order_payload(*items, phone="01711111111", **overrides):
    payload = {
        "userDetails": {"name": "Rahim", "phone": phone, "address": "House 4, Road 2", "note": "Call first"},
        "products": [
            {"productId": str(pid), "selectedSize": size, "quantity": qty}
            for pid, size, qty in items
        ],
        "deliveryCharge": 60,
        "totalPrice": 1260,
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def make_order():
    return order_payload
