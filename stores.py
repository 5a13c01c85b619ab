"""
MongoDB access for products and orders.

Both stores take the database handle they operate on; nothing here keeps
state across calls beyond the collection reference.
"""
from contextlib import contextmanager
from typing import List, Optional

from bson import ObjectId
from pymongo.database import Database
from pymongo.errors import ExecutionTimeout, NetworkTimeout, PyMongoError, ServerSelectionTimeoutError

from database import create_document, get_documents
from errors import StoreError, StoreTimeoutError
from logging_config import get_logger

logger = get_logger(__name__)

TIMEOUT_ERRORS = (ExecutionTimeout, NetworkTimeout, ServerSelectionTimeoutError)


@contextmanager
def store_errors(operation: str):
    """Translate pymongo failures into StoreError"""
    try:
        yield
    except TIMEOUT_ERRORS as e:
        logger.error("store_timeout", operation=operation, error=str(e))
        raise StoreTimeoutError() from e
    except PyMongoError as e:
        logger.error("store_failure", operation=operation, error=str(e))
        raise StoreError(f"Database error during {operation}") from e


def _oid(value) -> ObjectId:
    return value if isinstance(value, ObjectId) else ObjectId(value)


class InventoryStore:
    def __init__(self, db: Database, collection_name: str = "allProduct"):
        self.collection_name = collection_name
        self.db = db
        self.collection = db[collection_name]

    def get_product(self, product_id) -> Optional[dict]:
        with store_errors("get_product"):
            return self.collection.find_one({"_id": _oid(product_id)})

    def replace_sizes(self, product_id, sizes: List[dict]) -> bool:
        """Overwrite the whole size list, last write wins"""
        with store_errors("replace_sizes"):
            result = self.collection.update_one({"_id": _oid(product_id)}, {"$set": {"sizes": sizes}})
        return result.matched_count == 1

    def reserve_stock(self, product_id, size: str, quantity: int) -> bool:
        """
        Decrement one size's stock by quantity only if at least that much is
        left. The check and the write are a single update, so concurrent
        reservations can never drive stock below zero.

        Returns False when the product, the size or the stock is missing.
        """
        with store_errors("reserve_stock"):
            result = self.collection.update_one(
                {
                    "_id": _oid(product_id),
                    "sizes": {"$elemMatch": {"size": size, "stock": {"$gte": quantity}}},
                },
                {"$inc": {"sizes.$.stock": -quantity}},
            )
        return result.modified_count == 1

    def release_stock(self, product_id, size: str, quantity: int) -> None:
        with store_errors("release_stock"):
            self.collection.update_one(
                {"_id": _oid(product_id), "sizes": {"$elemMatch": {"size": size}}},
                {"$inc": {"sizes.$.stock": quantity}},
            )

    def query_products(self, filter_dict: Optional[dict] = None, skip: int = 0, limit: int = 0) -> List[dict]:
        with store_errors("query_products"):
            return get_documents(self.db, self.collection_name, filter_dict, skip=skip, limit=limit)


class OrderStore:
    """Append-only: orders are inserted, never updated or removed here"""

    def __init__(self, db: Database, collection_name: str = "allOrders"):
        self.collection_name = collection_name
        self.db = db

    def insert_order(self, order, order_id: Optional[ObjectId] = None) -> str:
        data = order.model_dump() if hasattr(order, "model_dump") else dict(order)
        if order_id is not None:
            data["_id"] = order_id
        with store_errors("insert_order"):
            return create_document(self.db, self.collection_name, data)

    def order_exists(self, order_id) -> bool:
        with store_errors("order_exists"):
            return self.db[self.collection_name].find_one({"_id": _oid(order_id)}, {"_id": 1}) is not None
