"""
Database bootstrap

Builds the MongoDB handle from environment configuration and offers the
small document helpers the stores are written against.
"""
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from dotenv import load_dotenv
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

load_dotenv()


def _split_origins(value: str) -> List[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


@dataclass
class Settings:
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "storefront"
    product_collection: str = "allProduct"
    order_collection: str = "allOrders"
    timeout_ms: int = 5000
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:5173"])
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            database_name=os.getenv("DATABASE_NAME", defaults.database_name),
            product_collection=os.getenv("PRODUCT_COLLECTION", defaults.product_collection),
            order_collection=os.getenv("ORDER_COLLECTION", defaults.order_collection),
            timeout_ms=int(os.getenv("DATABASE_TIMEOUT_MS", defaults.timeout_ms)),
            cors_origins=_split_origins(os.getenv("CORS_ORIGINS", ",".join(defaults.cors_origins))),
            port=int(os.getenv("PORT", defaults.port)),
        )


def get_client(settings: Settings) -> MongoClient:
    # timeoutMS bounds every operation; selection timeout covers an unreachable server
    return MongoClient(
        settings.database_url,
        timeoutMS=settings.timeout_ms,
        serverSelectionTimeoutMS=settings.timeout_ms,
    )


def get_database(settings: Settings, client: Optional[MongoClient] = None) -> Database:
    client = client or get_client(settings)
    return client[settings.database_name]


def ensure_indexes(db: Database, settings: Settings) -> None:
    products = db[settings.product_collection]
    products.create_index([("category", ASCENDING)])
    products.create_index([("name", ASCENDING)])


# ----- Document helpers -----

def create_document(db: Database, collection_name: str, data) -> str:
    """Insert a document (dict or pydantic model) and return its id as a string"""
    if hasattr(data, "model_dump"):
        data = data.model_dump(exclude_none=False)
    doc = dict(data)
    doc.setdefault("created_at", datetime.now(timezone.utc))
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(db: Database, collection_name: str, filter_dict: Optional[dict] = None,
                  skip: int = 0, limit: int = 0) -> list:
    cursor = db[collection_name].find(filter_dict or {})
    if skip:
        cursor = cursor.skip(skip)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)
