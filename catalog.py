"""Read-only product queries."""
import re
from typing import List, Optional

from bson import ObjectId

from errors import ValidationError
from stores import InventoryStore

CATEGORY_LIMIT = 10
RELATED_LIMIT = 4
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
MAX_PAGE = 100_000


def to_str_id(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return doc
    d = dict(doc)
    if d.get("_id") is not None:
        d["id"] = str(d.pop("_id"))
    return d


def ensure_object_id(id_str: str, message: str = "Invalid ID format") -> ObjectId:
    if not ObjectId.is_valid(id_str):
        raise ValidationError(message)
    return ObjectId(id_str)


def parse_positive_int(value: Optional[str], default: int, maximum: int) -> int:
    """Leading-digit parse; anything unusable or below 1 falls back to default, above maximum is capped"""
    match = re.match(r"\s*([+-]?[0-9]+)", value or "")
    if not match:
        return default
    number = int(match.group(1))
    if number < 1:
        return default
    return min(number, maximum)


class CatalogService:
    def __init__(self, inventory: InventoryStore):
        self.inventory = inventory

    def _find(self, query: dict, skip: int = 0, limit: int = 0) -> List[dict]:
        return [to_str_id(d) for d in self.inventory.query_products(query, skip=skip, limit=limit)]

    def list_by_category(self, category: str) -> List[dict]:
        query = {"category": category} if category else {}
        return self._find(query, limit=CATEGORY_LIMIT)

    def get_product(self, product_id: str) -> Optional[dict]:
        _id = ensure_object_id(product_id)
        return to_str_id(self.inventory.get_product(_id))

    def related(self, category: str, exclude_id: str) -> List[dict]:
        _id = ensure_object_id(exclude_id, "Invalid product ID")
        return self._find({"category": category, "_id": {"$ne": _id}}, limit=RELATED_LIMIT)

    def search(self, q: Optional[str]) -> List[dict]:
        if not q:
            raise ValidationError("Query is required")
        # substring match on the literal text, never a user-supplied pattern
        return self._find({"name": {"$regex": re.escape(q), "$options": "i"}})

    def list_page(self, filter_value: Optional[str] = None, limit: Optional[str] = None,
                  page: Optional[str] = None) -> List[dict]:
        page_size = parse_positive_int(limit, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)
        page_number = parse_positive_int(page, 1, MAX_PAGE)
        query = {"category": filter_value} if filter_value else {}
        return self._find(query, skip=(page_number - 1) * page_size, limit=page_size)
